from datetime import datetime, timezone

from main import store
from impound_console.models import (
    ADOPTABLE_PETS,
    APPLICATIONS,
    PETS,
    REPORTS,
    TRANSFER_ATTEMPTS,
    USER_NOTIFICATIONS,
    USERS,
)

ADOPTABLE_FORM = {
    "pet_name": "Snow",
    "pet_type": "cat",
    "breed": "Persian",
    "gender": "female",
    "age": "1",
    "vaccinated": "true",
    "vaccinated_date": "2026-07-01",
}


def _regular_user_id():
    return next(d["id"] for d in store.list_all(USERS) if d["role"] == "user")


def test_application_detail_approve_and_decline(admin_client):
    first = store.create_one(APPLICATIONS, {"petName": "Choco", "applicant": {"fullName": "Lito"},
                                            "createdAt": "2026-10-10T00:00:00+00:00"})
    second = store.create_one(APPLICATIONS, {"petName": "Bruno", "applicant": {"fullName": "Rosa"},
                                             "createdAt": "2026-10-11T00:00:00+00:00"})

    r = admin_client.get(f"/admin/applications/{first}")
    assert r.json()["open_application_id"] == first

    admin_client.post(f"/admin/applications/{first}/approve")
    assert store.get_one(APPLICATIONS, first)["status"] == "Approved"
    assert admin_client.get("/admin/applications").json()["open_application_id"] is None

    # no reason field at all means the operator cancelled
    r = admin_client.post(f"/admin/applications/{second}/decline", follow_redirects=False)
    assert "Decline+cancelled" in r.headers["location"]
    assert "status" not in store.get_one(APPLICATIONS, second)

    r = admin_client.post(f"/admin/applications/{second}/decline", data={"reason": ""}, follow_redirects=False)
    assert "error=" in r.headers["location"]

    admin_client.post(f"/admin/applications/{second}/decline", data={"reason": "No vet reference"})
    stored = store.get_one(APPLICATIONS, second)
    assert stored["status"] == "Declined"
    assert stored["notes"] == "No vet reference"

    submitted = admin_client.get("/admin/applications?status_filter=declined").json()["applications"]
    assert [a["id"] for a in submitted] == [second]


def test_post_edit_and_delete_adoptable(admin_client):
    r = admin_client.post(
        "/admin/adoptables",
        data=ADOPTABLE_FORM,
        files={"image": ("snow.jpg", b"\xff\xd8\xff", "image/jpeg")},
        follow_redirects=False,
    )
    assert "status=" in r.headers["location"]
    pets = store.list_all(ADOPTABLE_PETS)
    assert len(pets) == 1
    pet_id = pets[0]["id"]
    assert pets[0]["imageUrl"].endswith(".jpg")

    bad = dict(ADOPTABLE_FORM, vaccinated_date="")
    r = admin_client.post(f"/admin/adoptables/{pet_id}/edit", data=bad, follow_redirects=False)
    assert "error=" in r.headers["location"]

    edited = dict(ADOPTABLE_FORM, pet_name="Snowball")
    admin_client.post(f"/admin/adoptables/{pet_id}/edit", data=edited)
    assert store.get_one(ADOPTABLE_PETS, pet_id)["petName"] == "Snowball"

    r = admin_client.post(f"/admin/adoptables/{pet_id}/delete", follow_redirects=False)
    assert "Delete+cancelled" in r.headers["location"]
    assert store.get_one(ADOPTABLE_PETS, pet_id) is not None

    admin_client.post(f"/admin/adoptables/{pet_id}/delete", data={"confirm": "true"})
    assert store.get_one(ADOPTABLE_PETS, pet_id) is None


def test_breeds_endpoint(admin_client):
    assert "Siberian Husky" in admin_client.get("/admin/breeds/dog").json()["breeds"]
    assert admin_client.get("/admin/breeds/hamster").json()["breeds"] == []


def test_transfer_flow(admin_client):
    admin_client.post("/admin/adoptables", data=ADOPTABLE_FORM)
    pet_id = store.list_all(ADOPTABLE_PETS)[0]["id"]
    owner_id = _regular_user_id()

    candidates = admin_client.get("/admin/transfer/candidates?search=regular").json()["candidates"]
    assert [c["user_id"] for c in candidates] == [owner_id]

    r = admin_client.post("/admin/transfer", data={"pet_id": pet_id, "user_id": owner_id}, follow_redirects=False)
    assert "Pet+transferred" in r.headers["location"]

    assert store.list_all(ADOPTABLE_PETS) == []
    owned = store.list_all(PETS)
    assert len(owned) == 1
    assert owned[0]["petType"] == "cat"
    assert owned[0]["userId"] == owner_id
    assert [n["type"] for n in store.list_all(USER_NOTIFICATIONS)] == ["pet_transfer"]

    attempts = admin_client.get("/admin/transfer/attempts").json()["attempts"]
    assert attempts[0]["status"] == "completed"
    assert "petDoc" not in attempts[0]


def test_partial_transfer_is_reported_and_resumable(admin_client, monkeypatch):
    admin_client.post("/admin/adoptables", data=ADOPTABLE_FORM)
    pet_id = store.list_all(ADOPTABLE_PETS)[0]["id"]
    owner_id = _regular_user_id()
    real_delete = store.delete_one

    def fail_delete(collection, doc_id):
        from impound_console.errors import StoreWriteError
        raise StoreWriteError("offline")

    monkeypatch.setattr(store, "delete_one", fail_delete)
    r = admin_client.post("/admin/transfer", data={"pet_id": pet_id, "user_id": owner_id}, follow_redirects=False)
    assert r.headers["location"].startswith("/admin/transfer/attempts?error=")
    attempt = store.list_all(TRANSFER_ATTEMPTS)[0]
    assert attempt["status"] == "partial"

    monkeypatch.setattr(store, "delete_one", real_delete)
    r = admin_client.post(f"/admin/transfer/{attempt['id']}/resume", follow_redirects=False)
    assert "Transfer+completed" in r.headers["location"]
    assert store.list_all(ADOPTABLE_PETS) == []
    assert len(store.list_all(PETS)) == 1


def test_dashboard_trends_and_activity(admin_client):
    now = datetime.now(timezone.utc).isoformat()
    store.create_one(REPORTS, {"status": "Stray", "reportTime": now})
    store.create_one(REPORTS, {"status": "Lost", "reportTime": now})

    data = admin_client.get("/admin/dashboard").json()
    assert data["stats"]["stray_reports"] == 1
    assert data["stats"]["lost_reports"] == 1
    assert len(data["trends"]["reports"]) == 6
    assert data["trends"]["reports"][-1]["count"] == 2
    assert data["growth"]["reports"] == 100
    assert any("logged in" in entry for entry in data["logs"])
