from main import store
from impound_console.models import REPORTS, USER_NOTIFICATIONS


def _report(status="Stray", user_id="reporter-1", **extra):
    doc = {"status": status, "description": "Dog tied to a post", "locationName": "Rizal St.",
           "reportTime": "2026-10-01T08:00:00+00:00", "userId": user_id}
    doc.update(extra)
    return doc


def test_reports_page_buckets_by_status(admin_client):
    store.create_one(REPORTS, _report("Stray"))
    store.create_one(REPORTS, _report("lost"))
    store.create_one(REPORTS, _report("Incident"))
    store.create_one(REPORTS, _report("Resolved"))

    r = admin_client.get("/admin/reports")
    assert r.status_code == 200
    data = r.json()
    assert [len(data["stray"]), len(data["lost"]), len(data["incident"])] == [1, 1, 1]


def test_alerts_only_for_reports_after_login():
    from fastapi.testclient import TestClient
    import main

    store.create_one(REPORTS, _report(description="Before login"))
    client = TestClient(main.app)
    client.post("/login", data={"username": "admin@impound.local", "password": "admin"})

    assert client.get("/admin/alerts").json()["alerts"] == []

    store.create_one(REPORTS, _report("Incident", description="After login"))
    alerts = client.get("/admin/alerts").json()["alerts"]
    assert len(alerts) == 1
    assert alerts[0]["title"] == "New Incident Report"
    assert alerts[0]["body"] == "After login - Rizal St."
    # drained
    assert client.get("/admin/alerts").json()["alerts"] == []


def test_resolve_sends_user_notification(admin_client):
    report_id = store.create_one(REPORTS, _report("Incident"))

    r = admin_client.post(f"/admin/reports/{report_id}/resolve", follow_redirects=False)
    assert r.status_code == 303
    assert "status=Report+resolved" in r.headers["location"]

    stored = store.get_one(REPORTS, report_id)
    assert stored["status"] == "Resolved"
    assert stored["originalType"] == "Incident"
    notices = store.list_all(USER_NOTIFICATIONS)
    assert [n["type"] for n in notices] == ["incident_resolved"]

    # resolving again is refused and sends nothing new
    r = admin_client.post(f"/admin/reports/{report_id}/resolve", follow_redirects=False)
    assert "error=" in r.headers["location"]
    assert len(store.list_all(USER_NOTIFICATIONS)) == 1


def test_decline_without_reason_is_refused(admin_client):
    report_id = store.create_one(REPORTS, _report())
    r = admin_client.post(f"/admin/reports/{report_id}/decline", data={"reason": "  "}, follow_redirects=False)
    assert "error=" in r.headers["location"]
    assert store.get_one(REPORTS, report_id)["status"] == "Stray"

    r = admin_client.post(f"/admin/reports/{report_id}/decline", data={"reason": "Not in our area"},
                          follow_redirects=False)
    assert "status=Report+declined" in r.headers["location"]
    assert store.list_all(USER_NOTIFICATIONS)[0]["type"] == "stray_declined"


def test_mark_read_hide_all_and_unread_count(admin_client):
    ids = [store.create_one(REPORTS, _report(s)) for s in ("Stray", "Lost", "Incident", "In Progress", "Stray")]

    assert admin_client.get("/admin/notifications").json()["unread_count"] == 5
    admin_client.post(f"/admin/reports/{ids[0]}/read", data={"value": "true"})
    assert admin_client.get("/admin/notifications").json()["unread_count"] == 4

    admin_client.post("/admin/notifications/mark-all-read")
    assert admin_client.get("/admin/notifications").json()["unread_count"] == 0

    r = admin_client.post("/admin/notifications/hide-all", follow_redirects=False)
    assert "5+notification" in r.headers["location"]
    data = admin_client.get("/admin/notifications").json()
    assert data["notifications"] == []
    # hiding never changes the reports themselves
    assert [store.get_one(REPORTS, i)["status"] for i in ids] == ["Stray", "Lost", "Incident", "In Progress", "Stray"]
    assert len(admin_client.get("/admin/reports").json()["stray"]) == 3
