from fastapi.testclient import TestClient
from main import app

client = TestClient(app)


def test_login_and_session_persists():
    # Ensure login page loads
    r = client.get("/login")
    assert r.status_code == 200

    # Login with the demo impound admin
    r = client.post("/login", data={"username": "admin@impound.local", "password": "admin"}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers.get("location") == "/admin/dashboard"

    # After login, the dashboard should be accessible
    r = client.get("/admin/dashboard")
    assert r.status_code == 200
    assert r.json()["current_user"] == "admin@impound.local"

    # Logout clears session
    r = client.get("/logout", follow_redirects=False)
    assert r.status_code in (302, 303)

    # After logout, the dashboard should require login (redirect)
    r = client.get("/admin/dashboard", follow_redirects=False)
    assert r.status_code in (302, 303)
    assert "/login" in r.headers.get("location", "")


def test_regular_user_is_not_an_admin():
    r = client.post("/login", data={"username": "user@impound.local", "password": "user"}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers.get("location") == "/"

    r = client.get("/admin/reports", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers.get("location", "").startswith("/login")


def test_wrong_password_is_rate_limited():
    fresh = TestClient(app)
    for _ in range(5):
        r = fresh.post("/login", data={"username": "admin@impound.local", "password": "nope"}, follow_redirects=False)
        assert "Invalid" in r.headers.get("location", "")
    r = fresh.post("/login", data={"username": "admin@impound.local", "password": "admin"}, follow_redirects=False)
    assert "Too+many" in r.headers.get("location", "")


def test_account_without_password_cannot_log_in():
    import main
    from impound_console.models import USERS

    main.store.create_one(USERS, {"email": "mobile@impound.local", "role": "user", "fullName": "Mobile User"},
                          doc_id="mobile-1")
    main.ensure_hashed_passwords()
    assert not main.store.get_one(USERS, "mobile-1").get("password")

    fresh = TestClient(app)
    r = fresh.post("/login", data={"username": "mobile@impound.local", "password": ""}, follow_redirects=False)
    assert r.headers.get("location", "") != "/"
    r = fresh.post("/login", data={"username": "mobile@impound.local", "password": "x"}, follow_redirects=False)
    assert "Invalid" in r.headers.get("location", "")
