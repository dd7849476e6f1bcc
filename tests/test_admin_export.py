from main import store
from impound_console.models import REPORTS


def test_admin_can_export_csv(admin_client):
    store.create_one(REPORTS, {"status": "Stray", "description": "ExportDog near the pier",
                               "locationName": "Quezon City", "reportTime": "2026-10-01T00:00:00+00:00"})
    store.create_one(REPORTS, {"status": "Resolved", "originalType": "Incident", "description": "ClosedCase",
                               "reportTime": "2026-09-01T00:00:00+00:00"})

    r = admin_client.get('/admin/export/reports.csv')
    assert r.status_code == 200
    assert r.headers.get('content-type', '').startswith('text/csv')
    assert 'ExportDog' in r.text
    assert 'ClosedCase' in r.text
    assert r.text.splitlines()[0].startswith("report_id,status,original_type")


def test_admin_dashboard_has_export_link(admin_client):
    r = admin_client.get('/admin/dashboard')
    assert r.status_code == 200
    assert r.json()["exports"]["csv"] == '/admin/export/reports.csv'


def test_export_requires_admin():
    from fastapi.testclient import TestClient
    import main

    r = TestClient(main.app).get('/admin/export/reports.csv', follow_redirects=False)
    assert r.status_code == 303
    assert r.headers['location'].startswith('/login')
