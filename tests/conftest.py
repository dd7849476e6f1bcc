import os
import sys
import tempfile
from pathlib import Path

# ensure project root is importable for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# keep the app's import-time load/seed away from the working tree
_SCRATCH = tempfile.mkdtemp(prefix="impound-tests-")
os.environ.setdefault("STATE_FILE", os.path.join(_SCRATCH, "state.json"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_SCRATCH, "uploads"))

import pytest

from impound_console import activity
from impound_console.models import Actor
from impound_console.store import InMemoryStore

ADMIN_EMAIL = "admin@impound.local"
ADMIN_PASSWORD = "admin"
USER_EMAIL = "user@impound.local"
USER_PASSWORD = "user"


@pytest.fixture(autouse=True)
def isolate_state(tmp_path):
    """Isolate global in-memory state for each test to avoid order-dependent flakiness."""
    import main

    orig_logs = list(activity.logs)
    orig_state_file = main.store.state_file
    orig_upload_dir = main.store.upload_dir

    for console in list(main.console_sessions.values()):
        console.stop()
    main.console_sessions.clear()
    main.LOGIN_ATTEMPTS.clear()
    main.store.state_file = str(tmp_path / "state.json")
    main.store.upload_dir = str(tmp_path / "uploads")
    main.store.clear()
    activity.logs.clear()
    main.seed_users()

    yield

    for console in list(main.console_sessions.values()):
        console.stop()
    main.console_sessions.clear()
    main.LOGIN_ATTEMPTS.clear()
    main.store.clear()
    main.store.state_file = orig_state_file
    main.store.upload_dir = orig_upload_dir
    activity.logs.clear()
    activity.logs.extend(orig_logs)


@pytest.fixture
def store(tmp_path):
    """A fresh store for the core components, persisting under tmp_path."""
    return InMemoryStore(state_file=str(tmp_path / "core-state.json"), upload_dir=str(tmp_path / "core-uploads"))


@pytest.fixture
def actor():
    return Actor(id="admin-1", email=ADMIN_EMAIL, role="impound_admin")


@pytest.fixture
def admin_client():
    from fastapi.testclient import TestClient
    import main

    client = TestClient(main.app)
    r = client.post("/login", data={"username": ADMIN_EMAIL, "password": ADMIN_PASSWORD}, follow_redirects=False)
    assert r.status_code == 303
    return client
