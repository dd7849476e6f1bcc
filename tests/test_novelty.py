from impound_console import activity
from impound_console.models import APPLICATIONS, REPORTS
from impound_console.novelty import (
    NoveltyDetector,
    summarize_application,
    summarize_report,
    truncate,
)
from impound_console.store import ChangeType, DocumentChange, Snapshot


def _report(status="Stray", description="Brown dog near the market", location="Poblacion"):
    return {"status": status, "description": description, "locationName": location,
            "reportTime": "2026-10-01T08:00:00+00:00"}


def test_first_snapshot_is_hydration_only(store):
    for _ in range(3):
        store.create_one(REPORTS, _report())
    shown = []
    detector = NoveltyDetector(REPORTS, summarize_report, lambda title, body: shown.append(title))
    alerts = []
    store.subscribe(REPORTS, "reportTime", "desc", lambda snap: alerts.extend(detector.observe(snap)))

    assert alerts == []
    assert shown == []
    assert detector.initial_load_done
    assert len(detector.seen_ids) == 3


def test_new_document_produces_exactly_one_alert(store):
    store.create_one(REPORTS, _report())
    shown = []
    detector = NoveltyDetector(REPORTS, summarize_report, lambda title, body: shown.append((title, body)))
    alerts = []
    store.subscribe(REPORTS, "reportTime", "desc", lambda snap: alerts.extend(detector.observe(snap)))

    new_id = store.create_one(REPORTS, _report(status="Incident", description="Dog bite", location="Zone 4"))
    # modifications of a known document are not novel
    store.write_one(REPORTS, new_id, {"impoundRead": True})

    assert len(alerts) == 1
    assert alerts[0].doc_id == new_id
    assert alerts[0].title == "New Incident Report"
    assert alerts[0].body == "Dog bite - Zone 4"
    assert alerts[0].delivered
    assert shown == [("New Incident Report", "Dog bite - Zone 4")]


def test_failed_delivery_still_marks_seen():
    def broken(title, body):
        raise RuntimeError("notifications denied")

    detector = NoveltyDetector(REPORTS, summarize_report, broken)
    detector.observe(Snapshot(collection=REPORTS, docs=[], changes=[]))

    added = DocumentChange(type=ChangeType.ADDED, doc_id="r1", data=_report())
    alerts = detector.observe(Snapshot(collection=REPORTS, docs=[], changes=[added]))
    assert len(alerts) == 1
    assert not alerts[0].delivered
    assert "r1" in detector.seen_ids
    assert any("Alert delivery failed" in entry for entry in activity.logs)

    # the same id arriving again is not announced twice
    assert detector.observe(Snapshot(collection=REPORTS, docs=[], changes=[added])) == []


def test_no_delivery_capability_is_not_an_error():
    detector = NoveltyDetector(APPLICATIONS, summarize_application)
    detector.observe(Snapshot(collection=APPLICATIONS, docs=[], changes=[]))
    change = DocumentChange(type=ChangeType.ADDED, doc_id="a1",
                            data={"applicant": {"fullName": "Maria Santos"}, "petName": "Bantay"})
    alerts = detector.observe(Snapshot(collection=APPLICATIONS, docs=[], changes=[change]))
    assert alerts[0].title == "New Adoption Application"
    assert alerts[0].body == "Maria Santos applied to adopt Bantay"
    assert not alerts[0].delivered


def test_summaries():
    long_text = "x" * 80
    assert truncate(long_text) == "x" * 50 + "..."
    assert truncate("short") == "short"
    lost = summarize_report({"status": "lost", "description": None, "locationName": None})
    assert lost.title == "New Lost Pet Report"
    assert lost.body == "No description - Unknown location"
