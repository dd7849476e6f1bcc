"""
Novelty detection for subscribed collections.

The first snapshot of a subscription is session-start hydration: every id
it carries is recorded as seen and nothing is announced. From then on each
``added`` change for an unseen id produces exactly one ``Alert``. Ids stay
seen for the life of the detector, which lives exactly as long as its
subscription.
"""
from typing import Callable, List, Optional, Set

from pydantic import BaseModel

from .activity import log_event
from .models import ReportStatus
from .store import ChangeType, Snapshot, utc_now

SUMMARY_DESCRIPTION_LENGTH = 50

NotifyUser = Callable[[str, str], None]
Summarizer = Callable[[dict], "AlertText"]


class AlertText(BaseModel):
    title: str
    body: str


class Alert(BaseModel):
    collection: str
    doc_id: str
    title: str
    body: str
    created_at: str
    delivered: bool = False


def truncate(text: Optional[str], length: int = SUMMARY_DESCRIPTION_LENGTH) -> str:
    text = (text or "").strip()
    if len(text) <= length:
        return text
    return text[:length].rstrip() + "..."


def report_kind(status: Optional[str]) -> str:
    kind = ReportStatus.parse(status)
    if kind == ReportStatus.LOST:
        return "Lost Pet"
    if kind == ReportStatus.INCIDENT:
        return "Incident"
    return "Stray"


def summarize_report(doc: dict) -> AlertText:
    kind = report_kind(doc.get("status"))
    description = truncate(doc.get("description")) or "No description"
    location = doc.get("locationName") or "Unknown location"
    return AlertText(title=f"New {kind} Report", body=f"{description} - {location}")


def summarize_application(doc: dict) -> AlertText:
    applicant = (doc.get("applicant") or {}).get("fullName") or "Someone"
    pet_name = doc.get("petName") or "a pet"
    return AlertText(title="New Adoption Application", body=f"{applicant} applied to adopt {pet_name}")


class NoveltyDetector:
    def __init__(self, collection: str, summarize: Summarizer, notify_user: Optional[NotifyUser] = None):
        self.collection = collection
        self.summarize = summarize
        self.notify_user = notify_user
        self.seen_ids: Set[str] = set()
        self.initial_load_done = False

    def observe(self, snapshot: Snapshot) -> List[Alert]:
        """Process one snapshot and return the alerts it produced."""
        if not self.initial_load_done:
            self.seen_ids.update(doc["id"] for doc in snapshot.docs if "id" in doc)
            self.seen_ids.update(c.doc_id for c in snapshot.changes)
            self.initial_load_done = True
            return []

        alerts = []
        for change in snapshot.changes:
            if change.type != ChangeType.ADDED or change.doc_id in self.seen_ids:
                continue
            text = self.summarize(change.data or {})
            alert = Alert(
                collection=self.collection,
                doc_id=change.doc_id,
                title=text.title,
                body=text.body,
                created_at=utc_now(),
            )
            alert.delivered = self._deliver(alert)
            # seen even when delivery failed
            self.seen_ids.add(change.doc_id)
            alerts.append(alert)
        return alerts

    def _deliver(self, alert: Alert) -> bool:
        if self.notify_user is None:
            return False
        try:
            self.notify_user(alert.title, alert.body)
            return True
        except Exception as e:
            log_event(f"Alert delivery failed for {self.collection}/{alert.doc_id}: {e}")
            return False
