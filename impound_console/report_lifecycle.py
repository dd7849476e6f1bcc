"""
Report lifecycle.

Active reports (Stray, In Progress, Lost, Incident) move to Resolved or
Declined, both terminal. Only the (state, event) pairs listed in
``REPORT_TRANSITIONS`` are legal; anything else raises
``IllegalTransitionError``. The check runs against the stored document in
the same store step as the write, so repeating a transition (even with a
stale ``Report``) can never produce a second user notification.
"""
from enum import Enum
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel

from .activity import log_event
from .classifier import is_notification_eligible
from .errors import IllegalTransitionError, StoreWriteError, ValidationError
from .models import (
    ACTIVE_REPORT_STATUSES,
    REPORTS,
    USER_NOTIFICATIONS,
    Actor,
    NotificationType,
    Report,
    ReportStatus,
    UserNotification,
    _user_notification_to_dict,
    decode,
)
from .store import RecordStore, utc_now


class ReportState(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    DECLINED = "declined"


class ReportEvent(str, Enum):
    RESOLVE = "resolve"
    DECLINE = "decline"


REPORT_TRANSITIONS = {
    (ReportState.ACTIVE, ReportEvent.RESOLVE): ReportState.RESOLVED,
    (ReportState.ACTIVE, ReportEvent.DECLINE): ReportState.DECLINED,
}


def report_state(report: Report) -> Optional[ReportState]:
    kind = report.status_kind
    if kind in ACTIVE_REPORT_STATUSES:
        return ReportState.ACTIVE
    if kind == ReportStatus.RESOLVED:
        return ReportState.RESOLVED
    if kind == ReportStatus.DECLINED:
        return ReportState.DECLINED
    return None


def next_report_state(report: Report, event: ReportEvent) -> ReportState:
    state = report_state(report)
    target = REPORT_TRANSITIONS.get((state, event))
    if target is None:
        raise IllegalTransitionError("report", report.status, event.value)
    return target


def is_incident_family(status: Optional[ReportStatus]) -> bool:
    return status == ReportStatus.INCIDENT


def _report_label(status: Optional[ReportStatus]) -> str:
    if status == ReportStatus.INCIDENT:
        return "incident"
    if status == ReportStatus.LOST:
        return "lost pet"
    return "stray"


class TransitionResult(BaseModel):
    report_id: str
    status: str
    patch: dict
    notification_id: Optional[str] = None


class ReportLifecycle:
    def __init__(self, store: RecordStore, current_actor: Callable[[], Actor]):
        self.store = store
        self.current_actor = current_actor

    def resolve(self, report: Report) -> TransitionResult:
        actor = self.current_actor()

        def build(current: Report) -> dict:
            return {
                "status": ReportStatus.RESOLVED.value,
                "originalType": current.status_kind.value,
                "resolvedAt": utc_now(),
                "resolvedBy": actor.email,
            }

        current, patch = self._transition(report, ReportEvent.RESOLVE, build)
        previous = current.status_kind
        log_event(f"Report {current.report_id} resolved by {actor.email} (was {previous.value}).")

        notification_id = None
        if current.user_id:
            incident = is_incident_family(previous)
            if incident:
                message = ("Your incident report has been resolved by the animal impound facility. "
                           "Thank you for reporting this incident.")
            else:
                message = (f"Your {_report_label(previous)} report has been resolved by the animal impound "
                           "facility. Thank you for reporting.")
            notification_id = self._notify(
                current,
                NotificationType.INCIDENT_RESOLVED if incident else NotificationType.STRAY_RESOLVED,
                "Incident Report Resolved" if incident else "Stray Report Resolved",
                message,
            )
        return TransitionResult(report_id=current.report_id, status=patch["status"], patch=patch,
                                notification_id=notification_id)

    def decline(self, report: Report, reason: Optional[str]) -> TransitionResult:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to decline a report.")
        actor = self.current_actor()

        def build(current: Report) -> dict:
            return {
                "status": ReportStatus.DECLINED.value,
                "originalType": current.status_kind.value,
                "declineReason": reason,
                "declinedAt": utc_now(),
                "declinedBy": actor.email,
            }

        current, patch = self._transition(report, ReportEvent.DECLINE, build)
        previous = current.status_kind
        log_event(f"Report {current.report_id} declined by {actor.email}: {reason}")

        notification_id = None
        if current.user_id:
            incident = is_incident_family(previous)
            label = _report_label(previous)
            notification_id = self._notify(
                current,
                NotificationType.INCIDENT_DECLINED if incident else NotificationType.STRAY_DECLINED,
                "Incident Report Declined" if incident else "Stray Report Declined",
                f"Your {label} report has been declined. Reason: {reason}",
                decline_reason=reason,
            )
        return TransitionResult(report_id=current.report_id, status=patch["status"], patch=patch,
                                notification_id=notification_id)

    def _transition(self, report: Report, event: ReportEvent,
                    build: Callable[[Report], dict]) -> Tuple[Report, dict]:
        """Check ``event`` against the stored report and write ``build``'s patch in one store step.

        The caller's ``report`` may be stale; only the stored status decides
        whether the transition is legal.
        """
        seen = []

        def update(doc: dict) -> dict:
            current = decode(REPORTS, doc)
            next_report_state(current, event)
            seen.append(current)
            return build(current)

        try:
            patch = self.store.update_one(REPORTS, report.report_id, update)
        except StoreWriteError as e:
            log_event(f"Failed to {event.value} report {report.report_id}: {e}")
            raise
        return seen[-1], patch

    def set_read_flag(self, report: Report, value: bool) -> None:
        self._write(report, {"impoundRead": bool(value)}, "mark read")

    def hide_all(self, reports: List[Report]) -> int:
        """Hide every visible notification-eligible report in one batch."""
        targets = [r for r in reports if is_notification_eligible(r)]
        self._batch(targets, {"hiddenImpoundNotification": True}, "hide")
        return len(targets)

    def mark_all_read(self, reports: List[Report]) -> int:
        targets = [r for r in reports if is_notification_eligible(r) and not r.impound_read]
        self._batch(targets, {"impoundRead": True}, "mark read")
        return len(targets)

    def _write(self, report: Report, patch: dict, action: str) -> None:
        try:
            self.store.write_one(REPORTS, report.report_id, patch)
        except StoreWriteError as e:
            log_event(f"Failed to {action} report {report.report_id}: {e}")
            raise

    def _batch(self, reports: List[Report], patch: dict, action: str) -> None:
        if not reports:
            return
        try:
            self.store.write_batch([(REPORTS, r.report_id, dict(patch)) for r in reports])
        except StoreWriteError as e:
            log_event(f"Failed to {action} {len(reports)} report notification(s): {e}")
            raise
        log_event(f"Bulk {action} applied to {len(reports)} report notification(s).")

    def _notify(self, report: Report, kind: NotificationType, title: str, message: str,
                decline_reason: Optional[str] = None) -> Optional[str]:
        notification = UserNotification(
            notification_id="",
            user_id=report.user_id,
            type=kind,
            title=title,
            message=message,
            report_id=report.report_id,
            location=report.location_name,
            decline_reason=decline_reason,
            created_at=utc_now(),
        )
        fields = _user_notification_to_dict(notification)
        fields.pop("id")
        try:
            notification_id = self.store.create_one(USER_NOTIFICATIONS, fields)
        except StoreWriteError as e:
            # the transition itself already succeeded
            log_event(f"Could not notify user {report.user_id} about report {report.report_id}: {e}")
            return None
        log_event(f"Notification {kind.value} sent to user {report.user_id}.")
        return notification_id
