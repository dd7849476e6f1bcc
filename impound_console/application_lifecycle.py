from enum import Enum
from typing import Callable, Optional

from .activity import log_event
from .errors import IllegalTransitionError, StoreWriteError, ValidationError
from .models import APPLICATIONS, Actor, AdoptionApplication, ApplicationStatus, decode
from .store import RecordStore, utc_now

PromptForText = Callable[[str], Optional[str]]


class ApplicationEvent(str, Enum):
    APPROVE = "approve"
    DECLINE = "decline"


APPLICATION_TRANSITIONS = {
    (ApplicationStatus.SUBMITTED, ApplicationEvent.APPROVE): ApplicationStatus.APPROVED,
    (ApplicationStatus.SUBMITTED, ApplicationEvent.DECLINE): ApplicationStatus.DECLINED,
}


def next_application_status(app: AdoptionApplication, event: ApplicationEvent) -> ApplicationStatus:
    target = APPLICATION_TRANSITIONS.get((app.status_kind, event))
    if target is None:
        raise IllegalTransitionError("application", app.status, event.value)
    return target


class ApplicationLifecycle:
    """Submitted applications are approved or declined exactly once.

    The legality check reads the stored application, not the caller's copy.
    """

    def __init__(self, store: RecordStore, current_actor: Callable[[], Actor]):
        self.store = store
        self.current_actor = current_actor

    def approve(self, app: AdoptionApplication) -> dict:
        actor = self.current_actor()

        def update(doc: dict) -> dict:
            status = next_application_status(decode(APPLICATIONS, doc), ApplicationEvent.APPROVE)
            return {
                "status": status.value,
                "processedDate": utc_now(),
                "processedBy": actor.email,
            }

        patch = self._write(app, update, "approve")
        log_event(f"Application {app.application_id} for '{app.pet_name}' approved by {actor.email}.")
        return patch

    def decline(self, app: AdoptionApplication, reason: Optional[str]) -> dict:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to decline an application.")
        actor = self.current_actor()

        def update(doc: dict) -> dict:
            status = next_application_status(decode(APPLICATIONS, doc), ApplicationEvent.DECLINE)
            now = utc_now()
            # declines fill both the decline and the processing audit trail
            return {
                "status": status.value,
                "notes": reason,
                "declinedAt": now,
                "declinedBy": actor.email,
                "processedDate": now,
                "processedBy": actor.email,
            }

        patch = self._write(app, update, "decline")
        log_event(f"Application {app.application_id} for '{app.pet_name}' declined by {actor.email}: {reason}")
        return patch

    def decline_interactive(self, app: AdoptionApplication, prompt_for_text: PromptForText) -> Optional[dict]:
        """Ask the operator for a reason; a cancelled prompt changes nothing."""
        reason = prompt_for_text(f"Reason for declining the application for {app.pet_name or 'this pet'}:")
        if reason is None:
            return None
        return self.decline(app, reason)

    def _write(self, app: AdoptionApplication, update: Callable[[dict], dict], action: str) -> dict:
        try:
            return self.store.update_one(APPLICATIONS, app.application_id, update)
        except StoreWriteError as e:
            log_event(f"Failed to {action} application {app.application_id}: {e}")
            raise
