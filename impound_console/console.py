"""
One operator's viewing session.

A ``ConsoleSession`` owns the subscriptions for the collections the console
displays, the novelty detectors attached to them and the latest decoded state
of each collection. Operator actions are delegated to the lifecycle, posting
and transfer components; their writes come back through the subscriptions,
so the session state only ever reflects delivered snapshots.
"""
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .activity import log_event
from .adoptable import AdoptableForm, AdoptablePosting
from .application_lifecycle import ApplicationLifecycle, PromptForText
from .classifier import ReportBuckets, classify
from .errors import NotFoundError, SubscriptionError
from .models import (
    ADOPTABLE_PETS,
    APPLICATIONS,
    PETS,
    REPORTS,
    USERS,
    Actor,
    AdoptablePet,
    AdoptionApplication,
    OwnedPet,
    Report,
    TransferAttempt,
    UserAccount,
    decode_all,
)
from .novelty import Alert, NotifyUser, NoveltyDetector, summarize_application, summarize_report
from .report_lifecycle import ReportLifecycle, TransitionResult
from .store import RecordStore, Snapshot, Subscription
from .transfer import TransferCandidate, TransferOrchestrator, transfer_candidates

Confirm = Callable[[str], bool]

# (collection, order field, direction)
SUBSCRIPTIONS = (
    (REPORTS, "reportTime", "desc"),
    (APPLICATIONS, "createdAt", "desc"),
    (ADOPTABLE_PETS, "createdAt", "desc"),
    (PETS, "transferredAt", "desc"),
    (USERS, "createdAt", "asc"),
)


class ConsoleSession:
    def __init__(self, store: RecordStore, actor: Actor, notify_user: Optional[NotifyUser] = None):
        self.store = store
        self.actor = actor
        self.notify_user = notify_user

        self.reports: List[Report] = []
        self.buckets = ReportBuckets()
        self.applications: List[AdoptionApplication] = []
        self.adoptable_pets: List[AdoptablePet] = []
        self.transferred_pets: List[OwnedPet] = []
        self.users: List[UserAccount] = []
        self.alerts: List[Alert] = []
        self.errors: List[SubscriptionError] = []
        self.open_application_id: Optional[str] = None
        self.last_active = datetime.now(timezone.utc)

        self.report_detector: Optional[NoveltyDetector] = None
        self.application_detector: Optional[NoveltyDetector] = None
        self._subscriptions: List[Subscription] = []

        self.report_lifecycle = ReportLifecycle(store, self.current_actor)
        self.application_lifecycle = ApplicationLifecycle(store, self.current_actor)
        self.posting = AdoptablePosting(store, self.current_actor)
        self.transfers = TransferOrchestrator(store, self.current_actor)

    def current_actor(self) -> Actor:
        return self.actor

    def touch(self) -> None:
        self.last_active = datetime.now(timezone.utc)

    @property
    def active(self) -> bool:
        return bool(self._subscriptions)

    # --- Subscriptions ---
    def start(self) -> None:
        if self.active:
            return
        # detectors live exactly as long as their subscriptions
        self.report_detector = NoveltyDetector(REPORTS, summarize_report, self.notify_user)
        self.application_detector = NoveltyDetector(APPLICATIONS, summarize_application, self.notify_user)
        handlers = {
            REPORTS: self._on_reports,
            APPLICATIONS: self._on_applications,
            ADOPTABLE_PETS: self._on_adoptable_pets,
            PETS: self._on_pets,
            USERS: self._on_users,
        }
        for collection, order_field, direction in SUBSCRIPTIONS:
            self._subscriptions.append(
                self.store.subscribe(collection, order_field, direction, handlers[collection], self._on_error)
            )
        log_event(f"Console session started for {self.actor.email}.")

    def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        if self._subscriptions:
            log_event(f"Console session stopped for {self.actor.email}.")
        self._subscriptions = []
        self.report_detector = None
        self.application_detector = None

    def _on_reports(self, snapshot: Snapshot) -> None:
        self.reports = decode_all(REPORTS, snapshot.docs)
        self.buckets = classify(self.reports)
        self.alerts.extend(self.report_detector.observe(snapshot))

    def _on_applications(self, snapshot: Snapshot) -> None:
        self.applications = decode_all(APPLICATIONS, snapshot.docs)
        self.alerts.extend(self.application_detector.observe(snapshot))

    def _on_adoptable_pets(self, snapshot: Snapshot) -> None:
        self.adoptable_pets = decode_all(ADOPTABLE_PETS, snapshot.docs)

    def _on_pets(self, snapshot: Snapshot) -> None:
        pets = decode_all(PETS, snapshot.docs)
        self.transferred_pets = [p for p in pets if p.transferred_from == "impound"]

    def _on_users(self, snapshot: Snapshot) -> None:
        self.users = decode_all(USERS, snapshot.docs)

    def _on_error(self, error: SubscriptionError) -> None:
        # stale data keeps being served
        self.errors.append(error)

    def drain_alerts(self) -> List[Alert]:
        alerts, self.alerts = self.alerts, []
        return alerts

    def drain_errors(self) -> List[SubscriptionError]:
        errors, self.errors = self.errors, []
        return errors

    # --- Lookups ---
    def report(self, report_id: str) -> Report:
        found = next((r for r in self.reports if r.report_id == report_id), None)
        if found is None:
            raise NotFoundError("report", report_id)
        return found

    def application(self, application_id: str) -> AdoptionApplication:
        found = next((a for a in self.applications if a.application_id == application_id), None)
        if found is None:
            raise NotFoundError("application", application_id)
        return found

    def adoptable_pet(self, pet_id: str) -> AdoptablePet:
        found = next((p for p in self.adoptable_pets if p.pet_id == pet_id), None)
        if found is None:
            raise NotFoundError("adoptable pet", pet_id)
        return found

    # --- Reports ---
    def resolve_report(self, report_id: str) -> TransitionResult:
        return self.report_lifecycle.resolve(self.report(report_id))

    def decline_report(self, report_id: str, reason: Optional[str]) -> TransitionResult:
        return self.report_lifecycle.decline(self.report(report_id), reason)

    def set_report_read(self, report_id: str, value: bool = True) -> None:
        self.report_lifecycle.set_read_flag(self.report(report_id), value)

    def hide_all_notifications(self) -> int:
        return self.report_lifecycle.hide_all(self.buckets.notifications)

    def mark_all_notifications_read(self) -> int:
        return self.report_lifecycle.mark_all_read(self.buckets.notifications)

    # --- Applications ---
    def open_application(self, application_id: str) -> AdoptionApplication:
        app = self.application(application_id)
        self.open_application_id = app.application_id
        return app

    def close_application(self) -> None:
        self.open_application_id = None

    def approve_application(self, application_id: str) -> dict:
        patch = self.application_lifecycle.approve(self.application(application_id))
        self._close_if_open(application_id)
        return patch

    def decline_application(self, application_id: str, reason: Optional[str]) -> dict:
        patch = self.application_lifecycle.decline(self.application(application_id), reason)
        self._close_if_open(application_id)
        return patch

    def decline_application_interactive(self, application_id: str,
                                        prompt_for_text: PromptForText) -> Optional[dict]:
        patch = self.application_lifecycle.decline_interactive(self.application(application_id), prompt_for_text)
        if patch is not None:
            self._close_if_open(application_id)
        return patch

    def _close_if_open(self, application_id: str) -> None:
        if self.open_application_id == application_id:
            self.open_application_id = None

    # --- Adoptable pets ---
    def post_adoptable(self, form: AdoptableForm, image: Optional[bytes] = None, image_name: str = "") -> str:
        return self.posting.post(form, image, image_name)

    def edit_adoptable(self, pet_id: str, form: AdoptableForm, image: Optional[bytes] = None,
                       image_name: str = "") -> dict:
        return self.posting.edit(self.adoptable_pet(pet_id), form, image, image_name)

    def delete_adoptable(self, pet_id: str, confirm: Confirm) -> bool:
        return self.posting.delete(self.adoptable_pet(pet_id), confirm)

    # --- Transfers ---
    def transfer_candidates(self, search: str = "") -> List[TransferCandidate]:
        return transfer_candidates(self.users, self.applications, search)

    def transfer(self, pet_id: str, user_id: str) -> TransferAttempt:
        pet = self.adoptable_pet(pet_id)
        owner = next((c for c in self.transfer_candidates() if c.user_id == user_id), None)
        if owner is None:
            raise NotFoundError("transfer candidate", user_id)
        return self.transfers.transfer(pet, owner)

    def resume_transfer(self, attempt_id: str) -> TransferAttempt:
        return self.transfers.resume(attempt_id)
