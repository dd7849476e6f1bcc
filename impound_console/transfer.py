"""
Adoptable-pet to owned-pet transfer.

A transfer is three writes: create the owned pet, notify the new owner,
delete the adoptable listing. The store offers no cross-document
transaction, so each transfer is recorded as a ``TransferAttempt`` before the
first write and updated after every step. The create steps use ids derived
from the attempt id, so ``resume`` can replay the remaining steps without
ever duplicating a pet or a notification.

Before any step runs the attempt claims the adoptable listing under the
store lock, so a listing that is gone or already held by a live attempt is
refused instead of producing a second owned pet.

A failure in the first step is a plain ``StoreWriteError`` (nothing was
written); a failure after it raises ``PartialTransferError`` and leaves the
attempt in the ``partial`` state until it is resumed.
"""
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel

from .activity import log_event
from .errors import PartialTransferError, StoreWriteError, ValidationError
from .models import (
    ADOPTABLE_PETS,
    CAT_BREEDS,
    DOG_BREEDS,
    PET_TYPES,
    PETS,
    REGULAR_ROLE,
    TRANSFER_ATTEMPTS,
    USER_NOTIFICATIONS,
    Actor,
    AdoptablePet,
    AdoptionApplication,
    NotificationType,
    OwnedPet,
    TransferAttempt,
    UserAccount,
    UserNotification,
    _attempt_from_dict,
    _attempt_to_dict,
    _owned_pet_to_dict,
    _user_notification_to_dict,
)
from .store import RecordStore, utc_now

STEP_CREATE_PET = "create_pet"
STEP_NOTIFY_OWNER = "notify_owner"
STEP_RETIRE_LISTING = "retire_listing"
TRANSFER_STEPS = (STEP_CREATE_PET, STEP_NOTIFY_OWNER, STEP_RETIRE_LISTING)

_CAT_ONLY_BREEDS = {b.lower() for b in CAT_BREEDS} - {b.lower() for b in DOG_BREEDS}


class TransferCandidate(BaseModel):
    user_id: str
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    latest_application_id: Optional[str] = None


def infer_pet_type(pet_type: Optional[str], breed: Optional[str]) -> str:
    """Keep an explicit dog/cat tag, otherwise guess from the breed text."""
    if (pet_type or "").lower() in PET_TYPES:
        return pet_type.lower()
    breed_text = (breed or "").strip().lower()
    if "cat" in breed_text or breed_text in _CAT_ONLY_BREEDS:
        return "cat"
    return "dog"


def transfer_candidates(users: List[UserAccount], applications: List[AdoptionApplication],
                        search: str = "") -> List[TransferCandidate]:
    """Regular users, enriched with contact details from their latest application."""
    latest: Dict[str, AdoptionApplication] = {}
    for app in applications:
        if not app.user_id:
            continue
        current = latest.get(app.user_id)
        if current is None or (app.created_at or "") > (current.created_at or ""):
            latest[app.user_id] = app

    needle = search.strip().lower()
    candidates = []
    for user in users:
        if user.role != REGULAR_ROLE:
            continue
        app = latest.get(user.user_id)
        candidate = TransferCandidate(
            user_id=user.user_id,
            email=user.email,
            full_name=user.full_name or (app.applicant.full_name if app else None),
            phone=user.contact_number or (app.applicant.phone if app else None),
            address=user.address or (app.applicant.address if app else None),
            latest_application_id=app.application_id if app else None,
        )
        if needle and needle not in (candidate.full_name or "").lower() and needle not in candidate.email.lower():
            continue
        candidates.append(candidate)
    return sorted(candidates, key=lambda c: (c.full_name or c.email).lower())


class TransferOrchestrator:
    def __init__(self, store: RecordStore, current_actor: Callable[[], Actor]):
        self.store = store
        self.current_actor = current_actor

    def transfer(self, pet: AdoptablePet, owner: TransferCandidate) -> TransferAttempt:
        actor = self.current_actor()
        if self.store.get_one(ADOPTABLE_PETS, pet.pet_id) is None:
            raise ValidationError(f"'{pet.pet_name}' is no longer listed for adoption.")
        attempt_id = uuid4().hex
        now = utc_now()
        owned = OwnedPet(
            pet_id=f"{attempt_id}-pet",
            pet_name=pet.pet_name,
            pet_type=infer_pet_type(pet.pet_type, pet.breed),
            breed=pet.breed,
            age=pet.age,
            gender=pet.gender or "male",
            description=pet.description,
            image_url=pet.image_url,
            vaccinated=pet.vaccinated,
            vaccinated_date=pet.vaccinated_date,
            dewormed=pet.dewormed,
            dewormed_date=pet.dewormed_date,
            anti_rabies=pet.anti_rabies,
            anti_rabies_date=pet.anti_rabies_date,
            user_id=owner.user_id,
            owner_full_name=owner.full_name,
            owner_email=owner.email,
            contact_number=owner.phone,
            owner_address=owner.address,
            transferred_from="impound",
            transferred_at=now,
            transferred_by=actor.email,
            original_adoptable_id=pet.pet_id,
            created_at=now,
        )
        notification = UserNotification(
            notification_id=f"{attempt_id}-notice",
            user_id=owner.user_id,
            type=NotificationType.PET_TRANSFER,
            title="Pet Transferred to You",
            message=(f"{pet.pet_name} has been transferred to you by the animal impound. "
                     f"You can now find {pet.pet_name} in your pets list."),
            pet_name=pet.pet_name,
            pet_id=owned.pet_id,
            created_at=now,
        )
        attempt = TransferAttempt(
            attempt_id=attempt_id,
            adoptable_id=pet.pet_id,
            user_id=owner.user_id,
            pet_doc_id=owned.pet_id,
            notification_id=notification.notification_id,
            pet_doc=_owned_pet_to_dict(owned),
            notification_doc=_user_notification_to_dict(notification),
            started_at=now,
            updated_at=now,
            started_by=actor.email,
        )
        try:
            self.store.create_one(TRANSFER_ATTEMPTS, _attempt_to_dict(attempt), doc_id=attempt_id)
        except StoreWriteError as e:
            log_event(f"Transfer of '{pet.pet_name}' not started: {e}")
            raise
        self._claim_listing(attempt, pet.pet_name)
        log_event(f"Transfer {attempt_id} started: '{pet.pet_name}' to {owner.email} by {actor.email}.")
        return self._run(attempt)

    def _claim_listing(self, attempt: TransferAttempt, pet_name: Optional[str]) -> None:
        """Mark the listing as taken by ``attempt``; only one live attempt may hold it.

        An attempt that failed in its first step wrote nothing, so its claim
        can be taken over.
        """
        def claim(doc: dict) -> dict:
            holder = doc.get("transferAttemptId")
            if holder and holder != attempt.attempt_id:
                held = self.store.get_one(TRANSFER_ATTEMPTS, holder)
                if held is not None and held.get("status") != "failed":
                    raise ValidationError(f"'{pet_name}' is already being transferred (attempt {holder}).")
            return {"transferAttemptId": attempt.attempt_id}

        try:
            self.store.update_one(ADOPTABLE_PETS, attempt.adoptable_id, claim)
        except (ValidationError, StoreWriteError) as e:
            attempt.status = "failed"
            attempt.error = str(e)
            self._record(attempt)
            log_event(f"Transfer {attempt.attempt_id} not started: {e}")
            raise

    def resume(self, attempt_id: str) -> TransferAttempt:
        """Replay the steps an interrupted attempt has not completed."""
        doc = self.store.get_one(TRANSFER_ATTEMPTS, attempt_id)
        if doc is None:
            raise ValidationError(f"Unknown transfer attempt {attempt_id}.")
        attempt = _attempt_from_dict(doc)
        if attempt.status == "completed":
            return attempt
        if not attempt.completed_steps and self.store.get_one(ADOPTABLE_PETS, attempt.adoptable_id) is None:
            raise ValidationError(f"The listing for transfer {attempt_id} no longer exists.")
        if not attempt.completed_steps:
            self._claim_listing(attempt, attempt.pet_doc.get("petName"))
        log_event(f"Transfer {attempt_id} resumed by {self.current_actor().email}.")
        return self._run(attempt)

    def attempts(self) -> List[TransferAttempt]:
        docs = self.store.list_all(TRANSFER_ATTEMPTS)
        return sorted((_attempt_from_dict(d) for d in docs), key=lambda a: a.started_at or "", reverse=True)

    def _run(self, attempt: TransferAttempt) -> TransferAttempt:
        for step in TRANSFER_STEPS:
            if step in attempt.completed_steps:
                continue
            try:
                self._perform(step, attempt)
            except StoreWriteError as e:
                remaining = [s for s in TRANSFER_STEPS if s not in attempt.completed_steps]
                attempt.error = str(e)
                if not attempt.completed_steps:
                    attempt.status = "failed"
                    self._record(attempt)
                    log_event(f"Transfer {attempt.attempt_id} failed at {step}: {e}")
                    raise StoreWriteError(f"Transfer failed, nothing was changed: {e}") from e
                attempt.status = "partial"
                self._record(attempt)
                log_event(f"Transfer {attempt.attempt_id} stopped at {step}: {e}")
                raise PartialTransferError(attempt.attempt_id, attempt.completed_steps, remaining, e) from e
            attempt.completed_steps.append(step)
            self._record(attempt)

        attempt.status = "completed"
        attempt.error = None
        self._record(attempt)
        log_event(f"Transfer {attempt.attempt_id} completed: pet {attempt.pet_doc_id} owned by {attempt.user_id}.")
        return attempt

    def _perform(self, step: str, attempt: TransferAttempt) -> None:
        if step == STEP_CREATE_PET:
            self.store.create_one(PETS, attempt.pet_doc, doc_id=attempt.pet_doc_id)
        elif step == STEP_NOTIFY_OWNER:
            self.store.create_one(USER_NOTIFICATIONS, attempt.notification_doc, doc_id=attempt.notification_id)
        elif step == STEP_RETIRE_LISTING:
            self.store.delete_one(ADOPTABLE_PETS, attempt.adoptable_id)

    def _record(self, attempt: TransferAttempt) -> None:
        attempt.updated_at = utc_now()
        try:
            self.store.write_one(TRANSFER_ATTEMPTS, attempt.attempt_id, {
                "completedSteps": list(attempt.completed_steps),
                "status": attempt.status,
                "error": attempt.error,
                "updatedAt": attempt.updated_at,
            })
        except StoreWriteError as e:
            # replaying a step is harmless, so a stale log only costs a redundant write
            log_event(f"Could not record progress of transfer {attempt.attempt_id}: {e}")
