"""
Entity schemas and their wire mapping.

Python attributes are snake_case; persisted documents keep the camelCase
field names produced by the reporting and mobile clients. Every entity has a
``_x_to_dict`` / ``_x_from_dict`` pair. ``decode`` is fail-closed: a document
that does not fit its schema raises ``DecodeError`` instead of being filled
in with defaults.
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .activity import log_event
from .errors import DecodeError

# --- Collections ---
REPORTS = "stray_reports"
APPLICATIONS = "adoption_applications"
ADOPTABLE_PETS = "adoptable_pets"
PETS = "pets"
USER_NOTIFICATIONS = "user_notifications"
USERS = "users"
TRANSFER_ATTEMPTS = "transfer_attempts"

ADMIN_ROLES = ("superadmin", "impound_admin")
REGULAR_ROLE = "user"


class ReportStatus(str, Enum):
    STRAY = "Stray"
    IN_PROGRESS = "In Progress"
    LOST = "Lost"
    INCIDENT = "Incident"
    RESOLVED = "Resolved"
    DECLINED = "Declined"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ReportStatus"]:
        """Case-insensitive lookup; None for missing or unknown values."""
        if not isinstance(value, str):
            return None
        wanted = value.strip().lower()
        return next((s for s in cls if s.value.lower() == wanted), None)


ACTIVE_REPORT_STATUSES = (ReportStatus.STRAY, ReportStatus.IN_PROGRESS, ReportStatus.LOST, ReportStatus.INCIDENT)


class ApplicationStatus(str, Enum):
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    DECLINED = "Declined"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ApplicationStatus"]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.SUBMITTED
        if not isinstance(value, str):
            return None
        wanted = value.strip().lower()
        return next((s for s in cls if s.value.lower() == wanted), None)


class NotificationType(str, Enum):
    STRAY_RESOLVED = "stray_resolved"
    INCIDENT_RESOLVED = "incident_resolved"
    INCIDENT_DECLINED = "incident_declined"
    STRAY_DECLINED = "stray_declined"
    PET_TRANSFER = "pet_transfer"


PET_TYPES = ("dog", "cat")
GENDERS = ("male", "female")

CAT_BREEDS = [
    'Puspin (Mixed Breed)', 'Persian', 'Siamese', 'Maine Coon', 'British Shorthair', 'Ragdoll',
    'Bengal', 'Abyssinian', 'Russian Blue', 'Birman', 'Sphynx', 'Scottish Fold',
    'Norwegian Forest Cat', 'Burmese', 'Oriental Shorthair', 'Manx', 'Devon Rex', 'Cornish Rex',
    'Somali', 'Turkish Angora', 'Chartreux', 'Tonkinese', 'Balinese', 'Egyptian Mau', 'Ocicat',
    'Bombay', 'Havana Brown', 'Singapura', 'Korat', 'Snowshoe', 'American Curl', 'Selkirk Rex',
    'Mixed/Unknown',
]

DOG_BREEDS = [
    'Aspin (Mixed Breed)', 'Labrador Retriever', 'Golden Retriever', 'German Shepherd', 'Bulldog',
    'Poodle', 'Beagle', 'Rottweiler', 'Yorkshire Terrier', 'Dachshund', 'Siberian Husky',
    'Great Dane', 'Chihuahua', 'Boxer', 'Shih Tzu', 'Boston Terrier', 'Pomeranian',
    'Australian Shepherd', 'Maltese', 'Cavalier King Charles Spaniel', 'French Bulldog',
    'Cocker Spaniel', 'Border Collie', 'Mastiff', 'Basset Hound', 'Dalmatian', 'Bichon Frise',
    'Akita', 'Collie', 'Chow Chow', 'Doberman Pinscher', 'Bernese Mountain Dog', 'Weimaraner',
    'Vizsla', 'Mixed/Unknown',
]

BREEDS_BY_TYPE = {"dog": DOG_BREEDS, "cat": CAT_BREEDS}

# (flag field, date field) pairs shared by adoptable and owned pets
MEDICAL_FIELDS = (
    ("vaccinated", "vaccinatedDate"),
    ("dewormed", "dewormedDate"),
    ("antiRabies", "antiRabiesDate"),
)

LEGACY_IMAGE_PREFIXES = ("file://", "content://", "ph://", "assets-library://")


def _clean_image_url(value: Any) -> Optional[str]:
    """Legacy device-local image references are treated as absent."""
    if not isinstance(value, str) or not value.strip():
        return None
    if value.strip().lower().startswith(LEGACY_IMAGE_PREFIXES):
        return None
    return value


# --- Actor ---
class Actor(BaseModel):
    id: str
    email: str
    role: str


# --- Reports ---
class Report(BaseModel):
    report_id: str
    status: Optional[str] = None
    report_time: Optional[str] = None
    location_name: Optional[str] = None
    contact_number: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    user_id: Optional[str] = None
    impound_read: bool = False
    hidden_impound_notification: bool = False
    original_type: Optional[str] = None
    decline_reason: Optional[str] = None
    resolved_at: Optional[str] = None
    resolved_by: Optional[str] = None
    declined_at: Optional[str] = None
    declined_by: Optional[str] = None

    @property
    def status_kind(self) -> Optional[ReportStatus]:
        return ReportStatus.parse(self.status)


def _report_to_dict(r: Report) -> dict:
    return {
        "id": r.report_id,
        "status": r.status,
        "reportTime": r.report_time,
        "locationName": r.location_name,
        "contactNumber": r.contact_number,
        "description": r.description,
        "imageUrl": r.image_url,
        "userId": r.user_id,
        "impoundRead": r.impound_read,
        "hiddenImpoundNotification": r.hidden_impound_notification,
        "originalType": r.original_type,
        "declineReason": r.decline_reason,
        "resolvedAt": r.resolved_at,
        "resolvedBy": r.resolved_by,
        "declinedAt": r.declined_at,
        "declinedBy": r.declined_by,
    }


def _report_from_dict(d: dict) -> Report:
    return Report(
        report_id=d["id"],
        status=d.get("status"),
        report_time=d.get("reportTime"),
        location_name=d.get("locationName"),
        contact_number=d.get("contactNumber"),
        description=d.get("description"),
        image_url=_clean_image_url(d.get("imageUrl")),
        user_id=d.get("userId"),
        impound_read=d.get("impoundRead", False),
        hidden_impound_notification=d.get("hiddenImpoundNotification", False),
        original_type=d.get("originalType"),
        decline_reason=d.get("declineReason"),
        resolved_at=d.get("resolvedAt"),
        resolved_by=d.get("resolvedBy"),
        declined_at=d.get("declinedAt"),
        declined_by=d.get("declinedBy"),
    )


# --- Adoption applications ---
class Applicant(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class Household(BaseModel):
    adults: Optional[str] = None
    children: Optional[str] = None
    residence_type: Optional[str] = None
    landlord_approval: bool = False


class Vet(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None


class AdoptionApplication(BaseModel):
    application_id: str
    status: str = ApplicationStatus.SUBMITTED.value
    pet_id: Optional[str] = None
    user_id: Optional[str] = None
    applicant: Applicant = Applicant()
    pet_name: Optional[str] = None
    pet_breed: Optional[str] = None
    preferred_date: Optional[str] = None
    household: Household = Household()
    experience: Optional[str] = None
    current_pets: Optional[str] = None
    lifestyle: Optional[str] = None
    vet: Vet = Vet()
    references: Optional[str] = None
    created_at: Optional[str] = None
    processed_date: Optional[str] = None
    processed_by: Optional[str] = None
    declined_at: Optional[str] = None
    declined_by: Optional[str] = None
    notes: Optional[str] = None

    @property
    def status_kind(self) -> Optional[ApplicationStatus]:
        return ApplicationStatus.parse(self.status)


def _optional_text(value: Any) -> Optional[str]:
    # numeric household counts arrive as numbers from some clients
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("expected text, got bool")
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _application_to_dict(a: AdoptionApplication) -> dict:
    return {
        "id": a.application_id,
        "status": a.status,
        "petId": a.pet_id,
        "userId": a.user_id,
        "applicant": {
            "fullName": a.applicant.full_name,
            "phone": a.applicant.phone,
            "email": a.applicant.email,
            "address": a.applicant.address,
        },
        "petName": a.pet_name,
        "petBreed": a.pet_breed,
        "preferredDate": a.preferred_date,
        "household": {
            "adults": a.household.adults,
            "children": a.household.children,
            "residenceType": a.household.residence_type,
            "landlordApproval": a.household.landlord_approval,
        },
        "experience": a.experience,
        "currentPets": a.current_pets,
        "lifestyle": a.lifestyle,
        "vet": {"name": a.vet.name, "phone": a.vet.phone},
        "references": a.references,
        "createdAt": a.created_at,
        "processedDate": a.processed_date,
        "processedBy": a.processed_by,
        "declinedAt": a.declined_at,
        "declinedBy": a.declined_by,
        "notes": a.notes,
    }


def _application_from_dict(d: dict) -> AdoptionApplication:
    applicant = d.get("applicant") or {}
    household = d.get("household") or {}
    vet = d.get("vet") or {}
    return AdoptionApplication(
        application_id=d["id"],
        status=d.get("status") or ApplicationStatus.SUBMITTED.value,
        pet_id=d.get("petId"),
        user_id=d.get("userId"),
        applicant=Applicant(
            full_name=applicant.get("fullName"),
            phone=applicant.get("phone"),
            email=applicant.get("email"),
            address=applicant.get("address"),
        ),
        pet_name=d.get("petName"),
        pet_breed=d.get("petBreed"),
        preferred_date=d.get("preferredDate"),
        household=Household(
            adults=_optional_text(household.get("adults")),
            children=_optional_text(household.get("children")),
            residence_type=household.get("residenceType"),
            landlord_approval=bool(household.get("landlordApproval", False)),
        ),
        experience=d.get("experience"),
        current_pets=d.get("currentPets"),
        lifestyle=d.get("lifestyle"),
        vet=Vet(name=vet.get("name"), phone=vet.get("phone")),
        references=d.get("references"),
        created_at=d.get("createdAt"),
        processed_date=d.get("processedDate"),
        processed_by=d.get("processedBy"),
        declined_at=d.get("declinedAt"),
        declined_by=d.get("declinedBy"),
        notes=d.get("notes"),
    )


# --- Adoptable pets ---
class AdoptablePet(BaseModel):
    pet_id: str
    pet_name: str
    pet_type: Optional[str] = None
    breed: Optional[str] = None
    age: Optional[str] = None
    gender: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    vaccinated: bool = False
    vaccinated_date: Optional[str] = None
    dewormed: bool = False
    dewormed_date: Optional[str] = None
    anti_rabies: bool = False
    anti_rabies_date: Optional[str] = None
    ready_for_adoption: bool = True
    created_at: Optional[str] = None
    created_by: Optional[str] = None


def _adoptable_to_dict(p: AdoptablePet) -> dict:
    return {
        "id": p.pet_id,
        "petName": p.pet_name,
        "petType": p.pet_type,
        "breed": p.breed,
        "age": p.age,
        "gender": p.gender,
        "description": p.description,
        "imageUrl": p.image_url,
        "vaccinated": p.vaccinated,
        "vaccinatedDate": p.vaccinated_date,
        "dewormed": p.dewormed,
        "dewormedDate": p.dewormed_date,
        "antiRabies": p.anti_rabies,
        "antiRabiesDate": p.anti_rabies_date,
        "readyForAdoption": p.ready_for_adoption,
        "createdAt": p.created_at,
        "createdBy": p.created_by,
    }


def _adoptable_from_dict(d: dict) -> AdoptablePet:
    return AdoptablePet(
        pet_id=d["id"],
        pet_name=d["petName"],
        pet_type=d.get("petType"),
        breed=d.get("breed"),
        age=_optional_text(d.get("age")),
        gender=d.get("gender"),
        description=d.get("description"),
        image_url=_clean_image_url(d.get("imageUrl")),
        vaccinated=d.get("vaccinated", False),
        vaccinated_date=d.get("vaccinatedDate"),
        dewormed=d.get("dewormed", False),
        dewormed_date=d.get("dewormedDate"),
        anti_rabies=d.get("antiRabies", False),
        anti_rabies_date=d.get("antiRabiesDate"),
        ready_for_adoption=d.get("readyForAdoption", True),
        created_at=d.get("createdAt"),
        created_by=d.get("createdBy"),
    )


# --- Owned pets (transfer output) ---
class OwnedPet(BaseModel):
    pet_id: str
    pet_name: str
    pet_type: str
    breed: Optional[str] = None
    age: Optional[str] = None
    gender: str = "male"
    description: Optional[str] = None
    image_url: Optional[str] = None
    vaccinated: bool = False
    vaccinated_date: Optional[str] = None
    dewormed: bool = False
    dewormed_date: Optional[str] = None
    anti_rabies: bool = False
    anti_rabies_date: Optional[str] = None
    user_id: str
    owner_full_name: Optional[str] = None
    owner_email: Optional[str] = None
    contact_number: Optional[str] = None
    owner_address: Optional[str] = None
    transferred_from: Optional[str] = None
    transferred_at: Optional[str] = None
    transferred_by: Optional[str] = None
    original_adoptable_id: Optional[str] = None
    status: str = "safe"
    registration_status: str = "registered"
    created_at: Optional[str] = None


def _owned_pet_to_dict(p: OwnedPet) -> dict:
    return {
        "id": p.pet_id,
        "petName": p.pet_name,
        "petType": p.pet_type,
        "breed": p.breed,
        "age": p.age,
        "gender": p.gender,
        "description": p.description,
        "imageUrl": p.image_url,
        "vaccinated": p.vaccinated,
        "vaccinatedDate": p.vaccinated_date,
        "dewormed": p.dewormed,
        "dewormedDate": p.dewormed_date,
        "antiRabies": p.anti_rabies,
        "antiRabiesDate": p.anti_rabies_date,
        "userId": p.user_id,
        "ownerFullName": p.owner_full_name,
        "ownerEmail": p.owner_email,
        "contactNumber": p.contact_number,
        "ownerAddress": p.owner_address,
        "transferredFrom": p.transferred_from,
        "transferredAt": p.transferred_at,
        "transferredBy": p.transferred_by,
        "originalAdoptableId": p.original_adoptable_id,
        "status": p.status,
        "registrationStatus": p.registration_status,
        "createdAt": p.created_at,
    }


def _owned_pet_from_dict(d: dict) -> OwnedPet:
    return OwnedPet(
        pet_id=d["id"],
        pet_name=d["petName"],
        pet_type=d["petType"],
        breed=d.get("breed"),
        age=_optional_text(d.get("age")),
        gender=d.get("gender") or "male",
        description=d.get("description"),
        image_url=_clean_image_url(d.get("imageUrl")),
        vaccinated=d.get("vaccinated", False),
        vaccinated_date=d.get("vaccinatedDate"),
        dewormed=d.get("dewormed", False),
        dewormed_date=d.get("dewormedDate"),
        anti_rabies=d.get("antiRabies", False),
        anti_rabies_date=d.get("antiRabiesDate"),
        user_id=d["userId"],
        owner_full_name=d.get("ownerFullName"),
        owner_email=d.get("ownerEmail"),
        contact_number=d.get("contactNumber"),
        owner_address=d.get("ownerAddress"),
        transferred_from=d.get("transferredFrom"),
        transferred_at=d.get("transferredAt"),
        transferred_by=d.get("transferredBy"),
        original_adoptable_id=d.get("originalAdoptableId"),
        status=d.get("status", "safe"),
        registration_status=d.get("registrationStatus", "registered"),
        created_at=d.get("createdAt"),
    )


# --- User notifications ---
class UserNotification(BaseModel):
    notification_id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    report_id: Optional[str] = None
    location: Optional[str] = None
    decline_reason: Optional[str] = None
    pet_name: Optional[str] = None
    pet_id: Optional[str] = None
    read: bool = False
    created_at: Optional[str] = None


def _user_notification_to_dict(n: UserNotification) -> dict:
    data = {
        "id": n.notification_id,
        "userId": n.user_id,
        "type": n.type.value,
        "title": n.title,
        "message": n.message,
        "read": n.read,
        "createdAt": n.created_at,
    }
    # correlation fields are only written when present
    for key, value in (
        ("reportId", n.report_id),
        ("location", n.location),
        ("declineReason", n.decline_reason),
        ("petName", n.pet_name),
        ("petId", n.pet_id),
    ):
        if value is not None:
            data[key] = value
    return data


def _user_notification_from_dict(d: dict) -> UserNotification:
    return UserNotification(
        notification_id=d["id"],
        user_id=d["userId"],
        type=NotificationType(d["type"]),
        title=d.get("title", ""),
        message=d.get("message", ""),
        report_id=d.get("reportId"),
        location=d.get("location"),
        decline_reason=d.get("declineReason"),
        pet_name=d.get("petName"),
        pet_id=d.get("petId"),
        read=d.get("read", False),
        created_at=d.get("createdAt"),
    )


# --- Users ---
class UserAccount(BaseModel):
    user_id: str
    email: str
    password: Optional[str] = None
    role: str = REGULAR_ROLE
    full_name: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[str] = None


def _user_to_dict(u: UserAccount) -> dict:
    return {
        "id": u.user_id,
        "email": u.email,
        "password": u.password,
        "role": u.role,
        "fullName": u.full_name,
        "contactNumber": u.contact_number,
        "address": u.address,
        "createdAt": u.created_at,
    }


def _user_from_dict(d: dict) -> UserAccount:
    return UserAccount(
        user_id=d["id"],
        email=d["email"],
        password=d.get("password"),
        role=d.get("role") or REGULAR_ROLE,
        full_name=d.get("fullName") or d.get("displayName"),
        contact_number=d.get("contactNumber") or d.get("phone"),
        address=d.get("address"),
        created_at=d.get("createdAt"),
    )


# --- Transfer attempts ---
class TransferAttempt(BaseModel):
    attempt_id: str
    adoptable_id: str
    user_id: str
    pet_doc_id: str
    notification_id: str
    # documents written by the create steps, kept so a resume needs nothing else
    pet_doc: Dict[str, Any] = {}
    notification_doc: Dict[str, Any] = {}
    completed_steps: List[str] = []
    status: str = "in_progress"
    error: Optional[str] = None
    started_at: Optional[str] = None
    updated_at: Optional[str] = None
    started_by: Optional[str] = None


def _attempt_to_dict(a: TransferAttempt) -> dict:
    return {
        "id": a.attempt_id,
        "adoptableId": a.adoptable_id,
        "userId": a.user_id,
        "petDocId": a.pet_doc_id,
        "notificationId": a.notification_id,
        "petDoc": dict(a.pet_doc),
        "notificationDoc": dict(a.notification_doc),
        "completedSteps": list(a.completed_steps),
        "status": a.status,
        "error": a.error,
        "startedAt": a.started_at,
        "updatedAt": a.updated_at,
        "startedBy": a.started_by,
    }


def _attempt_from_dict(d: dict) -> TransferAttempt:
    return TransferAttempt(
        attempt_id=d["id"],
        adoptable_id=d["adoptableId"],
        user_id=d["userId"],
        pet_doc_id=d["petDocId"],
        notification_id=d["notificationId"],
        pet_doc=d.get("petDoc") or {},
        notification_doc=d.get("notificationDoc") or {},
        completed_steps=d.get("completedSteps", []),
        status=d.get("status", "in_progress"),
        error=d.get("error"),
        started_at=d.get("startedAt"),
        updated_at=d.get("updatedAt"),
        started_by=d.get("startedBy"),
    )


DECODERS: Dict[str, Callable[[dict], BaseModel]] = {
    REPORTS: _report_from_dict,
    APPLICATIONS: _application_from_dict,
    ADOPTABLE_PETS: _adoptable_from_dict,
    PETS: _owned_pet_from_dict,
    USER_NOTIFICATIONS: _user_notification_from_dict,
    USERS: _user_from_dict,
    TRANSFER_ATTEMPTS: _attempt_from_dict,
}


def decode(collection: str, doc: dict):
    """Decode one stored document, raising DecodeError when it does not fit."""
    decoder = DECODERS[collection]
    doc_id = doc.get("id") if isinstance(doc, dict) else None
    try:
        return decoder(doc)
    except KeyError as e:
        raise DecodeError(collection, doc_id, f"missing field {e}") from e
    except (PydanticValidationError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(collection, doc_id, str(e).splitlines()[0]) from e


def decode_all(collection: str, docs: List[dict]) -> list:
    """Decode a snapshot's documents, skipping (and logging) the rejected ones."""
    decoded = []
    for doc in docs:
        try:
            decoded.append(decode(collection, doc))
        except DecodeError as e:
            log_event(str(e))
    return decoded
