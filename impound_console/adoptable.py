"""
Adoptable-pet posting workflow: validation, create, edit and delete.
"""
from typing import Callable, List, Optional

from pydantic import BaseModel

from .activity import log_event
from .errors import StoreWriteError, ValidationError
from .models import (
    ADOPTABLE_PETS,
    BREEDS_BY_TYPE,
    GENDERS,
    PET_TYPES,
    Actor,
    AdoptablePet,
    _adoptable_to_dict,
)
from .store import RecordStore, utc_now

Confirm = Callable[[str], bool]


class AdoptableForm(BaseModel):
    pet_name: str = ""
    pet_type: str = ""
    breed: str = ""
    age: Optional[str] = None
    gender: str = ""
    description: Optional[str] = None
    vaccinated: bool = False
    vaccinated_date: Optional[str] = None
    dewormed: bool = False
    dewormed_date: Optional[str] = None
    anti_rabies: bool = False
    anti_rabies_date: Optional[str] = None
    ready_for_adoption: bool = True


# (flag attribute, date attribute, label)
_TREATMENTS = (
    ("vaccinated", "vaccinated_date", "vaccination"),
    ("dewormed", "dewormed_date", "deworming"),
    ("anti_rabies", "anti_rabies_date", "anti-rabies shot"),
)


def breeds_for(pet_type: Optional[str]) -> List[str]:
    return list(BREEDS_BY_TYPE.get((pet_type or "").lower(), []))


def change_pet_type(form: AdoptableForm, pet_type: str) -> AdoptableForm:
    """Switching the pet type invalidates the chosen breed."""
    return form.model_copy(update={"pet_type": pet_type, "breed": ""})


def form_errors(form: AdoptableForm) -> List[str]:
    errors = []
    if not form.pet_name.strip():
        errors.append("Pet name is required.")
    if form.pet_type not in PET_TYPES:
        errors.append("Pet type must be dog or cat.")
    if not form.breed:
        errors.append("Breed is required.")
    elif form.pet_type in PET_TYPES and form.breed not in breeds_for(form.pet_type):
        errors.append(f"'{form.breed}' is not a {form.pet_type} breed.")
    if form.gender not in GENDERS:
        errors.append("Gender must be male or female.")
    for flag, date_field, label in _TREATMENTS:
        if getattr(form, flag) and not (getattr(form, date_field) or "").strip():
            errors.append(f"Date of {label} is required.")
    return errors


def validate_form(form: AdoptableForm) -> AdoptableForm:
    errors = form_errors(form)
    if errors:
        raise ValidationError(" ".join(errors))
    # a treatment date only exists while its flag is checked
    update = {}
    for flag, date_field, _ in _TREATMENTS:
        update[date_field] = getattr(form, date_field).strip() if getattr(form, flag) else None
    update["pet_name"] = form.pet_name.strip()
    return form.model_copy(update=update)


def _form_fields(form: AdoptableForm) -> dict:
    return {
        "petName": form.pet_name,
        "petType": form.pet_type,
        "breed": form.breed,
        "age": form.age,
        "gender": form.gender,
        "description": form.description,
        "vaccinated": form.vaccinated,
        "vaccinatedDate": form.vaccinated_date,
        "dewormed": form.dewormed,
        "dewormedDate": form.dewormed_date,
        "antiRabies": form.anti_rabies,
        "antiRabiesDate": form.anti_rabies_date,
        "readyForAdoption": form.ready_for_adoption,
    }


class AdoptablePosting:
    def __init__(self, store: RecordStore, current_actor: Callable[[], Actor]):
        self.store = store
        self.current_actor = current_actor

    def post(self, form: AdoptableForm, image: Optional[bytes] = None, image_name: str = "") -> str:
        form = validate_form(form)
        image_url = self.store.upload_file(image, f"adoptable_pets/{image_name}") if image else None
        actor = self.current_actor()
        pet = AdoptablePet(
            pet_id="",
            image_url=image_url,
            created_at=utc_now(),
            created_by=actor.email,
            **form.model_dump(),
        )
        fields = _adoptable_to_dict(pet)
        fields.pop("id")
        try:
            pet_id = self.store.create_one(ADOPTABLE_PETS, fields)
        except StoreWriteError as e:
            log_event(f"Failed to post adoptable pet '{form.pet_name}': {e}")
            raise
        log_event(f"Adoptable pet '{form.pet_name}' posted by {actor.email}.")
        return pet_id

    def edit(self, pet: AdoptablePet, form: AdoptableForm, image: Optional[bytes] = None,
             image_name: str = "") -> dict:
        form = validate_form(form)
        patch = _form_fields(form)
        if image:
            patch["imageUrl"] = self.store.upload_file(image, f"adoptable_pets/{image_name}")
        patch["updatedAt"] = utc_now()
        try:
            self.store.write_one(ADOPTABLE_PETS, pet.pet_id, patch)
        except StoreWriteError as e:
            log_event(f"Failed to update adoptable pet {pet.pet_id}: {e}")
            raise
        log_event(f"Adoptable pet '{form.pet_name}' ({pet.pet_id}) updated.")
        return patch

    def delete(self, pet: AdoptablePet, confirm: Confirm) -> bool:
        """Remove a listing after operator confirmation; returns False when declined."""
        if not confirm(f"Delete {pet.pet_name} from the adoption list?"):
            return False
        try:
            self.store.delete_one(ADOPTABLE_PETS, pet.pet_id)
        except StoreWriteError as e:
            log_event(f"Failed to delete adoptable pet {pet.pet_id}: {e}")
            raise
        log_event(f"Adoptable pet '{pet.pet_name}' ({pet.pet_id}) deleted by {self.current_actor().email}.")
        return True
