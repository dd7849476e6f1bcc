import pytest

from impound_console.adoptable import (
    AdoptableForm,
    AdoptablePosting,
    breeds_for,
    change_pet_type,
    form_errors,
    validate_form,
)
from impound_console.errors import ValidationError
from impound_console.models import ADOPTABLE_PETS, decode


def _form(**overrides):
    fields = dict(pet_name="Brownie", pet_type="dog", breed="Aspin (Mixed Breed)", gender="male", age="2")
    fields.update(overrides)
    return AdoptableForm(**fields)


@pytest.fixture
def posting(store, actor):
    return AdoptablePosting(store, lambda: actor)


def test_breed_list_follows_pet_type():
    assert "Persian" in breeds_for("cat")
    assert "Persian" not in breeds_for("dog")
    assert breeds_for("bird") == []
    switched = change_pet_type(_form(), "cat")
    assert switched.pet_type == "cat"
    assert switched.breed == ""


def test_checked_treatment_requires_date():
    errors = form_errors(_form(vaccinated=True, dewormed=True, dewormed_date="2026-09-01"))
    assert errors == ["Date of vaccination is required."]


def test_breed_must_match_type():
    with pytest.raises(ValidationError):
        validate_form(_form(breed="Persian"))


def test_unchecked_dates_are_cleared():
    form = validate_form(_form(pet_name="  Brownie ", anti_rabies=False, anti_rabies_date="2026-01-01"))
    assert form.pet_name == "Brownie"
    assert form.anti_rabies_date is None


def test_post_uploads_image_and_creates_listing(store, posting):
    pet_id = posting.post(_form(vaccinated=True, vaccinated_date="2026-08-15"), b"\x89PNG", "brownie.png")
    doc = store.get_one(ADOPTABLE_PETS, pet_id)
    assert doc["petName"] == "Brownie"
    assert doc["imageUrl"].startswith("/static/uploads/")
    assert doc["imageUrl"].endswith(".png")
    assert doc["vaccinatedDate"] == "2026-08-15"
    assert doc["createdBy"] == "admin@impound.local"


def test_invalid_post_writes_nothing(store, posting):
    with pytest.raises(ValidationError):
        posting.post(_form(pet_name=""))
    assert store.list_all(ADOPTABLE_PETS) == []


def test_edit_and_delete(store, posting):
    pet_id = posting.post(_form())
    pet = decode(ADOPTABLE_PETS, store.get_one(ADOPTABLE_PETS, pet_id))

    posting.edit(pet, _form(pet_name="Brownie Jr", description="Friendly"))
    assert store.get_one(ADOPTABLE_PETS, pet_id)["petName"] == "Brownie Jr"
    assert store.get_one(ADOPTABLE_PETS, pet_id)["updatedAt"]

    assert posting.delete(pet, lambda message: False) is False
    assert store.get_one(ADOPTABLE_PETS, pet_id) is not None
    assert posting.delete(pet, lambda message: True) is True
    assert store.get_one(ADOPTABLE_PETS, pet_id) is None


def test_legacy_device_image_is_absent(store):
    pet_id = store.create_one(ADOPTABLE_PETS, {"petName": "Old", "imageUrl": "file:///data/user/0/cat.jpg"})
    assert decode(ADOPTABLE_PETS, store.get_one(ADOPTABLE_PETS, pet_id)).image_url is None
