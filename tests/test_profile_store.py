from __future__ import annotations

import pytest

from cabinet.core.errors import NotFoundError, PhoneTakenError
from cabinet.models.entities import AuthRecord, Student, TutorProfile


def _profile(identity: str = "tutor-1", phone: str = "+79991234567") -> TutorProfile:
    return TutorProfile(id=identity, phone=phone, full_name="Ivanov Ivan", subjects=["Математика"], city="Москва")


def _auth(identity: str = "tutor-1", phone: str = "+79991234567") -> AuthRecord:
    return AuthRecord(user_id=identity, phone=phone, hashed_password="$argon2id$placeholder")


@pytest.mark.asyncio
async def test_create_indexes_profile_by_phone_and_identity(profiles, kv):
    await profiles.create(_profile(), _auth())

    by_phone = await profiles.get_by_phone("+79991234567")
    by_identity = await profiles.get_by_identity("tutor-1")
    assert by_phone is not None and by_identity is not None
    assert by_phone.to_json() == by_identity.to_json()
    assert sorted(kv.keys()) == ["auth:+79991234567", "phone:+79991234567", "tutor:tutor-1"]
    assert await kv.get("phone:+79991234567") == "tutor-1"


@pytest.mark.asyncio
async def test_duplicate_phone_is_rejected_and_first_profile_untouched(profiles):
    await profiles.create(_profile(), _auth())
    before = (await profiles.get_by_identity("tutor-1")).to_json()
    auth_before = (await profiles.get_auth("+79991234567")).to_json()

    with pytest.raises(PhoneTakenError):
        await profiles.create(_profile(identity="tutor-2"), _auth(identity="tutor-2"))

    assert (await profiles.get_by_identity("tutor-1")).to_json() == before
    assert (await profiles.get_auth("+79991234567")).to_json() == auth_before
    assert await profiles.get_by_identity("tutor-2") is None


@pytest.mark.asyncio
async def test_lookups_of_unknown_keys_return_none(profiles):
    assert await profiles.get_by_phone("+70000000000") is None
    assert await profiles.get_by_identity("missing") is None
    assert await profiles.get_auth("+70000000000") is None


@pytest.mark.asyncio
async def test_partial_registration_leaves_phone_unclaimed(profiles, kv):
    # Simulates a crash after the canonical write but before the phone index.
    await kv.set("tutor:orphan", _profile(identity="orphan").to_json())

    assert not await profiles.phone_registered("+79991234567")
    await profiles.create(_profile(), _auth())
    assert (await profiles.get_by_phone("+79991234567")).id == "tutor-1"


@pytest.mark.asyncio
async def test_views_stay_identical_after_every_save(profiles):
    await profiles.create(_profile(), _auth())

    for step in range(1, 4):
        def change(profile, step=step):
            profile.onboarding_step = step
            profile.students.append(Student(name=f"S{step}", age="15", level="ЕГЭ/ОГЭ", subject="Математика"))

        await profiles.mutate("tutor-1", change)
        by_phone = await profiles.get_by_phone("+79991234567")
        by_identity = await profiles.get_by_identity("tutor-1")
        assert by_phone.to_json() == by_identity.to_json()
        assert by_identity.onboarding_step == step
        assert len(by_identity.students) == step


@pytest.mark.asyncio
async def test_mutate_missing_profile_raises_not_found(profiles):
    with pytest.raises(NotFoundError):
        await profiles.mutate("ghost", lambda profile: None)
