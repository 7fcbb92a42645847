"""
Tutor profile persistence.

Layout in the key-value store:

    tutor:{identity}  -> TutorProfile JSON (the canonical copy)
    phone:{phone}     -> identity (secondary index)
    auth:{phone}      -> AuthRecord JSON

A phone lookup always resolves through the index to the canonical record, so
the by-phone and by-identity views are the same bytes. Every write to a
profile runs under the aggregate lock ``tutor:{identity}``; registration runs
under ``phone:{phone}``. Read paths never lock.
"""
from __future__ import annotations

from typing import Callable, TypeVar

from pydantic import ValidationError

from cabinet.core.errors import NotFoundError, PhoneTakenError, StoreError
from cabinet.core.logging import DOMAIN_PROFILES, get_domain_logger, mask_phone
from cabinet.models.entities import AuthRecord, TutorProfile
from cabinet.storage.kv import KeyValueStore

logger = get_domain_logger(__name__, DOMAIN_PROFILES)

T = TypeVar("T")

PROFILE_KEY = "tutor:{identity}"
PHONE_INDEX_KEY = "phone:{phone}"
AUTH_KEY = "auth:{phone}"


class ProfileStore:
    def __init__(self, kv: KeyValueStore, *, lock_timeout: float = 5.0, lock_lease: float = 15.0):
        self._kv = kv
        self._lock_timeout = lock_timeout
        self._lock_lease = lock_lease

    def _lock(self, name: str):
        return self._kv.lock(name, timeout=self._lock_timeout, lease=self._lock_lease)

    async def create(self, profile: TutorProfile, auth: AuthRecord) -> None:
        """Persist a new profile and its credentials; PhoneTakenError if the phone is claimed.

        The phone index is written last: it is the claim marker, so a failure
        part-way leaves the phone free and a retried registration overwrites
        the partial records.
        """
        async with self._lock(PHONE_INDEX_KEY.format(phone=profile.phone)):
            if await self._kv.get(PHONE_INDEX_KEY.format(phone=profile.phone)) is not None:
                raise PhoneTakenError()
            await self._kv.set(PROFILE_KEY.format(identity=profile.id), profile.to_json())
            await self._kv.set(AUTH_KEY.format(phone=profile.phone), auth.to_json())
            await self._kv.set(PHONE_INDEX_KEY.format(phone=profile.phone), profile.id)
        logger.info("Profile created | identity=%s | phone=%s", profile.id, mask_phone(profile.phone))

    async def phone_registered(self, phone: str) -> bool:
        return await self._kv.get(PHONE_INDEX_KEY.format(phone=phone)) is not None

    async def get_by_identity(self, identity: str) -> TutorProfile | None:
        raw = await self._kv.get(PROFILE_KEY.format(identity=identity))
        if raw is None:
            return None
        try:
            return TutorProfile.model_validate_json(raw)
        except ValidationError as exc:
            raise StoreError(f"profile {identity} is not valid JSON") from exc

    async def get_by_phone(self, phone: str) -> TutorProfile | None:
        identity = await self._kv.get(PHONE_INDEX_KEY.format(phone=phone))
        if identity is None:
            return None
        profile = await self.get_by_identity(identity)
        if profile is None:
            logger.error("Phone index points at a missing profile | phone=%s | identity=%s", mask_phone(phone), identity)
        return profile

    async def get_auth(self, phone: str) -> AuthRecord | None:
        raw = await self._kv.get(AUTH_KEY.format(phone=phone))
        if raw is None:
            return None
        try:
            return AuthRecord.model_validate_json(raw)
        except ValidationError as exc:
            raise StoreError("auth record is not valid JSON") from exc

    async def save(self, profile: TutorProfile) -> None:
        """Overwrite the canonical record. Callers mutating a profile go through mutate()."""
        await self._kv.set(PROFILE_KEY.format(identity=profile.id), profile.to_json())

    async def mutate(self, identity: str, change: Callable[[TutorProfile], T]) -> T:
        """Load, apply ``change`` and save while holding the aggregate lock.

        Concurrent mutations of one profile are serialized, so none of them can
        overwrite another's changes with a stale copy.
        """
        async with self._lock(PROFILE_KEY.format(identity=identity)):
            profile = await self.get_by_identity(identity)
            if profile is None:
                logger.error("Mutation of a missing profile | identity=%s", identity)
                raise NotFoundError("Tutor profile not found")
            result = change(profile)
            await self.save(profile)
        return result
