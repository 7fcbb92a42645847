from __future__ import annotations

import uuid
from dataclasses import dataclass

from cabinet.core.errors import AuthFailure, NotFoundError, PhoneTakenError, UnauthorizedError
from cabinet.core.logging import DOMAIN_AUTH, get_domain_logger, mask_phone
from cabinet.core.password import PasswordHasher
from cabinet.models.entities import AuthRecord, TutorProfile
from cabinet.services.profile_store import ProfileStore
from cabinet.services.session_store import SessionStore

logger = get_domain_logger(__name__, DOMAIN_AUTH)

GENERIC_LOGIN_FAILURE = "Invalid phone number or password"


@dataclass
class Registration:
    phone: str
    password: str
    full_name: str
    subjects: list[str]
    city: str
    experience: str = ""
    levels: list[str] | None = None
    format: str = ""
    rate: str = ""


@dataclass
class LoginResult:
    token: str
    profile: TutorProfile


class AuthService:
    def __init__(
        self,
        profiles: ProfileStore,
        sessions: SessionStore,
        hasher: PasswordHasher,
        *,
        expose_failure_reason: bool = False,
    ):
        self._profiles = profiles
        self._sessions = sessions
        self._hasher = hasher
        self._expose_failure_reason = expose_failure_reason

    async def register(self, data: Registration) -> str:
        # Cheap pre-check so a taken phone does not pay for an argon2 hash;
        # ProfileStore.create repeats it under the phone lock.
        if await self._profiles.phone_registered(data.phone):
            logger.info("Registration rejected, phone taken | phone=%s", mask_phone(data.phone))
            raise PhoneTakenError()

        identity = str(uuid.uuid4())
        profile = TutorProfile(
            id=identity,
            phone=data.phone,
            full_name=data.full_name,
            subjects=list(data.subjects),
            city=data.city,
            experience=data.experience or "",
            levels=list(data.levels or []),
            format=data.format or "",
            rate=data.rate or "",
            onboarding_step=0,
        )
        auth = AuthRecord(
            user_id=identity,
            phone=data.phone,
            hashed_password=self._hasher.hash(data.password),
            created_at=profile.created_at,
        )
        await self._profiles.create(profile, auth)
        logger.info("Tutor registered | identity=%s", identity)
        return identity

    def _login_failure(self, reason: AuthFailure, detail: str) -> UnauthorizedError:
        if self._expose_failure_reason:
            return UnauthorizedError(reason, detail)
        return UnauthorizedError(reason, GENERIC_LOGIN_FAILURE, code="invalid_credentials")

    async def login(self, phone: str, password: str) -> LoginResult:
        auth = await self._profiles.get_auth(phone)
        if auth is None:
            self._hasher.dummy_verify()
            logger.warning("Login failed | reason=%s | phone=%s", AuthFailure.UNKNOWN_PHONE.value, mask_phone(phone))
            raise self._login_failure(AuthFailure.UNKNOWN_PHONE, "No tutor is registered with this phone number")

        if not self._hasher.verify(password, auth.hashed_password):
            logger.warning("Login failed | reason=%s | phone=%s", AuthFailure.BAD_CREDENTIAL.value, mask_phone(phone))
            raise self._login_failure(AuthFailure.BAD_CREDENTIAL, "Wrong password")

        profile = await self._profiles.get_by_identity(auth.user_id)
        if profile is None:
            logger.error("Credentials exist without a profile | identity=%s", auth.user_id)
            raise NotFoundError("Tutor profile not found")

        session = await self._sessions.create(auth.user_id, auth.phone)
        logger.info("Tutor logged in | identity=%s", auth.user_id)
        return LoginResult(token=session.token, profile=profile)

    async def logout(self, token: str | None) -> None:
        await self._sessions.delete(token or "")

    async def resolve_session(self, token: str | None) -> TutorProfile:
        session = await self._sessions.verify(token or "")
        profile = await self._profiles.get_by_identity(session.user_id)
        if profile is None:
            # A valid session for a profile that does not exist is a backend defect.
            logger.error("Session references a missing profile | identity=%s", session.user_id)
            raise NotFoundError("Tutor profile not found")
        return profile

    async def resolve_identity(self, token: str | None) -> str:
        """Identity behind an active session, without loading the profile."""
        session = await self._sessions.verify(token or "")
        return session.user_id
