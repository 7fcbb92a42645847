"""
Session lifecycle on top of the key-value store.

Per token: Active -> Expired -> Absent. A token never issued is Absent.
Expiry is a fixed window from creation; access does not extend it. Expired
entries are removed lazily by the first verify() that sees them. The store TTL
(expiry + grace) only guarantees abandoned sessions eventually disappear.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from pydantic import ValidationError

from cabinet.core.errors import AuthFailure, SessionExpiredError, StoreError, UnauthorizedError
from cabinet.core.logging import DOMAIN_SESSIONS, get_domain_logger
from cabinet.core.tokens import TokenIssuer
from cabinet.models.entities import Session
from cabinet.storage.kv import KeyValueStore

logger = get_domain_logger(__name__, DOMAIN_SESSIONS)

SESSION_KEY = "session:{fingerprint}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    def __init__(
        self,
        kv: KeyValueStore,
        issuer: TokenIssuer,
        *,
        ttl: timedelta = timedelta(hours=24),
        purge_grace: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._kv = kv
        self._issuer = issuer
        self._ttl = ttl
        self._purge_grace = purge_grace
        self._clock = clock

    def _key(self, token: str) -> str:
        return SESSION_KEY.format(fingerprint=self._issuer.fingerprint(token))

    async def create(self, user_id: str, phone: str) -> Session:
        token = self._issuer.issue()
        now = self._clock()
        session = Session(
            token=token,
            user_id=user_id,
            phone=phone,
            created_at=now,
            expires_at=now + self._ttl,
        )
        store_ttl = int((self._ttl + self._purge_grace).total_seconds())
        await self._kv.set(self._key(token), session.to_json(), ttl_seconds=store_ttl)
        logger.info("Session created | user_id=%s | expires_at=%s", user_id, session.expires_at.isoformat())
        return session

    async def verify(self, token: str) -> Session:
        """Return the active session or raise UnauthorizedError / SessionExpiredError."""
        if not token:
            raise UnauthorizedError(AuthFailure.MISSING_TOKEN, "Access token was not provided")
        key = self._key(token)
        raw = await self._kv.get(key)
        if raw is None:
            raise UnauthorizedError(AuthFailure.INVALID_TOKEN, "Invalid or expired access token")
        try:
            session = Session.model_validate_json(raw)
        except ValidationError as exc:
            raise StoreError("stored session is not valid JSON") from exc

        if self._clock() > session.expires_at:
            await self._kv.delete(key)
            logger.info("Session expired and purged | user_id=%s", session.user_id)
            raise SessionExpiredError("Invalid or expired access token")
        return session.model_copy(update={"token": token})

    async def delete(self, token: str) -> None:
        if not token:
            return
        await self._kv.delete(self._key(token))
