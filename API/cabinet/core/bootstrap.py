import logging
from dataclasses import dataclass
from datetime import timedelta

from cabinet.core.password import PasswordHasher, password_hasher
from cabinet.core.settings import Settings
from cabinet.core.tokens import TokenIssuer, token_issuer
from cabinet.services.auth_service import AuthService
from cabinet.services.entity_collections import EntityCollectionManager
from cabinet.services.onboarding import OnboardingTracker
from cabinet.services.profile_store import ProfileStore
from cabinet.services.session_store import SessionStore
from cabinet.storage.kv import KeyValueStore, build_kv_store

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    kv: KeyValueStore
    profiles: ProfileStore
    sessions: SessionStore
    auth: AuthService
    onboarding: OnboardingTracker
    entities: EntityCollectionManager

    async def close(self) -> None:
        await self.kv.close()


def build_services(
    config: Settings,
    *,
    kv: KeyValueStore | None = None,
    hasher: PasswordHasher = password_hasher,
    issuer: TokenIssuer = token_issuer,
) -> ServiceContainer:
    kv = kv or build_kv_store(config)
    profiles = ProfileStore(
        kv,
        lock_timeout=config.profile_lock_timeout_seconds,
        lock_lease=config.profile_lock_lease_seconds,
    )
    sessions = SessionStore(
        kv,
        issuer,
        ttl=timedelta(hours=config.session_ttl_hours),
        purge_grace=timedelta(hours=config.session_purge_grace_hours),
    )
    auth = AuthService(
        profiles,
        sessions,
        hasher,
        expose_failure_reason=config.expose_login_failure_reason,
    )
    logger.info(
        "Services wired | env=%s | session_ttl_hours=%s | strict_onboarding=%s",
        config.app_env,
        config.session_ttl_hours,
        config.onboarding_enforce_transitions,
    )
    return ServiceContainer(
        kv=kv,
        profiles=profiles,
        sessions=sessions,
        auth=auth,
        onboarding=OnboardingTracker(profiles, enforce_transitions=config.onboarding_enforce_transitions),
        entities=EntityCollectionManager(profiles),
    )
