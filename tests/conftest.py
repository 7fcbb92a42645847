from __future__ import annotations

import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
API_DIR = ROOT / "API"
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

# Test-mode runtime guards: in-process store only, no Redis traffic.
os.environ["KV_BACKEND"] = "memory"
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from cabinet.core.password import PasswordHasher  # noqa: E402
from cabinet.core.tokens import TokenIssuer  # noqa: E402
from cabinet.main import app  # noqa: E402
from cabinet.services.auth_service import AuthService, Registration  # noqa: E402
from cabinet.services.profile_store import ProfileStore  # noqa: E402
from cabinet.services.session_store import SessionStore  # noqa: E402
from cabinet.storage.kv import InMemoryKeyValueStore  # noqa: E402

PHONE = "+79991234567"
PASSWORD = "StrongPass123!"


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class YieldingStore(InMemoryKeyValueStore):
    """Suspends on every store call, like a network round trip, so requests interleave."""

    async def get(self, key):
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key, value, ttl_seconds=None):
        await asyncio.sleep(0)
        await super().set(key, value, ttl_seconds=ttl_seconds)


def make_registration(phone: str = PHONE, password: str = PASSWORD, **overrides) -> Registration:
    data = {
        "phone": phone,
        "password": password,
        "full_name": "Ivanov Ivan",
        "subjects": ["Математика"],
        "city": "Москва",
    }
    data.update(overrides)
    return Registration(**data)


@pytest.fixture
def client() -> TestClient:
    # Each test gets a fresh app state (and a fresh in-memory store) via startup.
    with TestClient(app) as tc:
        yield tc


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(key_prefix="test")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher()


@pytest.fixture
def profiles(kv) -> ProfileStore:
    return ProfileStore(kv, lock_timeout=2.0)


@pytest.fixture
def sessions(kv, clock) -> SessionStore:
    return SessionStore(kv, TokenIssuer(), clock=clock)


@pytest.fixture
def auth_service(profiles, sessions, hasher) -> AuthService:
    return AuthService(profiles, sessions, hasher)
