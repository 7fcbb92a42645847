"""Appends students, lessons and materials to a tutor profile.

Collections are append-only: nothing here edits or removes an entity, and a
lesson's studentId is stored as given.
"""
from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from cabinet.core.errors import InvalidInputError
from cabinet.core.logging import DOMAIN_PROFILES, get_domain_logger
from cabinet.models.entities import EntityKind, Lesson, Material, StoredModel, Student, TutorProfile
from cabinet.services.profile_store import ProfileStore

logger = get_domain_logger(__name__, DOMAIN_PROFILES)

# Server-assigned fields a caller may not supply.
_RESERVED_FIELDS = {"id", "createdAt", "created_at"}


class EntityCollectionManager:
    def __init__(self, profiles: ProfileStore):
        self._profiles = profiles

    @staticmethod
    def build(kind: EntityKind, fields: dict[str, Any]) -> StoredModel:
        clean = {key: value for key, value in fields.items() if key not in _RESERVED_FIELDS}
        try:
            return kind.model.model_validate(clean)
        except ValidationError as exc:
            first = exc.errors()[0] if exc.errors() else {}
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise InvalidInputError(f"Invalid {kind.value}: {location} {first.get('msg', '')}".strip()) from exc

    async def append(self, identity: str, kind: EntityKind, fields: dict[str, Any]) -> StoredModel:
        # Built before taking the lock; id and timestamp are fresh per call.
        entity = self.build(kind, fields)

        def _append(profile: TutorProfile) -> int:
            collection: list = getattr(profile, kind.collection)
            collection.append(entity)
            return len(collection)

        size = await self._profiles.mutate(identity, _append)
        logger.info("Entity appended | identity=%s | kind=%s | id=%s | count=%d", identity, kind.value, entity.id, size)
        return entity

    async def add_student(self, identity: str, fields: dict[str, Any]) -> Student:
        return await self.append(identity, EntityKind.STUDENT, fields)  # type: ignore[return-value]

    async def add_lesson(self, identity: str, fields: dict[str, Any]) -> Lesson:
        return await self.append(identity, EntityKind.LESSON, fields)  # type: ignore[return-value]

    async def add_material(self, identity: str, fields: dict[str, Any]) -> Material:
        return await self.append(identity, EntityKind.MATERIAL, fields)  # type: ignore[return-value]
