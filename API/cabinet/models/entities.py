"""Persisted shapes. Field aliases give the camelCase JSON stored in the key-value store."""
import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_entity_id() -> str:
    return uuid.uuid4().hex


class StoredModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def to_public(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Student(StoredModel):
    id: str = Field(default_factory=new_entity_id)
    name: str
    age: str
    level: str
    subject: str
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")


class Lesson(StoredModel):
    id: str = Field(default_factory=new_entity_id)
    # Not checked against TutorProfile.students.
    student_id: str = Field(alias="studentId")
    subject: str
    date: str
    time: str
    duration: str
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")


class Material(StoredModel):
    id: str = Field(default_factory=new_entity_id)
    title: str
    subject: str
    description: str = ""
    type: str
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")


class EntityKind(str, Enum):
    STUDENT = "student"
    LESSON = "lesson"
    MATERIAL = "material"

    @property
    def model(self) -> type[StoredModel]:
        return _KIND_MODELS[self]

    @property
    def collection(self) -> str:
        return f"{self.value}s"


_KIND_MODELS: dict[EntityKind, type[StoredModel]] = {
    EntityKind.STUDENT: Student,
    EntityKind.LESSON: Lesson,
    EntityKind.MATERIAL: Material,
}


class TutorProfile(StoredModel):
    id: str
    phone: str
    full_name: str = Field(alias="fullName")
    subjects: list[str] = Field(default_factory=list)
    city: str = ""
    experience: str = ""
    levels: list[str] = Field(default_factory=list)
    format: str = ""
    rate: str = ""
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    onboarding_step: int = Field(default=0, alias="onboardingStep")
    students: list[Student] = Field(default_factory=list)
    lessons: list[Lesson] = Field(default_factory=list)
    materials: list[Material] = Field(default_factory=list)


class AuthRecord(StoredModel):
    user_id: str = Field(alias="userId")
    phone: str
    hashed_password: str = Field(alias="hashedPassword")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")


class Session(StoredModel):
    # The raw token is handed to the client once and never persisted.
    token: str = Field(default="", exclude=True)
    user_id: str = Field(alias="userId")
    phone: str
    created_at: datetime = Field(alias="createdAt")
    expires_at: datetime = Field(alias="expiresAt")
