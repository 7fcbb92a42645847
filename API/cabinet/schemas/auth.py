from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cabinet.core.settings import settings

PHONE_PATTERN = re.compile(r"^\+7\d{10}$")

SHORT_TEXT = 255
LONG_TEXT = 4000


def check_password_strength(password: str, min_length: int) -> str:
    problems = []
    if len(password) < min_length:
        problems.append(f"at least {min_length} characters")
    if not re.search(r"[a-z]", password):
        problems.append("a lower-case letter")
    if not re.search(r"[A-Z]", password):
        problems.append("an upper-case letter")
    if not re.search(r"[0-9]", password):
        problems.append("a digit")
    if not re.search(r"[^a-zA-Z0-9]", password):
        problems.append("a special character")
    if problems:
        raise ValueError("password must contain " + ", ".join(problems))
    return password


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: str
    password: str = Field(max_length=128)
    full_name: str = Field(alias="fullName", min_length=1, max_length=SHORT_TEXT)
    subjects: list[str] = Field(min_length=1, max_length=50)
    city: str = Field(min_length=1, max_length=SHORT_TEXT)
    experience: str = Field(default="", max_length=LONG_TEXT)
    levels: list[str] = Field(default_factory=list, max_length=50)
    format: str = Field(default="", max_length=SHORT_TEXT)
    rate: str = Field(default="", max_length=SHORT_TEXT)

    @field_validator("phone")
    @classmethod
    def _phone_format(cls, value: str) -> str:
        if not PHONE_PATTERN.match(value):
            raise ValueError("phone must look like +7XXXXXXXXXX")
        return value

    @field_validator("password")
    @classmethod
    def _password_policy(cls, value: str) -> str:
        return check_password_strength(value, settings.password_min_length)

    @field_validator("subjects", "levels")
    @classmethod
    def _drop_blank_items(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item and item.strip()]

    @field_validator("subjects")
    @classmethod
    def _subjects_required(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one subject is required")
        return value

    # Passwords are taken byte for byte; every other text field is trimmed.
    # Optional fields arrive as null from some clients.
    @field_validator("phone", "full_name", "city", "experience", "format", "rate", mode="before")
    @classmethod
    def _strip_text(cls, value):
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("levels", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return [] if value is None else value


class LoginRequest(BaseModel):
    phone: str = Field(min_length=1, max_length=32)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("phone", mode="before")
    @classmethod
    def _strip_phone(cls, value):
        return value.strip() if isinstance(value, str) else value
