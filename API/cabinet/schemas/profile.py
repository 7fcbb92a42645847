from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from cabinet.schemas.auth import LONG_TEXT, SHORT_TEXT


class EntityRequest(BaseModel):
    # Clients send age and duration as either "15" or 15.
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, coerce_numbers_to_str=True)

    def fields(self) -> dict:
        return self.model_dump(by_alias=True)


class StudentRequest(EntityRequest):
    name: str = Field(min_length=1, max_length=SHORT_TEXT)
    age: str = Field(min_length=1, max_length=16)
    level: str = Field(min_length=1, max_length=SHORT_TEXT)
    subject: str = Field(min_length=1, max_length=SHORT_TEXT)


class LessonRequest(EntityRequest):
    student_id: str = Field(alias="studentId", min_length=1, max_length=64)
    subject: str = Field(min_length=1, max_length=SHORT_TEXT)
    date: str = Field(min_length=1, max_length=32)
    time: str = Field(min_length=1, max_length=16)
    duration: str = Field(min_length=1, max_length=16)


class MaterialRequest(EntityRequest):
    title: str = Field(min_length=1, max_length=SHORT_TEXT)
    subject: str = Field(min_length=1, max_length=SHORT_TEXT)
    description: str = Field(default="", max_length=LONG_TEXT)
    type: str = Field(min_length=1, max_length=64)


class OnboardingStepRequest(BaseModel):
    # Booleans and numeric strings are rejected.
    step: StrictInt
