# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student academic profile DTOs.

Request fields accept both snake_case and the camelCase names used by the
profile form (currentYear, currentSemester).
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from admissions.utils.datetime import ensure_utc


class SaveProfileRequest(BaseModel):
    """Profile fields to merge into the stored profile.

    Only fields present in the payload are written; an explicit null
    clears the stored value.
    """

    uid: str | None = None
    current_year: int | None = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("current_year", "currentYear"),
    )
    current_semester: int | None = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("current_semester", "currentSemester"),
    )
    semesters: list[dict[str, Any]] | None = None
    cgpa: str | float | None = None

    def profile_updates(self) -> dict[str, Any]:
        """Profile fields the caller actually sent."""
        return self.model_dump(exclude_unset=True, exclude={"uid"})


class StudentProfileResponse(BaseModel):
    """Stored academic profile."""

    model_config = ConfigDict(from_attributes=True)

    uid: str
    name: str | None = None
    email: str | None = None
    role: str
    current_year: int | None = None
    current_semester: int | None = None
    semesters: list[dict[str, Any]] = Field(default_factory=list)
    cgpa: str | None = None
    updated_at: datetime

    @field_validator("updated_at")
    @classmethod
    def to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class SaveProfileResponse(BaseModel):
    """Response after a profile save."""

    profile: StudentProfileResponse
    message: str = "Student academic profile saved successfully"
