# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admission DTOs and enums shared by the service and the API."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from admissions.utils.datetime import ensure_utc


class DecisionStatus(str, Enum):
    """Lifecycle status of an enrollment request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"
    ENCODING_FAILED = "encoding_failed"

    @property
    def is_terminal(self) -> bool:
        """Every status other than pending is final for the engine."""
        return self is not DecisionStatus.PENDING


class EncodingStatus(str, Enum):
    """Outcome of face verification for a request."""

    VERIFIED = "verified"
    FAILED = "failed"
    SKIPPED = "skipped"


class ReasonCode(str, Enum):
    """Why a request was rejected."""

    PREREQUISITE_NOT_COMPLETED = "prerequisite_not_completed"
    MINIMUM_CGPA_REQUIRED = "minimum_cgpa_required"


_REASON_TEMPLATES = {
    ReasonCode.PREREQUISITE_NOT_COMPLETED: "Prerequisite not completed",
    ReasonCode.MINIMUM_CGPA_REQUIRED: "Minimum CGPA {min_cgpa} required",
}


class DecisionReason(BaseModel):
    """Tagged rejection reason; text is produced only by render().

    Attributes:
        code: Reason code.
        params: Values referenced by the reason's text template.
    """

    model_config = ConfigDict(frozen=True)

    code: ReasonCode
    params: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def prerequisite_not_completed(cls, prerequisite: str | None) -> "DecisionReason":
        """Reason for a missing prerequisite."""
        return cls(
            code=ReasonCode.PREREQUISITE_NOT_COMPLETED,
            params={"prerequisite": prerequisite},
        )

    @classmethod
    def minimum_cgpa_required(cls, min_cgpa: float) -> "DecisionReason":
        """Reason for a CGPA below the course minimum."""
        return cls(code=ReasonCode.MINIMUM_CGPA_REQUIRED, params={"min_cgpa": float(min_cgpa)})

    def render(self) -> str:
        """Human-readable text, e.g. 'Minimum CGPA 7.5 required'."""
        return _REASON_TEMPLATES[self.code].format(**self.params)


class DecisionResult(BaseModel):
    """Result of deciding one enrollment request.

    Attributes:
        request_id: Decided request.
        status: Status the request ended in.
        reason_code: Rejection reason code, if rejected.
        reason: Rendered rejection reason, if rejected.
        strict_tier: True when admitted above the seat limit.
        encoding_status: Face verification outcome, if any.
        message: Short message for the admin who triggered the decision.
    """

    request_id: str
    status: DecisionStatus
    reason_code: ReasonCode | None = None
    reason: str | None = None
    strict_tier: bool = False
    encoding_status: EncodingStatus | None = None
    message: str


class SubmitEnrollmentRequest(BaseModel):
    """Intake payload. Required fields are checked by the service."""

    uid: str | None = None
    roll: str | None = None
    course: str | None = None
    photos: list[str] = Field(default_factory=list)


class SubmitEnrollmentResponse(BaseModel):
    """Intake response."""

    id: str
    status: DecisionStatus
    photos: list[str]
    message: str = "Enrollment submitted successfully"


class EnrollmentRequestResponse(BaseModel):
    """Current state of an enrollment request."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_uid: str
    roll: str
    course: str
    photos: list[str]
    status: DecisionStatus
    reason: str | None = None
    reason_code: ReasonCode | None = None
    encoding_status: EncodingStatus | None = None
    encoding_detail: str | None = None
    created_at: datetime
    decided_at: datetime | None = None

    @field_validator("created_at", "decided_at")
    @classmethod
    def to_utc(cls, value: datetime | None) -> datetime | None:
        """Report timestamps in UTC whatever the store returned."""
        return ensure_utc(value) if value is not None else None


class CourseOccupancyResponse(BaseModel):
    """Seat usage of a course under its admission rule."""

    course: str
    prerequisite: str | None
    min_cgpa: float
    strict_cgpa: float
    seat_limit: int
    enrolled: int
    waitlisted: int
    remaining_seats: int
