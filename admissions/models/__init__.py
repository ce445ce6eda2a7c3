# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic DTOs for the admission and profile domains."""

from admissions.models.admission import (
    CourseOccupancyResponse,
    DecisionReason,
    DecisionResult,
    DecisionStatus,
    EncodingStatus,
    EnrollmentRequestResponse,
    ReasonCode,
    SubmitEnrollmentRequest,
    SubmitEnrollmentResponse,
)
from admissions.models.profile import (
    SaveProfileRequest,
    SaveProfileResponse,
    StudentProfileResponse,
)

__all__ = [
    "CourseOccupancyResponse",
    "DecisionReason",
    "DecisionResult",
    "DecisionStatus",
    "EncodingStatus",
    "EnrollmentRequestResponse",
    "ReasonCode",
    "SaveProfileRequest",
    "SaveProfileResponse",
    "StudentProfileResponse",
    "SubmitEnrollmentRequest",
    "SubmitEnrollmentResponse",
]
