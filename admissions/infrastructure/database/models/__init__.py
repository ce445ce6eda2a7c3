# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the admission record store."""

from admissions.infrastructure.database.models.admission import (
    CourseAdmissionGuard,
    EnrollmentRecord,
    EnrollmentRequest,
    StudentProfile,
    WaitlistEntry,
)
from admissions.infrastructure.database.models.base import Base, IdMixin, TimestampMixin, new_id

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "new_id",
    "StudentProfile",
    "EnrollmentRequest",
    "EnrollmentRecord",
    "WaitlistEntry",
    "CourseAdmissionGuard",
]
