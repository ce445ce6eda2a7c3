# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admission tables.

- student_profiles: academic profile written by the profile subsystem
- enrollment_requests: intake records moved out of "pending" exactly once
- enrollments: approved seats; their per-course count is the capacity counter
- waitlist_entries: eligible students turned away by a full course
- course_admission_guards: per-course row locked by every capacity decision
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from admissions.infrastructure.database.models.base import Base, IdMixin, TimestampMixin
from admissions.utils.datetime import utc_now


class StudentProfile(TimestampMixin, Base):
    """Academic profile of a user.

    ``cgpa`` keeps the value exactly as the profile form submitted it, so a
    blank or malformed entry stays visible to the evaluator instead of being
    coerced on write.
    """

    __tablename__ = "student_profiles"

    uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default="student", nullable=False)
    cgpa: Mapped[str | None] = mapped_column(String(32))
    semesters: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    current_year: Mapped[int | None] = mapped_column(Integer)
    current_semester: Mapped[int | None] = mapped_column(Integer)

    def __repr__(self) -> str:
        return f"<StudentProfile(uid={self.uid}, role={self.role})>"


class EnrollmentRequest(IdMixin, TimestampMixin, Base):
    """A student's request to join a course."""

    __tablename__ = "enrollment_requests"

    student_uid: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    roll: Mapped[str] = mapped_column(String(64), nullable=False)
    course: Mapped[str] = mapped_column(String(255), nullable=False)
    photos: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)
    reason_code: Mapped[str | None] = mapped_column(String(50))
    encoding_status: Mapped[str | None] = mapped_column(String(20))
    encoding_detail: Mapped[str | None] = mapped_column(Text)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<EnrollmentRequest(id={self.id}, course={self.course}, status={self.status})>"


class EnrollmentRecord(IdMixin, Base):
    """An approved seat. Never updated after insert."""

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("request_id", name="uq_enrollments_request_id"),
    )

    request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("enrollment_requests.id"),
        nullable=False,
    )
    student_uid: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    course: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    cgpa: Mapped[float] = mapped_column(Float, nullable=False)
    strict_tier: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<EnrollmentRecord(student={self.student_uid}, course={self.course})>"


class WaitlistEntry(IdMixin, Base):
    """An eligible student waiting for a seat in a full course."""

    __tablename__ = "waitlist_entries"
    __table_args__ = (
        UniqueConstraint("request_id", name="uq_waitlist_entries_request_id"),
    )

    request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("enrollment_requests.id"),
        nullable=False,
    )
    student_uid: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    course: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    cgpa: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<WaitlistEntry(student={self.student_uid}, course={self.course})>"


class CourseAdmissionGuard(Base):
    """Per-course lock row.

    Holds no count. Every capacity decision bumps ``version`` before reading
    the enrollment count, so decisions for one course run one at a time.
    """

    __tablename__ = "course_admission_guards"

    course: Mapped[str] = mapped_column(String(255), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
