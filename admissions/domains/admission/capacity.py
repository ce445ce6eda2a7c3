# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Seat capacity decisions.

The number of enrollment rows for a course is its capacity counter. A
request seen while that count is below the seat limit is admitted
normally. At or above the limit, only a student meeting the strict CGPA
is admitted and everyone else is waitlisted.

Reading the count and writing the resulting row must happen as one
serialized step per course. The coordinator takes the course's guard row
first, so a concurrent decision for the same course waits (or fails with
a retryable conflict) until this transaction ends.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from admissions.domains.admission.eligibility import StudentRecord
from admissions.domains.admission.rules import AdmissionRule, normalize_course
from admissions.infrastructure.database.connection import TransientConflictError
from admissions.infrastructure.database.models import (
    CourseAdmissionGuard,
    EnrollmentRecord,
    WaitlistEntry,
)
from admissions.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class CapacityOutcome(str, Enum):
    """Seat band a request falls into."""

    APPROVED = "approved"
    STRICT_APPROVED = "strict_approved"
    WAITLISTED = "waitlisted"

    @property
    def admits(self) -> bool:
        """Whether the outcome grants a seat."""
        return self is not CapacityOutcome.WAITLISTED


@dataclass(frozen=True)
class CapacityDecision:
    """Capacity outcome together with the count it was based on."""

    outcome: CapacityOutcome
    enrolled_count: int
    seat_limit: int


def classify(enrolled_count: int, cgpa: float | None, rule: AdmissionRule) -> CapacityOutcome:
    """Pick the seat band for a request.

    A count equal to the seat limit is already in the strict band.
    """
    if enrolled_count < rule.seat_limit:
        return CapacityOutcome.APPROVED
    if cgpa is not None and cgpa >= rule.strict_cgpa:
        return CapacityOutcome.STRICT_APPROVED
    return CapacityOutcome.WAITLISTED


class CapacityCoordinator:
    """Reads and serializes per-course capacity inside a transaction.

    Attributes:
        session: Session of the surrounding decision transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def acquire(self, course: str) -> None:
        """Take the course's guard row for the rest of the transaction.

        Args:
            course: Course identifier in any letter case.

        Raises:
            TransientConflictError: If another transaction created the
                guard row at the same time.
        """
        course = normalize_course(course)
        result = await self.session.execute(
            update(CourseAdmissionGuard)
            .where(CourseAdmissionGuard.course == course)
            .values(version=CourseAdmissionGuard.version + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        self.session.add(CourseAdmissionGuard(course=course, version=1))
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise TransientConflictError(
                f"Guard row for course '{course}' created concurrently", e
            ) from e
        logger.debug("Created admission guard for course %s", course)

    async def enrolled_count(self, course: str) -> int:
        """Count enrollment rows for a course."""
        result = await self.session.execute(
            select(func.count())
            .select_from(EnrollmentRecord)
            .where(EnrollmentRecord.course == normalize_course(course))
        )
        return int(result.scalar_one())

    async def waitlisted_count(self, course: str) -> int:
        """Count waitlist rows for a course."""
        result = await self.session.execute(
            select(func.count())
            .select_from(WaitlistEntry)
            .where(WaitlistEntry.course == normalize_course(course))
        )
        return int(result.scalar_one())

    async def admit_under_capacity(
        self,
        course: str,
        student: StudentRecord,
        rule: AdmissionRule,
    ) -> CapacityDecision:
        """Lock the course, read a fresh count and classify the request.

        Must run inside the transaction that writes the resulting
        enrollment or waitlist row.

        Args:
            course: Course identifier in any letter case.
            student: Student being admitted.
            rule: Resolved rule of the course.

        Returns:
            The capacity decision.
        """
        await self.acquire(course)
        count = await self.enrolled_count(course)
        outcome = classify(count, student.cgpa, rule)

        logger.debug(
            "Capacity check: course=%s, enrolled=%d, limit=%d, outcome=%s",
            normalize_course(course),
            count,
            rule.seat_limit,
            outcome.value,
        )
        return CapacityDecision(outcome=outcome, enrolled_count=count, seat_limit=rule.seat_limit)
