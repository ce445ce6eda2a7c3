# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admission service: decides enrollment requests.

This module provides the AdmissionService class for:
- Intake of enrollment requests in "pending" state
- Deciding a pending request: rule checks, seat capacity, waitlisting
- Face-verification-gated approval
- Request and course occupancy lookups

A request leaves "pending" exactly once. The capacity check and the write
it leads to (enrollment or waitlist row plus the status change) commit
together in one transaction that holds the course's guard row, and the
transaction is re-run from fresh reads when a concurrent writer wins.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admissions.core.config.settings import Settings, VerificationMode
from admissions.domains.admission.capacity import CapacityCoordinator, CapacityOutcome
from admissions.domains.admission.eligibility import EligibilityVerdict, StudentRecord, evaluate
from admissions.domains.admission.rules import AdmissionRule, RuleCatalog, normalize_course
from admissions.domains.admission.verification import VerificationResult, Verifier
from admissions.infrastructure.database.connection import (
    DatabaseError,
    TransactionConflictError,
    run_in_transaction,
    session_scope,
)
from admissions.infrastructure.database.models import (
    EnrollmentRecord,
    EnrollmentRequest,
    StudentProfile,
    WaitlistEntry,
)
from admissions.models.admission import (
    CourseOccupancyResponse,
    DecisionReason,
    DecisionResult,
    DecisionStatus,
    EncodingStatus,
    EnrollmentRequestResponse,
    ReasonCode,
)
from admissions.utils.datetime import utc_now
from admissions.utils.logging import get_logger

logger = get_logger(__name__)

# Extra seconds granted on top of the verifier's own timeout before the
# call is abandoned
_VERIFICATION_GRACE_SECONDS = 1.0

_REJECTION_MESSAGES = {
    ReasonCode.PREREQUISITE_NOT_COMPLETED: "Rejected: prerequisite not completed",
    ReasonCode.MINIMUM_CGPA_REQUIRED: "Rejected: CGPA below requirement",
}
_APPROVED_MESSAGE = "Enrollment approved successfully"
_STRICT_APPROVED_MESSAGE = "Approved under strict CGPA criteria"
_WAITLISTED_MESSAGE = "Added to waitlist"
_ENCODING_FAILED_MESSAGE = "Face verification failed; enrollment not approved"


class AdmissionServiceError(Exception):
    """Base exception for admission service errors."""

    pass


class RequestNotFoundError(AdmissionServiceError):
    """Raised when an enrollment request is not found."""

    pass


class StudentNotFoundError(AdmissionServiceError):
    """Raised when the requesting student's profile is not found."""

    pass


class ValidationFailureError(AdmissionServiceError):
    """Raised when required input is missing or malformed."""

    pass


class RequestAlreadyDecidedError(AdmissionServiceError):
    """Raised when a request has already left the pending state.

    Attributes:
        request_id: The request.
        status: The status it is already in.
    """

    def __init__(self, request_id: str, status: str) -> None:
        super().__init__(f"Enrollment request {request_id} is already {status}")
        self.request_id = request_id
        self.status = status


class CapacityConflictError(AdmissionServiceError):
    """Raised when a decision keeps losing write races for its course."""

    pass


@dataclass(frozen=True)
class _PendingRequest:
    """Fields of a pending request needed to decide it."""

    id: str
    student_uid: str
    course: str
    photos: tuple[str, ...]


class AdmissionService:
    """Service deciding enrollment requests.

    Attributes:
        catalog: Admission rules by course.
        verification_mode: gated, advisory or disabled.

    Example:
        service = AdmissionService(get_sessionmaker(), RuleCatalog.builtin(), verifier, settings)
        result = await service.decide_enrollment(request_id)
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        catalog: RuleCatalog,
        verifier: Verifier | None,
        settings: Settings,
    ) -> None:
        """Initialize admission service.

        Args:
            sessionmaker: Factory for record store sessions.
            catalog: Immutable rule catalog.
            verifier: Face verification client; required unless the
                verification mode is "disabled".
            settings: Application settings.
        """
        self._sessionmaker = sessionmaker
        self.catalog = catalog
        self._verifier = verifier
        self._admission = settings.admission
        self._verification_timeout = settings.verification.timeout

    @property
    def verification_mode(self) -> VerificationMode:
        """How face verification takes part in approvals."""
        return self._admission.verification_mode

    async def submit_enrollment_request(
        self,
        student_uid: str | None,
        roll: str | None,
        course: str | None,
        photos: Sequence[str] | None,
    ) -> EnrollmentRequestResponse:
        """Record a new enrollment request in "pending" state.

        Args:
            student_uid: Requesting student.
            roll: Student's roll number.
            course: Requested course.
            photos: Stored photo URLs for face verification.

        Returns:
            The created request.

        Raises:
            ValidationFailureError: If a field is missing or the number of
                photos is out of bounds.
        """
        fields = {"uid": student_uid, "roll": roll, "course": course}
        missing = [name for name, value in fields.items() if not value or not value.strip()]
        if missing:
            raise ValidationFailureError(f"Missing fields: {', '.join(missing)}")

        photo_urls = [p.strip() for p in photos or () if isinstance(p, str) and p.strip()]
        if len(photo_urls) < self._admission.min_photos:
            raise ValidationFailureError(
                f"At least {self._admission.min_photos} photos required"
            )
        if len(photo_urls) > self._admission.max_photos:
            raise ValidationFailureError(
                f"At most {self._admission.max_photos} photos allowed"
            )

        request = EnrollmentRequest(
            student_uid=student_uid.strip(),
            roll=roll.strip(),
            course=course.strip(),
            photos=photo_urls,
            status=DecisionStatus.PENDING.value,
        )
        async with session_scope(self._sessionmaker) as session:
            session.add(request)

        logger.info(
            "enrollment_request_submitted",
            request_id=request.id,
            student_uid=request.student_uid,
            course=request.course,
            photos=len(photo_urls),
        )
        return EnrollmentRequestResponse.model_validate(request)

    async def get_request(self, request_id: str) -> EnrollmentRequestResponse:
        """Get the current state of an enrollment request.

        Raises:
            ValidationFailureError: If request_id is blank.
            RequestNotFoundError: If the request does not exist.
        """
        request_id = self._require_id(request_id)
        async with session_scope(self._sessionmaker) as session:
            request = await self._get_request(session, request_id)
            return EnrollmentRequestResponse.model_validate(request)

    async def course_occupancy(self, course: str) -> CourseOccupancyResponse:
        """Report seat usage of a course.

        Raises:
            ValidationFailureError: If course is blank.
        """
        if not course or not course.strip():
            raise ValidationFailureError("Course is required")

        rule = self.catalog.resolve(course)
        async with session_scope(self._sessionmaker) as session:
            coordinator = CapacityCoordinator(session)
            enrolled = await coordinator.enrolled_count(course)
            waitlisted = await coordinator.waitlisted_count(course)

        return CourseOccupancyResponse(
            course=normalize_course(course),
            prerequisite=rule.prerequisite,
            min_cgpa=rule.min_cgpa,
            strict_cgpa=rule.strict_cgpa,
            seat_limit=rule.seat_limit,
            enrolled=enrolled,
            waitlisted=waitlisted,
            remaining_seats=max(rule.seat_limit - enrolled, 0),
        )

    async def decide_enrollment(
        self,
        request_id: str,
        verification_timeout: float | None = None,
    ) -> DecisionResult:
        """Decide a pending enrollment request.

        Rejections, waitlisting and failed verification are results, not
        errors. Nothing is written unless the whole transition commits.

        Args:
            request_id: Request to decide.
            verification_timeout: Seconds allowed for the verification call;
                defaults to the configured timeout.

        Returns:
            The committed decision.

        Raises:
            ValidationFailureError: If request_id is blank.
            RequestNotFoundError: If the request does not exist.
            StudentNotFoundError: If the student's profile does not exist.
            RequestAlreadyDecidedError: If the request is not pending.
            CapacityConflictError: If conflicting writes outlast all retries.
            DatabaseError: If the record store fails.
        """
        request_id = self._require_id(request_id)
        pending, student = await self._load_for_decision(request_id)
        rule = self.catalog.resolve(pending.course)
        verdict = evaluate(student, rule)

        if verdict is EligibilityVerdict.PREREQUISITE_MISSING:
            reason = DecisionReason.prerequisite_not_completed(rule.prerequisite)
        elif verdict is EligibilityVerdict.CGPA_BELOW_MINIMUM:
            reason = DecisionReason.minimum_cgpa_required(rule.min_cgpa)
        else:
            reason = None

        if reason is not None:
            result = await self._transact(pending.id, partial(self._commit_rejection, pending, reason))
            self._log_decision(pending, result)
            return result

        timeout = self._verification_timeout if verification_timeout is None else verification_timeout
        verification = None
        if self.verification_mode == "gated":
            verification = await self._verify(pending, timeout)

        result = await self._transact(
            pending.id,
            partial(self._commit_admission, pending, student, rule, verification),
        )

        if self.verification_mode == "advisory" and result.status is DecisionStatus.APPROVED:
            result = await self._record_advisory_verification(pending, result, timeout)

        self._log_decision(pending, result)
        return result

    async def _load_for_decision(self, request_id: str) -> tuple[_PendingRequest, StudentRecord]:
        """Read the request and the student's profile.

        Raises:
            RequestNotFoundError: If the request does not exist.
            RequestAlreadyDecidedError: If the request is not pending.
            StudentNotFoundError: If the profile does not exist.
        """
        async with session_scope(self._sessionmaker) as session:
            request = await self._get_request(session, request_id)
            self._ensure_pending(request)

            profile = await session.get(StudentProfile, request.student_uid)
            if profile is None:
                raise StudentNotFoundError(f"Student {request.student_uid} not found")

            pending = _PendingRequest(
                id=request.id,
                student_uid=request.student_uid,
                course=request.course,
                photos=tuple(request.photos or ()),
            )
            student = StudentRecord.from_profile(profile.uid, profile.cgpa, profile.semesters)
        return pending, student

    async def _transact(
        self,
        request_id: str,
        work: Callable[[AsyncSession], Awaitable[DecisionResult]],
    ) -> DecisionResult:
        """Run a decision transaction with conflict retries."""
        try:
            return await run_in_transaction(
                self._sessionmaker,
                work,
                max_attempts=self._admission.max_conflict_retries,
                backoff=self._admission.retry_backoff_seconds,
            )
        except TransactionConflictError as e:
            logger.error(
                "decision_conflict_retries_exhausted",
                request_id=request_id,
                attempts=e.attempts,
            )
            raise CapacityConflictError(
                f"Could not commit decision for request {request_id} after {e.attempts} attempts"
            ) from e

    async def _commit_rejection(
        self,
        pending: _PendingRequest,
        reason: DecisionReason,
        session: AsyncSession,
    ) -> DecisionResult:
        """Mark a request rejected."""
        text = reason.render()
        await self._transition(
            session,
            pending.id,
            DecisionStatus.REJECTED,
            reason=text,
            reason_code=reason.code.value,
        )
        return DecisionResult(
            request_id=pending.id,
            status=DecisionStatus.REJECTED,
            reason_code=reason.code,
            reason=text,
            message=_REJECTION_MESSAGES[reason.code],
        )

    async def _commit_admission(
        self,
        pending: _PendingRequest,
        student: StudentRecord,
        rule: AdmissionRule,
        verification: VerificationResult | None,
        session: AsyncSession,
    ) -> DecisionResult:
        """Check capacity and commit approval, waitlisting or encoding failure.

        Runs once per attempt with a fresh session; every read is redone.
        """
        request = await self._get_request(session, pending.id)
        self._ensure_pending(request)

        decision = await CapacityCoordinator(session).admit_under_capacity(
            pending.course, student, rule
        )
        course = normalize_course(pending.course)
        encoding_status, encoding_detail = self._encoding_fields(verification)

        if not decision.outcome.admits:
            session.add(
                WaitlistEntry(
                    request_id=pending.id,
                    student_uid=pending.student_uid,
                    course=course,
                    cgpa=student.cgpa,
                )
            )
            await self._transition(
                session,
                pending.id,
                DecisionStatus.WAITLISTED,
                encoding_status=encoding_status,
                encoding_detail=encoding_detail,
            )
            return DecisionResult(
                request_id=pending.id,
                status=DecisionStatus.WAITLISTED,
                encoding_status=encoding_status,
                message=_WAITLISTED_MESSAGE,
            )

        if verification is not None and not verification.success:
            await self._transition(
                session,
                pending.id,
                DecisionStatus.ENCODING_FAILED,
                encoding_status=EncodingStatus.FAILED,
                encoding_detail=verification.detail,
            )
            return DecisionResult(
                request_id=pending.id,
                status=DecisionStatus.ENCODING_FAILED,
                encoding_status=EncodingStatus.FAILED,
                message=_ENCODING_FAILED_MESSAGE,
            )

        strict_tier = decision.outcome is CapacityOutcome.STRICT_APPROVED
        if self.verification_mode == "disabled":
            encoding_status = EncodingStatus.SKIPPED

        session.add(
            EnrollmentRecord(
                request_id=pending.id,
                student_uid=pending.student_uid,
                course=course,
                cgpa=student.cgpa,
                strict_tier=strict_tier,
            )
        )
        await self._transition(
            session,
            pending.id,
            DecisionStatus.APPROVED,
            encoding_status=encoding_status,
            encoding_detail=encoding_detail,
        )
        return DecisionResult(
            request_id=pending.id,
            status=DecisionStatus.APPROVED,
            strict_tier=strict_tier,
            encoding_status=encoding_status,
            message=_STRICT_APPROVED_MESSAGE if strict_tier else _APPROVED_MESSAGE,
        )

    async def _transition(
        self,
        session: AsyncSession,
        request_id: str,
        status: DecisionStatus,
        *,
        encoding_status: EncodingStatus | None = None,
        **values,
    ) -> None:
        """Move a request out of "pending".

        The update only matches a pending row, so a request decided by a
        concurrent caller is never decided twice.

        Raises:
            RequestAlreadyDecidedError: If the request is no longer pending.
        """
        now = utc_now()
        result = await session.execute(
            update(EnrollmentRequest)
            .where(
                EnrollmentRequest.id == request_id,
                EnrollmentRequest.status == DecisionStatus.PENDING.value,
            )
            .values(
                status=status.value,
                encoding_status=encoding_status.value if encoding_status else None,
                decided_at=now,
                updated_at=now,
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = await session.scalar(
                select(EnrollmentRequest.status).where(EnrollmentRequest.id == request_id)
            )
            if current is None:
                raise RequestNotFoundError(f"Enrollment request {request_id} not found")
            raise RequestAlreadyDecidedError(request_id, current)

    async def _verify(self, pending: _PendingRequest, timeout: float) -> VerificationResult:
        """Call the verifier, turning every problem into a failed result."""
        if self._verifier is None:
            return VerificationResult.failure("Verification service is not available")

        try:
            result = await asyncio.wait_for(
                self._verifier.verify(
                    pending.student_uid,
                    pending.photos,
                    normalize_course(pending.course),
                    timeout=timeout,
                ),
                timeout=timeout + _VERIFICATION_GRACE_SECONDS,
            )
        except asyncio.TimeoutError:
            result = VerificationResult.failure(f"Verification timed out after {timeout:g}s")
        except Exception as e:
            logger.exception("verification_call_raised", request_id=pending.id)
            result = VerificationResult.failure(f"Verification call failed: {e}")

        if not result.success:
            logger.warning(
                "verification_failed",
                request_id=pending.id,
                student_uid=pending.student_uid,
                detail=result.detail,
            )
        return result

    async def _record_advisory_verification(
        self,
        pending: _PendingRequest,
        result: DecisionResult,
        timeout: float,
    ) -> DecisionResult:
        """Verify after an approval and store only the encoding outcome.

        The approval stands whatever the verifier says.
        """
        verification = await self._verify(pending, timeout)
        encoding_status, encoding_detail = self._encoding_fields(verification)

        try:
            async with session_scope(self._sessionmaker) as session:
                await session.execute(
                    update(EnrollmentRequest)
                    .where(EnrollmentRequest.id == pending.id)
                    .values(
                        encoding_status=encoding_status.value if encoding_status else None,
                        encoding_detail=encoding_detail,
                        updated_at=utc_now(),
                    )
                    .execution_options(synchronize_session=False)
                )
        except DatabaseError:
            logger.exception("encoding_status_not_recorded", request_id=pending.id)
            return result

        return result.model_copy(update={"encoding_status": encoding_status})

    @staticmethod
    def _encoding_fields(
        verification: VerificationResult | None,
    ) -> tuple[EncodingStatus | None, str | None]:
        """Encoding status and detail columns for a verification result."""
        if verification is None:
            return None, None
        if verification.success:
            return EncodingStatus.VERIFIED, None
        return EncodingStatus.FAILED, verification.detail

    @staticmethod
    def _require_id(request_id: str) -> str:
        if not request_id or not request_id.strip():
            raise ValidationFailureError("Request id is required")
        return request_id.strip()

    @staticmethod
    def _ensure_pending(request: EnrollmentRequest) -> None:
        if request.status != DecisionStatus.PENDING.value:
            raise RequestAlreadyDecidedError(request.id, request.status)

    @staticmethod
    async def _get_request(session: AsyncSession, request_id: str) -> EnrollmentRequest:
        """Get request by ID.

        Raises:
            RequestNotFoundError: If not found.
        """
        result = await session.execute(
            select(EnrollmentRequest).where(EnrollmentRequest.id == request_id)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise RequestNotFoundError(f"Enrollment request {request_id} not found")
        return request

    def _log_decision(self, pending: _PendingRequest, result: DecisionResult) -> None:
        logger.info(
            "enrollment_decided",
            request_id=pending.id,
            student_uid=pending.student_uid,
            course=normalize_course(pending.course),
            status=result.status.value,
            reason_code=result.reason_code.value if result.reason_code else None,
            strict_tier=result.strict_tier,
            encoding_status=result.encoding_status.value if result.encoding_status else None,
        )
