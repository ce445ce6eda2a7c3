# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment admission API endpoints.

This module provides endpoints for enrollment requests:
- POST /enrollment-requests - Submit a request (authenticated)
- GET /enrollment-requests/{request_id} - Get request state (admin)
- POST /enrollment-requests/{request_id}/decision - Decide a request (admin)
- GET /courses/{course}/occupancy - Seat usage of a course (admin)

Rejection, waitlisting and failed face verification are returned as
decisions with status 200, never as HTTP errors.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from admissions.api.dependencies import get_admission_service, require_admin, require_auth
from admissions.api.middleware.auth import CurrentUser
from admissions.domains.admission.service import (
    AdmissionService,
    AdmissionServiceError,
    CapacityConflictError,
    RequestAlreadyDecidedError,
    RequestNotFoundError,
    StudentNotFoundError,
    ValidationFailureError,
)
from admissions.infrastructure.database.connection import DatabaseError
from admissions.models.admission import (
    CourseOccupancyResponse,
    DecisionResult,
    EnrollmentRequestResponse,
    SubmitEnrollmentRequest,
    SubmitEnrollmentResponse,
)
from admissions.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_http_exception(error: Exception) -> HTTPException:
    """Map a service or store error to an HTTP error."""
    if isinstance(error, (RequestNotFoundError, StudentNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ValidationFailureError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, RequestAlreadyDecidedError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, CapacityConflictError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Too many concurrent decisions for this course, retry later",
            headers={"Retry-After": "1"},
        )
    logger.error("Admission request failed: %s", str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal error",
    )


@router.post(
    "/enrollment-requests",
    response_model=SubmitEnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit enrollment request",
    description="Submit an enrollment request with 2-3 stored photo URLs.",
)
async def submit_enrollment_request(
    data: SubmitEnrollmentRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: AdmissionService = Depends(get_admission_service),
) -> SubmitEnrollmentResponse:
    """Submit an enrollment request.

    Students submit for themselves; admins may submit on behalf of a
    student.

    Raises:
        HTTPException: If fields are missing or the caller submits for
            someone else.
    """
    uid = data.uid or current_user.uid
    if uid != current_user.uid and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot submit a request for another student",
        )

    try:
        created = await service.submit_enrollment_request(
            student_uid=uid,
            roll=data.roll,
            course=data.course,
            photos=data.photos,
        )
    except (AdmissionServiceError, DatabaseError) as e:
        raise _to_http_exception(e)

    return SubmitEnrollmentResponse(id=created.id, status=created.status, photos=created.photos)


@router.get(
    "/enrollment-requests/{request_id}",
    response_model=EnrollmentRequestResponse,
    summary="Get enrollment request",
)
async def get_enrollment_request(
    request_id: str,
    current_user: CurrentUser = Depends(require_admin),
    service: AdmissionService = Depends(get_admission_service),
) -> EnrollmentRequestResponse:
    """Get an enrollment request's current state."""
    try:
        return await service.get_request(request_id)
    except (AdmissionServiceError, DatabaseError) as e:
        raise _to_http_exception(e)


@router.post(
    "/enrollment-requests/{request_id}/decision",
    response_model=DecisionResult,
    summary="Decide enrollment request",
    description="Run the admission decision for a pending request. Requires admin access.",
)
async def decide_enrollment(
    request_id: str,
    current_user: CurrentUser = Depends(require_admin),
    service: AdmissionService = Depends(get_admission_service),
) -> DecisionResult:
    """Decide a pending enrollment request.

    Raises:
        HTTPException: 404 for unknown request or student, 409 if already
            decided, 503 when conflicting decisions outlast all retries.
    """
    logger.info("Deciding enrollment: request=%s, by=%s", request_id, current_user.uid)
    bind_context(request_id=request_id, decided_by=current_user.uid)

    try:
        return await service.decide_enrollment(request_id)
    except (AdmissionServiceError, DatabaseError) as e:
        raise _to_http_exception(e)
    finally:
        clear_context()


@router.get(
    "/courses/{course}/occupancy",
    response_model=CourseOccupancyResponse,
    summary="Course occupancy",
)
async def course_occupancy(
    course: str,
    current_user: CurrentUser = Depends(require_admin),
    service: AdmissionService = Depends(get_admission_service),
) -> CourseOccupancyResponse:
    """Get the seat usage of a course under its rule."""
    try:
        return await service.course_occupancy(course)
    except (AdmissionServiceError, DatabaseError) as e:
        raise _to_http_exception(e)
