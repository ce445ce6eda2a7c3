# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

Example:
    @router.post("/enrollment-requests/{request_id}/decision")
    async def decide(
        request_id: str,
        current_user: CurrentUser = Depends(require_admin),
        service: AdmissionService = Depends(get_admission_service),
    ):
        ...
"""

from fastapi import HTTPException, Request, status

from admissions.api.middleware.auth import CurrentUser, get_current_user
from admissions.domains.admission.service import AdmissionService
from admissions.domains.profile.service import ProfileService


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(request: Request) -> CurrentUser:
    """Require admin user.

    Raises:
        HTTPException: If not authenticated or not admin.
    """
    user = require_auth(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def get_admission_service(request: Request) -> AdmissionService:
    """Get the admission service built at startup.

    Raises:
        HTTPException: If the application has not finished starting.
    """
    service = getattr(request.app.state, "admission_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admission service not initialized",
        )
    return service


def get_profile_service(request: Request) -> ProfileService:
    """Get the profile service built at startup.

    Raises:
        HTTPException: If the application has not finished starting.
    """
    service = getattr(request.app.state, "profile_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Profile service not initialized",
        )
    return service
