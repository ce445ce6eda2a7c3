# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student academic profile API endpoints.

This module provides endpoints for the profile the admission engine reads:
- POST /student/profile - Save (merge) a profile
- GET /student/profile/{uid} - Get a profile

Students save and read their own profile; admins may act for any student.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from admissions.api.dependencies import get_profile_service, require_auth
from admissions.api.middleware.auth import CurrentUser
from admissions.domains.profile.service import (
    ProfileNotFoundError,
    ProfileService,
    ProfileServiceError,
    ProfileValidationError,
)
from admissions.infrastructure.database.connection import DatabaseError
from admissions.models.profile import (
    SaveProfileRequest,
    SaveProfileResponse,
    StudentProfileResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_owner_or_admin(uid: str, current_user: CurrentUser) -> None:
    if uid != current_user.uid and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot access another student's profile",
        )


@router.post(
    "/student/profile",
    response_model=SaveProfileResponse,
    summary="Save student profile",
    description="Merge year, semester, semester records and CGPA into the stored profile.",
)
async def save_profile(
    data: SaveProfileRequest,
    current_user: CurrentUser = Depends(require_auth),
    service: ProfileService = Depends(get_profile_service),
) -> SaveProfileResponse:
    """Save the caller's academic profile.

    Raises:
        HTTPException: 403 when saving someone else's profile without
            admin access.
    """
    uid = data.uid or current_user.uid
    _require_owner_or_admin(uid, current_user)

    try:
        profile = await service.save_profile(uid, data.profile_updates())
    except ProfileValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (ProfileServiceError, DatabaseError) as e:
        logger.error("Profile save failed: uid=%s, error=%s", uid, str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save profile",
        )

    return SaveProfileResponse(profile=profile)


@router.get(
    "/student/profile/{uid}",
    response_model=StudentProfileResponse,
    summary="Get student profile",
)
async def get_profile(
    uid: str,
    current_user: CurrentUser = Depends(require_auth),
    service: ProfileService = Depends(get_profile_service),
) -> StudentProfileResponse:
    """Get a student's academic profile."""
    _require_owner_or_admin(uid, current_user)

    try:
        return await service.get_profile(uid)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ProfileValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (ProfileServiceError, DatabaseError) as e:
        logger.error("Profile fetch failed: uid=%s, error=%s", uid, str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch profile",
        )
