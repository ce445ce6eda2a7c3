# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    enrollment: Enrollment request intake, decisions and course occupancy.
    profile: Student academic profiles read by the admission engine.
"""

from fastapi import APIRouter

from admissions.api.v1 import enrollment, profile

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(enrollment.router, tags=["Enrollment"])
router.include_router(profile.router, tags=["Profile"])

__all__ = ["router"]
