# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student profile domain.

Stores the academic record (year, semester, completed subjects, CGPA) the
admission engine evaluates.
"""

from admissions.domains.profile.service import (
    PROFILE_FIELDS,
    ProfileNotFoundError,
    ProfileService,
    ProfileServiceError,
    ProfileValidationError,
)

__all__ = [
    "PROFILE_FIELDS",
    "ProfileNotFoundError",
    "ProfileService",
    "ProfileServiceError",
    "ProfileValidationError",
]
