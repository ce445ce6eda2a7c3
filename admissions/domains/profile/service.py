# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student academic profile service.

This module provides the ProfileService that handles:
- Saving a profile by merging the given fields into the stored row
- Reading a profile

The admission engine reads these rows when deciding a request. CGPA is
stored as text exactly as submitted so that the evaluator, not the write
path, decides whether it is usable.

Example:
    >>> service = ProfileService(get_sessionmaker())
    >>> await service.save_profile("s1", {"cgpa": "8.4", "current_year": 3})
    >>> profile = await service.get_profile("s1")
"""

from functools import partial
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admissions.infrastructure.database.connection import (
    TransientConflictError,
    run_in_transaction,
    session_scope,
)
from admissions.infrastructure.database.models import StudentProfile
from admissions.models.profile import StudentProfileResponse
from admissions.utils.datetime import utc_now
from admissions.utils.logging import get_logger

logger = get_logger(__name__)

PROFILE_FIELDS = frozenset({"current_year", "current_semester", "semesters", "cgpa"})


class ProfileServiceError(Exception):
    """Base exception for profile service errors."""

    pass


class ProfileNotFoundError(ProfileServiceError):
    """Raised when a profile is not found."""

    pass


class ProfileValidationError(ProfileServiceError):
    """Raised when the uid is missing or a field is not a profile field."""

    pass


class ProfileService:
    """Service for student academic profiles.

    Attributes:
        max_attempts: Attempts for a save that races with the creation of
            the same profile.
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        max_attempts: int = 3,
        backoff: float = 0.05,
    ) -> None:
        """Initialize the profile service.

        Args:
            sessionmaker: Factory for record store sessions.
            max_attempts: Attempts before a conflicting save gives up.
            backoff: Base delay between attempts in seconds.
        """
        self._sessionmaker = sessionmaker
        self.max_attempts = max_attempts
        self._backoff = backoff

    async def save_profile(
        self,
        uid: str | None,
        updates: Mapping[str, Any],
    ) -> StudentProfileResponse:
        """Merge profile fields into the stored profile, creating it if absent.

        Fields not in ``updates`` keep their stored values.

        Args:
            uid: Profile owner.
            updates: Subset of current_year, current_semester, semesters
                and cgpa.

        Returns:
            The stored profile after the merge.

        Raises:
            ProfileValidationError: If uid is blank or a field is unknown.
            DatabaseError: If the record store fails.
        """
        if not uid or not uid.strip():
            raise ProfileValidationError("UID required")
        uid = uid.strip()

        unknown = set(updates) - PROFILE_FIELDS
        if unknown:
            raise ProfileValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        values = {name: self._column_value(name, value) for name, value in updates.items()}
        profile = await run_in_transaction(
            self._sessionmaker,
            partial(self._merge, uid, values),
            max_attempts=self.max_attempts,
            backoff=self._backoff,
        )

        logger.info("student_profile_saved", uid=uid, fields=sorted(values))
        return profile

    async def get_profile(self, uid: str) -> StudentProfileResponse:
        """Get a stored profile.

        Raises:
            ProfileValidationError: If uid is blank.
            ProfileNotFoundError: If no profile exists for uid.
        """
        if not uid or not uid.strip():
            raise ProfileValidationError("UID required")

        async with session_scope(self._sessionmaker) as session:
            profile = await session.get(StudentProfile, uid.strip())
            if profile is None:
                raise ProfileNotFoundError("Profile not found")
            return StudentProfileResponse.model_validate(profile)

    async def _merge(
        self,
        uid: str,
        values: dict[str, Any],
        session: AsyncSession,
    ) -> StudentProfileResponse:
        profile = await session.get(StudentProfile, uid)
        if profile is None:
            profile = StudentProfile(
                uid=uid,
                name=None,
                email=None,
                role="student",
                cgpa=None,
                semesters=[],
                current_year=None,
                current_semester=None,
            )
            session.add(profile)
            try:
                await session.flush()
            except IntegrityError as e:
                raise TransientConflictError(f"Profile {uid} created concurrently", e) from e

        for name, value in values.items():
            setattr(profile, name, value)
        profile.updated_at = utc_now()
        await session.flush()
        return StudentProfileResponse.model_validate(profile)

    @staticmethod
    def _column_value(name: str, value: Any) -> Any:
        """Convert a profile field to its stored form."""
        if name == "semesters":
            return list(value or [])
        if name == "cgpa" and value is not None:
            return str(value)
        return value
