# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for ProfileService on a SQLite file."""

import asyncio

import pytest

from admissions.domains.admission.service import AdmissionService
from admissions.domains.profile.service import (
    ProfileNotFoundError,
    ProfileService,
    ProfileValidationError,
)
from admissions.models.admission import DecisionStatus

pytestmark = pytest.mark.integration

PHOTOS = ["https://photos.test/1.jpg", "https://photos.test/2.jpg"]


@pytest.fixture
def profiles(sessionmaker) -> ProfileService:
    """Profile service on the test database."""
    return ProfileService(sessionmaker, max_attempts=5, backoff=0.01)


class TestSaveProfile:
    """Tests for save_profile()."""

    @pytest.mark.asyncio
    async def test_creates_profile(self, profiles) -> None:
        """Test saving an unknown uid creates the profile."""
        saved = await profiles.save_profile(
            "s1",
            {
                "current_year": 3,
                "current_semester": 1,
                "semesters": [{"subjects": ["Data Structures"]}],
                "cgpa": "8.4",
            },
        )

        assert saved.uid == "s1"
        assert saved.role == "student"
        assert saved.cgpa == "8.4"
        assert saved.semesters == [{"subjects": ["Data Structures"]}]
        assert saved.updated_at.utcoffset().total_seconds() == 0

    @pytest.mark.asyncio
    async def test_merge_keeps_unsent_fields(self, profiles) -> None:
        """Test a later save only overwrites the fields it sends."""
        await profiles.save_profile(
            "s1", {"current_year": 2, "semesters": [{"subjects": ["Calculus"]}], "cgpa": "7.9"}
        )

        await profiles.save_profile("s1", {"current_year": 3})

        stored = await profiles.get_profile("s1")
        assert stored.current_year == 3
        assert stored.cgpa == "7.9"
        assert stored.semesters == [{"subjects": ["Calculus"]}]

    @pytest.mark.asyncio
    async def test_explicit_null_clears_field(self, profiles) -> None:
        """Test sending null clears a stored value."""
        await profiles.save_profile("s1", {"cgpa": "8.0", "semesters": [{"subjects": ["Algebra"]}]})

        await profiles.save_profile("s1", {"cgpa": None, "semesters": None})

        stored = await profiles.get_profile("s1")
        assert stored.cgpa is None
        assert stored.semesters == []

    @pytest.mark.asyncio
    async def test_numeric_cgpa_stored_as_text(self, profiles) -> None:
        """Test a numeric CGPA is kept as its text form."""
        saved = await profiles.save_profile("s1", {"cgpa": 8.5})

        assert saved.cgpa == "8.5"

    @pytest.mark.asyncio
    async def test_existing_profile_keeps_identity(self, profiles, add_student) -> None:
        """Test saving does not touch name, email or role."""
        await add_student("a1", "9.0", role="admin")

        saved = await profiles.save_profile("a1", {"current_semester": 2})

        assert saved.role == "admin"
        assert saved.name == "Student a1"
        assert saved.cgpa == "9.0"

    @pytest.mark.asyncio
    async def test_concurrent_first_saves(self, profiles) -> None:
        """Test concurrent saves of a new profile all succeed on one row."""
        await asyncio.gather(
            profiles.save_profile("s1", {"current_year": 1}),
            profiles.save_profile("s1", {"cgpa": "8.1"}),
            profiles.save_profile("s1", {"current_semester": 2}),
        )

        stored = await profiles.get_profile("s1")
        assert stored.current_year == 1
        assert stored.cgpa == "8.1"
        assert stored.current_semester == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("uid", [None, "", "   "])
    async def test_uid_required(self, profiles, uid) -> None:
        """Test a blank uid is refused."""
        with pytest.raises(ProfileValidationError, match="UID required"):
            await profiles.save_profile(uid, {"cgpa": "8.0"})

    @pytest.mark.asyncio
    async def test_unknown_fields(self, profiles) -> None:
        """Test fields outside the academic profile are refused."""
        with pytest.raises(ProfileValidationError, match="role"):
            await profiles.save_profile("s1", {"role": "admin"})


class TestGetProfile:
    """Tests for get_profile()."""

    @pytest.mark.asyncio
    async def test_not_found(self, profiles) -> None:
        """Test an unknown uid raises ProfileNotFoundError."""
        with pytest.raises(ProfileNotFoundError, match="Profile not found"):
            await profiles.get_profile("nobody")


class TestProfileDrivesDecision:
    """A saved profile is what the admission engine evaluates."""

    @pytest.mark.asyncio
    async def test_saved_profile_is_admitted(
        self, profiles, sessionmaker, catalog, fake_verifier, settings
    ) -> None:
        """Test a profile saved through the service satisfies a prerequisite."""
        admissions = AdmissionService(sessionmaker, catalog, fake_verifier, settings)
        await profiles.save_profile(
            "s1", {"cgpa": "8.0", "semesters": [{"subjects": "Data Structures"}]}
        )
        created = await admissions.submit_enrollment_request(
            "s1", "R-1", "Advanced Data Structures", PHOTOS
        )

        result = await admissions.decide_enrollment(created.id)

        assert result.status is DecisionStatus.APPROVED

    @pytest.mark.asyncio
    async def test_updated_cgpa_is_used(
        self, profiles, sessionmaker, catalog, fake_verifier, settings
    ) -> None:
        """Test a CGPA corrected before the decision is the one evaluated."""
        admissions = AdmissionService(sessionmaker, catalog, fake_verifier, settings)
        await profiles.save_profile("s1", {"cgpa": "6.0"})
        created = await admissions.submit_enrollment_request("s1", "R-1", "pottery", PHOTOS)

        await profiles.save_profile("s1", {"cgpa": "7.2"})
        result = await admissions.decide_enrollment(created.id)

        assert result.status is DecisionStatus.APPROVED
