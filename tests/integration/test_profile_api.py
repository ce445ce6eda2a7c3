# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the student profile API.

The profile service is mocked; these tests cover ownership checks, the
camelCase payload and error mapping.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from admissions.api.app import create_app
from admissions.domains.auth.tokens import TokenVerifier
from admissions.domains.profile.service import (
    ProfileNotFoundError,
    ProfileService,
    ProfileValidationError,
)
from admissions.infrastructure.database.connection import DatabaseError
from admissions.models.profile import StudentProfileResponse

pytestmark = pytest.mark.integration


@pytest.fixture
def mock_service() -> AsyncMock:
    """Create a mock profile service."""
    return AsyncMock(spec=ProfileService)


@pytest_asyncio.fixture
async def client(settings, mock_service):
    """HTTP client calling an app with the mock service installed."""
    app = create_app(settings)
    app.state.profile_service = mock_service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def tokens(settings) -> TokenVerifier:
    return TokenVerifier(settings.identity)


def _headers(tokens: TokenVerifier, uid: str, role: str = "student") -> dict[str, str]:
    return {"Authorization": f"Bearer {tokens.issue(uid, role)}"}


def _profile(uid: str = "s1") -> StudentProfileResponse:
    return StudentProfileResponse(
        uid=uid,
        role="student",
        current_year=3,
        current_semester=1,
        semesters=[{"subjects": ["data structures"]}],
        cgpa="8.4",
        updated_at=datetime(2025, 1, 10, tzinfo=timezone.utc),
    )


class TestSaveProfileEndpoint:
    """Tests for POST /student/profile."""

    @pytest.mark.asyncio
    async def test_student_saves_own_profile(self, client, tokens, mock_service) -> None:
        """Test camelCase fields reach the service and unsent fields stay out."""
        mock_service.save_profile.return_value = _profile()

        response = await client.post(
            "/api/v1/student/profile",
            json={"currentYear": 3, "currentSemester": 1, "cgpa": "8.4"},
            headers=_headers(tokens, "s1"),
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Student academic profile saved successfully"
        assert response.json()["profile"]["cgpa"] == "8.4"
        mock_service.save_profile.assert_awaited_once_with(
            "s1", {"current_year": 3, "current_semester": 1, "cgpa": "8.4"}
        )

    @pytest.mark.asyncio
    async def test_student_cannot_save_other_profile(self, client, tokens, mock_service) -> None:
        """Test students only save their own profile."""
        response = await client.post(
            "/api/v1/student/profile",
            json={"uid": "s2", "cgpa": "9.9"},
            headers=_headers(tokens, "s1"),
        )

        assert response.status_code == 403
        mock_service.save_profile.assert_not_called()

    @pytest.mark.asyncio
    async def test_admin_saves_any_profile(self, client, tokens, mock_service) -> None:
        """Test admins may save another student's profile."""
        mock_service.save_profile.return_value = _profile("s2")

        response = await client.post(
            "/api/v1/student/profile",
            json={"uid": "s2", "semesters": [{"subjects": "calculus"}]},
            headers=_headers(tokens, "admin-1", "admin"),
        )

        assert response.status_code == 200
        mock_service.save_profile.assert_awaited_once_with(
            "s2", {"semesters": [{"subjects": "calculus"}]}
        )

    @pytest.mark.asyncio
    async def test_invalid_year(self, client, tokens, mock_service) -> None:
        """Test a non-positive year is refused before the service."""
        response = await client.post(
            "/api/v1/student/profile",
            json={"currentYear": 0},
            headers=_headers(tokens, "s1"),
        )

        assert response.status_code == 422
        mock_service.save_profile.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (ProfileValidationError("UID required"), 400),
            (DatabaseError("Database operation failed"), 500),
        ],
    )
    async def test_error_mapping(self, client, tokens, mock_service, error, status_code) -> None:
        """Test service errors map to HTTP status codes."""
        mock_service.save_profile.side_effect = error

        response = await client.post(
            "/api/v1/student/profile", json={"cgpa": "8.0"}, headers=_headers(tokens, "s1")
        )

        assert response.status_code == status_code

    @pytest.mark.asyncio
    async def test_requires_token(self, client) -> None:
        """Test saving needs authentication."""
        response = await client.post("/api/v1/student/profile", json={"cgpa": "8.0"})

        assert response.status_code == 401


class TestGetProfileEndpoint:
    """Tests for GET /student/profile/{uid}."""

    @pytest.mark.asyncio
    async def test_get_own_profile(self, client, tokens, mock_service) -> None:
        """Test a student reads their own profile."""
        mock_service.get_profile.return_value = _profile()

        response = await client.get("/api/v1/student/profile/s1", headers=_headers(tokens, "s1"))

        assert response.status_code == 200
        assert response.json()["semesters"] == [{"subjects": ["data structures"]}]

    @pytest.mark.asyncio
    async def test_not_found(self, client, tokens, mock_service) -> None:
        """Test a missing profile maps to 404."""
        mock_service.get_profile.side_effect = ProfileNotFoundError("Profile not found")

        response = await client.get(
            "/api/v1/student/profile/s9", headers=_headers(tokens, "admin-1", "admin")
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Profile not found"

    @pytest.mark.asyncio
    async def test_student_cannot_read_other_profile(self, client, tokens, mock_service) -> None:
        """Test students cannot read someone else's profile."""
        response = await client.get("/api/v1/student/profile/s2", headers=_headers(tokens, "s1"))

        assert response.status_code == 403
        mock_service.get_profile.assert_not_called()
