# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests (file-backed SQLite through aiosqlite)
"""

from collections.abc import AsyncGenerator, Sequence
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from admissions.core.config.settings import (
    AdmissionSettings,
    DatabaseSettings,
    IdentitySettings,
    Settings,
    VerificationSettings,
)
from admissions.domains.admission.rules import AdmissionRule, RuleCatalog
from admissions.domains.admission.verification import VerificationResult
from admissions.infrastructure.database.connection import build_engine, build_sessionmaker
from admissions.infrastructure.database.models import Base, StudentProfile

TEST_SECRET_KEY = "test-secret-key-for-testing-only"


# =============================================================================
# Test Doubles
# =============================================================================


class FakeVerifier:
    """Verifier double recording every call.

    Attributes:
        result: Result returned by verify().
        calls: (student_uid, photos, course) of each call.
        error: Exception raised by verify() instead of returning, if set.
    """

    def __init__(self, result: VerificationResult | None = None) -> None:
        self.result = result or VerificationResult.ok()
        self.calls: list[tuple[str, tuple[str, ...], str]] = []
        self.error: Exception | None = None

    async def verify(
        self,
        student_uid: str,
        photos: Sequence[str],
        course: str,
        timeout: float | None = None,
    ) -> VerificationResult:
        self.calls.append((student_uid, tuple(photos), course))
        if self.error is not None:
            raise self.error
        return self.result


# =============================================================================
# Settings Fixtures
# =============================================================================


def _make_settings(tmp_path: Path, **admission: Any) -> Settings:
    """Build settings for tests on a SQLite file under tmp_path."""
    database = DatabaseSettings(url_override=f"sqlite+aiosqlite:///{tmp_path / 'admissions.db'}")

    admission.setdefault("retry_backoff_seconds", 0.01)
    admission.setdefault("max_conflict_retries", 10)
    return Settings(
        environment="development",
        database=database,
        verification=VerificationSettings(base_url="http://face.test", timeout=2.0),
        admission=AdmissionSettings(**admission),
        identity=IdentitySettings(secret_key=TEST_SECRET_KEY),  # type: ignore[arg-type]
    )


@pytest.fixture
def settings_factory(tmp_path: Path):
    """Build settings on the temporary database with admission overrides."""

    def factory(**admission: Any) -> Settings:
        return _make_settings(tmp_path, **admission)

    return factory


@pytest.fixture
def settings(settings_factory) -> Settings:
    """Settings in gated verification mode on a temporary database."""
    return settings_factory()


@pytest.fixture
def catalog() -> RuleCatalog:
    """Builtin catalog plus a small course for capacity tests."""
    rules = {
        "advanced data structures": AdmissionRule("data structures", 7.5, 8.5, 80),
        "advanced machine learning": AdmissionRule("machine learning", 7.5, 8.5, 80),
        "compilers": AdmissionRule(None, 7.0, 8.0, 2),
    }
    return RuleCatalog(rules)


@pytest.fixture
def fake_verifier() -> FakeVerifier:
    """Verifier that succeeds by default."""
    return FakeVerifier()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Engine on a fresh SQLite file with every table created."""
    engine = build_engine(settings.database)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessionmaker bound to the test engine."""
    return build_sessionmaker(engine)


@pytest.fixture
def add_student(sessionmaker: async_sessionmaker[AsyncSession]):
    """Insert a student profile with one semester of completed subjects."""

    async def add(
        uid: str,
        cgpa: str | None,
        subjects: Sequence[str] = (),
        role: str = "student",
    ) -> None:
        async with sessionmaker() as session:
            session.add(
                StudentProfile(
                    uid=uid,
                    name=f"Student {uid}",
                    email=f"{uid}@university.test",
                    role=role,
                    cgpa=cgpa,
                    semesters=[{"subjects": list(subjects)}] if subjects else [],
                    current_year=3,
                    current_semester=1,
                )
            )
            await session.commit()

    return add


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (uses a SQLite file)"
    )
