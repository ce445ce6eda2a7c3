# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Record store connection management using SQLAlchemy async.

This module owns the process-wide engine and sessionmaker and provides the
transactional wrapper used by the admission engine. The wrapper re-runs a
unit of work in a fresh session whenever the database reports a write
conflict (serialization failure, deadlock, or a locked SQLite file).

Uses SQLAlchemy 2.0 async API with asyncpg in production and aiosqlite in
tests.

Example:
    from admissions.infrastructure.database.connection import (
        init_database,
        get_session,
        run_in_transaction,
    )

    await init_database(settings)

    async with get_session() as session:
        result = await session.execute(select(EnrollmentRequest))

    await run_in_transaction(get_sessionmaker(), work, max_attempts=5)
"""

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from admissions.core.config.settings import DatabaseSettings, Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL SQLSTATE codes that mean "retry the whole transaction"
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})
_SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class TransientConflictError(DatabaseError):
    """Raised by a unit of work to ask for a retry with fresh reads."""

    pass


class TransactionConflictError(DatabaseError):
    """Raised when a transaction keeps conflicting after every retry.

    Attributes:
        attempts: Number of attempts made before giving up.
    """

    def __init__(self, attempts: int, original_error: Optional[Exception] = None) -> None:
        super().__init__(
            f"Transaction conflicted on all {attempts} attempts", original_error
        )
        self.attempts = attempts


def build_engine(db_settings: "DatabaseSettings") -> AsyncEngine:
    """Create an async engine for the configured URL.

    SQLite gets a busy timeout so concurrent writers queue on the file lock;
    PostgreSQL gets a sized connection pool.

    Args:
        db_settings: Record store settings.

    Returns:
        A new AsyncEngine.
    """
    if db_settings.is_sqlite:
        return create_async_engine(
            db_settings.url,
            connect_args={"timeout": db_settings.sqlite_busy_timeout},
            echo=db_settings.echo,
        )

    return create_async_engine(
        db_settings.url,
        pool_size=db_settings.pool_size,
        max_overflow=db_settings.max_overflow,
        pool_pre_ping=True,
        pool_recycle=1800,
        echo=db_settings.echo,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the sessionmaker used by every service.

    Args:
        engine: Engine to bind sessions to.

    Returns:
        Configured async sessionmaker.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(settings: "Settings") -> None:
    """Initialize the process-wide connection pool.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        DatabaseError: If engine creation fails.
    """
    global _engine, _sessionmaker

    try:
        _engine = build_engine(settings.database)
        _sessionmaker = build_sessionmaker(_engine)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e


async def close_database() -> None:
    """Dispose of the connection pool at shutdown."""
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_engine() -> AsyncEngine:
    """Get the process-wide async engine.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _engine is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the process-wide sessionmaker.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _sessionmaker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get a session from the process-wide sessionmaker.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If the database has not been initialized or
            if a database operation fails.
    """
    async with session_scope(get_sessionmaker()) as session:
        yield session


@asynccontextmanager
async def session_scope(
    sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Open a session that commits on success and rolls back on error.

    Args:
        sessionmaker: Factory to open the session from.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If a database operation fails.
    """
    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


def is_transient_conflict(error: BaseException) -> bool:
    """Check whether an error means a concurrent writer won the race.

    Args:
        error: Exception raised while running a transaction.

    Returns:
        True for PostgreSQL serialization failures and deadlocks and for
        SQLite lock timeouts.
    """
    if isinstance(error, TransientConflictError):
        return True
    if not isinstance(error, DBAPIError):
        return False

    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return True

    message = str(orig).lower()
    return any(fragment in message for fragment in _SQLITE_LOCK_MESSAGES)


async def run_in_transaction(
    sessionmaker: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    max_attempts: int = 5,
    backoff: float = 0.05,
) -> T:
    """Run a unit of work in its own transaction, retrying on conflicts.

    Each attempt gets a brand-new session, so every read inside ``work`` is
    re-done against the latest committed state. Errors that are not write
    conflicts roll back and propagate unchanged.

    Args:
        sessionmaker: Factory for fresh sessions.
        work: Coroutine function receiving the session. It must not commit.
        max_attempts: Attempts before giving up.
        backoff: Base delay in seconds; grows linearly with jitter.

    Returns:
        Whatever ``work`` returned on the attempt that committed.

    Raises:
        TransactionConflictError: If every attempt conflicted.
        DatabaseError: For non-conflict SQLAlchemy failures.
    """
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        async with sessionmaker() as session:
            try:
                result = await work(session)
                await session.commit()
                return result
            except (SQLAlchemyError, TransientConflictError) as e:
                await session.rollback()
                if not is_transient_conflict(e):
                    raise DatabaseError("Database operation failed", e) from e
                last_error = e
                logger.warning(
                    "Transaction conflict on attempt %d/%d: %s",
                    attempt,
                    max_attempts,
                    e,
                )
            except Exception:
                await session.rollback()
                raise

        if attempt < max_attempts and backoff > 0:
            await asyncio.sleep(backoff * attempt * (1 + random.random()))

    raise TransactionConflictError(max_attempts, last_error)


async def check_database_connection() -> bool:
    """Check if the record store is reachable.

    Returns:
        True if a trivial query succeeds, False otherwise.
    """
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
