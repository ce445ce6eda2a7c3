# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the admission record store.

Example:
    from admissions.infrastructure.database import (
        init_database,
        get_session,
        run_in_transaction,
    )

    await init_database(settings)
    async with get_session() as session:
        result = await session.execute(select(EnrollmentRequest))
"""

from admissions.infrastructure.database.connection import (
    DatabaseError,
    TransactionConflictError,
    TransientConflictError,
    build_engine,
    build_sessionmaker,
    check_database_connection,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
    is_transient_conflict,
    run_in_transaction,
    session_scope,
)

__all__ = [
    "DatabaseError",
    "TransactionConflictError",
    "TransientConflictError",
    "build_engine",
    "build_sessionmaker",
    "check_database_connection",
    "close_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
    "is_transient_conflict",
    "run_in_transaction",
    "session_scope",
]
