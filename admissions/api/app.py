# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the application factory for the admission API.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI

from admissions import __version__
from admissions.api.middleware.auth import AuthMiddleware
from admissions.api.routes import health
from admissions.api.v1 import router as v1_router
from admissions.core.config import Settings, get_settings
from admissions.domains.admission.rules import RuleCatalog, load_rule_catalog
from admissions.domains.admission.service import AdmissionService
from admissions.domains.admission.verification import VerificationClient, Verifier
from admissions.domains.profile.service import ProfileService
from admissions.domains.auth.tokens import TokenVerifier
from admissions.infrastructure.database.connection import (
    close_database,
    get_sessionmaker,
    init_database,
)
from admissions.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def load_catalog(settings: Settings) -> RuleCatalog:
    """Load the configured rule catalog, or the builtin one.

    Raises:
        RuleCatalogError: If the configured file is invalid.
    """
    if settings.admission.rules_file:
        return load_rule_catalog(Path(settings.admission.rules_file))
    return RuleCatalog.builtin()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup configures logging, loads the rule catalog, opens the record
    store and builds the admission and profile services. A bad rule
    catalog stops startup before any connection is made. Shutdown closes
    the verification client and the record store.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    setup_logging(settings)
    logger.info(
        "Starting admission API: environment=%s, verification_mode=%s",
        settings.environment,
        settings.admission.verification_mode,
    )

    # =========================================================================
    # Startup
    # =========================================================================
    catalog = load_catalog(settings)
    logger.info("Rule catalog loaded: %d course rules", len(catalog))
    await init_database(settings)

    verifier: Verifier | None = app.state.verifier
    owned_client: VerificationClient | None = None
    if verifier is None and settings.admission.verification_mode != "disabled":
        owned_client = VerificationClient(settings.verification)
        verifier = owned_client
        if owned_client.endpoint is None:
            logger.warning("Verification service URL not configured; gated approvals will fail")

    app.state.admission_service = AdmissionService(
        sessionmaker=get_sessionmaker(),
        catalog=catalog,
        verifier=verifier,
        settings=settings,
    )
    app.state.profile_service = ProfileService(
        get_sessionmaker(),
        max_attempts=settings.admission.max_conflict_retries,
        backoff=settings.admission.retry_backoff_seconds,
    )

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================
    app.state.admission_service = None
    app.state.profile_service = None

    if owned_client is not None:
        try:
            await owned_client.aclose()
        except Exception as e:
            logger.warning("Error closing verification client: %s", str(e))

    try:
        await close_database()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning("Error closing database connections: %s", str(e))

    logger.info("Shutting down admission API")


def create_app(
    settings: Settings | None = None,
    verifier: Verifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use; loaded from the environment when omitted.
        verifier: Face verifier to use instead of the HTTP client.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Course Admission API",
        description="Enrollment request decisions with seat capacity and face verification",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # 307 redirects from /path to /path/ lose Authorization headers
        redirect_slashes=False,
    )

    # =========================================================================
    # State
    # =========================================================================
    app.state.settings = settings
    app.state.verifier = verifier
    app.state.admission_service = None
    app.state.profile_service = None

    # =========================================================================
    # Middleware
    # =========================================================================
    app.add_middleware(AuthMiddleware, verifier=TokenVerifier(settings.identity))

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.api.host, port=settings.api.port)
