"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, routes and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.email.console import ConsoleEmailSender
from src.adapters.email.postmark import PostmarkEmailSender
from src.adapters.repository.admins import PostgresCredentialRepository, PostgresSessionStore
from src.adapters.repository.postgres import run_migrations
from src.api.errors import install_exception_handlers
from src.api.routes import router
from src.config.settings import Settings, get_settings
from src.domain.auth import AuthGate
from src.domain.ports import EmailSender

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "subscriptions",
        "description": "Subscribe to the newsletter and confirm the subscription",
    },
    {
        "name": "newsletters",
        "description": "Publish newsletter issues (HTTP BASIC AUTH)",
    },
    {
        "name": "admin",
        "description": "Session-based admin pages",
    },
]


def build_email_sender(settings: Settings) -> EmailSender:
    """Create the email sender selected by settings.email_backend."""
    if settings.email_backend == "postmark":
        return PostmarkEmailSender(
            base_url=settings.email_base_url,
            sender=settings.email_sender,
            authorization_token=settings.email_authorization_token,
            timeout_ms=settings.email_timeout_ms,
        )
    return ConsoleEmailSender()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Seeds the configured administrator, if any
    - Closes connection pool and email client on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        open=True,
    )

    # Run migrations
    logger.info("Running database migrations...")
    run_migrations(pool)

    if settings.admin_username and settings.admin_password:
        auth = AuthGate(
            credentials=PostgresCredentialRepository(pool),
            sessions=PostgresSessionStore(pool),
            bcrypt_cost=settings.bcrypt_cost,
        )
        auth.ensure_administrator(settings.admin_username, settings.admin_password)
        logger.info("Administrator %s is available", settings.admin_username)

    # Store shared resources in app state for dependency injection
    app.state.pool = pool
    app.state.email_sender = build_email_sender(settings)

    logger.info("Application startup complete (email backend: %s)", settings.email_backend)

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if isinstance(app.state.email_sender, PostmarkEmailSender):
        app.state.email_sender.close()
    pool.close()
    logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    """Build the application with its routes and exception handlers."""
    application = FastAPI(
        title="newsletter",
        description="Newsletter API - Double opt-in subscriptions and idempotent issue publishing",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    install_exception_handlers(application)
    application.include_router(router)

    @application.get("/health")
    def health_check(request: Request) -> dict[str, str]:
        """
        Health check endpoint with database validation.

        Returns 200 OK if application and database are healthy.
        Raises exception if database connection fails.
        """
        # Validate database connectivity
        pool = request.app.state.pool
        with pool.connection() as conn:
            conn.execute("SELECT 1")

        return {"status": "healthy"}

    return application


app = create_app()
