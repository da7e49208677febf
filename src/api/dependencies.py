"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from psycopg_pool import ConnectionPool

from src.adapters.repository.admins import PostgresCredentialRepository, PostgresSessionStore
from src.adapters.repository.postgres import PostgresSubscriberRepository
from src.adapters.repository.publications import PostgresPublicationLedger
from src.config.settings import Settings, get_settings
from src.domain.auth import AuthGate
from src.domain.exceptions import InvalidCredentials
from src.domain.models import AdministratorIdentity
from src.domain.newsletters import NewsletterPublisher
from src.domain.ports import (
    CredentialRepository,
    EmailSender,
    PublicationLedger,
    SessionStore,
    SubscriberRepository,
)
from src.domain.subscriptions import ConfirmationService, SubscriptionService
from src.domain.tokens import ConfirmationTokenIssuer

PUBLISH_REALM = "publish"


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_email_sender(request: Request) -> EmailSender:
    """Get the email sender chosen at startup (settings.email_backend)."""
    return request.app.state.email_sender


def get_subscriber_repository(pool: ConnectionPool = Depends(get_pool)) -> SubscriberRepository:
    return PostgresSubscriberRepository(pool)


def get_credential_repository(pool: ConnectionPool = Depends(get_pool)) -> CredentialRepository:
    return PostgresCredentialRepository(pool)


def get_session_store(pool: ConnectionPool = Depends(get_pool)) -> SessionStore:
    return PostgresSessionStore(pool)


def get_publication_ledger(
    pool: ConnectionPool = Depends(get_pool),
    settings: Settings = Depends(get_settings),
) -> PublicationLedger:
    return PostgresPublicationLedger(pool, settings.publish_claim_timeout_seconds)


def get_subscription_service(
    repository: SubscriberRepository = Depends(get_subscriber_repository),
    email_sender: EmailSender = Depends(get_email_sender),
    settings: Settings = Depends(get_settings),
) -> SubscriptionService:
    """
    Create subscription service with injected dependencies.

    Wires together the repository, token issuer and email sender.
    """
    return SubscriptionService(
        repository=repository,
        token_issuer=ConfirmationTokenIssuer(repository),
        email_sender=email_sender,
        base_url=settings.base_url,
    )


def get_confirmation_service(
    repository: SubscriberRepository = Depends(get_subscriber_repository),
) -> ConfirmationService:
    return ConfirmationService(repository=repository)


def get_auth_gate(
    credentials: CredentialRepository = Depends(get_credential_repository),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
) -> AuthGate:
    return AuthGate(
        credentials=credentials,
        sessions=sessions,
        session_ttl_seconds=settings.session_ttl_seconds,
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_newsletter_publisher(
    repository: SubscriberRepository = Depends(get_subscriber_repository),
    ledger: PublicationLedger = Depends(get_publication_ledger),
    email_sender: EmailSender = Depends(get_email_sender),
) -> NewsletterPublisher:
    return NewsletterPublisher(repository=repository, ledger=ledger, email_sender=email_sender)


# HTTP BASIC AUTH security scheme for OpenAPI documentation.
# Missing or malformed headers get 401 + WWW-Authenticate: Basic realm="publish".
http_basic = HTTPBasic(realm=PUBLISH_REALM)


def get_publishing_administrator(
    credentials: HTTPBasicCredentials = Depends(http_basic),
    auth: AuthGate = Depends(get_auth_gate),
) -> AdministratorIdentity:
    """
    Authenticate the machine-oriented publish endpoint via HTTP BASIC AUTH.

    Unknown usernames and wrong passwords produce the same 401 response.
    """
    try:
        return auth.validate_credentials(credentials.username, credentials.password)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": f'Basic realm="{PUBLISH_REALM}"'},
        ) from None


def get_session_id(request: Request, settings: Settings = Depends(get_settings)) -> str | None:
    """Read the administrator session id from its cookie."""
    return request.cookies.get(settings.session_cookie_name)


def get_session_administrator(
    session_id: str | None = Depends(get_session_id),
    auth: AuthGate = Depends(get_auth_gate),
) -> AdministratorIdentity:
    """
    Authenticate browser admin pages via the session cookie.

    Raises Unauthenticated, which the app turns into a redirect to /login.
    """
    return auth.authenticate_session(session_id)
