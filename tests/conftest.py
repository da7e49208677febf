"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory port implementations (tests/fakes.py)
- Domain services wired to those fakes
- A FastAPI test client whose dependencies resolve to the fakes
"""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.dependencies import (
    get_auth_gate,
    get_email_sender,
    get_publication_ledger,
    get_subscriber_repository,
)
from src.api.main import create_app
from src.config.settings import Settings, get_settings
from src.domain.auth import AuthGate
from src.domain.newsletters import NewsletterPublisher
from src.domain.subscriptions import ConfirmationService, SubscriptionService
from src.domain.tokens import ConfirmationTokenIssuer
from tests.fakes import (
    TEST_BCRYPT_COST,
    InMemoryCredentialRepository,
    InMemoryPublicationLedger,
    InMemorySessionStore,
    InMemorySubscriberRepository,
    RecordingEmailSender,
)
from tests.helpers import ADMIN_PASSWORD, ADMIN_USERNAME, BASE_URL


@pytest.fixture
def subscriber_repository() -> InMemorySubscriberRepository:
    return InMemorySubscriberRepository()


@pytest.fixture
def credential_repository() -> InMemoryCredentialRepository:
    repository = InMemoryCredentialRepository()
    repository.add_user(ADMIN_USERNAME, ADMIN_PASSWORD)
    return repository


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def publication_ledger() -> InMemoryPublicationLedger:
    return InMemoryPublicationLedger()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def subscription_service(
    subscriber_repository: InMemorySubscriberRepository,
    email_sender: RecordingEmailSender,
) -> SubscriptionService:
    return SubscriptionService(
        repository=subscriber_repository,
        token_issuer=ConfirmationTokenIssuer(subscriber_repository),
        email_sender=email_sender,
        base_url=BASE_URL,
    )


@pytest.fixture
def confirmation_service(
    subscriber_repository: InMemorySubscriberRepository,
) -> ConfirmationService:
    return ConfirmationService(repository=subscriber_repository)


@pytest.fixture
def auth_gate(
    credential_repository: InMemoryCredentialRepository,
    session_store: InMemorySessionStore,
) -> AuthGate:
    return AuthGate(
        credentials=credential_repository,
        sessions=session_store,
        session_ttl_seconds=3600,
        bcrypt_cost=TEST_BCRYPT_COST,
    )


@pytest.fixture
def publisher(
    subscriber_repository: InMemorySubscriberRepository,
    publication_ledger: InMemoryPublicationLedger,
    email_sender: RecordingEmailSender,
) -> NewsletterPublisher:
    return NewsletterPublisher(
        repository=subscriber_repository,
        ledger=publication_ledger,
        email_sender=email_sender,
    )


@pytest.fixture
def app(
    subscriber_repository: InMemorySubscriberRepository,
    publication_ledger: InMemoryPublicationLedger,
    email_sender: RecordingEmailSender,
    auth_gate: AuthGate,
) -> Generator[FastAPI, None, None]:
    """Application with every storage and transport dependency replaced by fakes."""
    test_app = create_app()
    test_app.dependency_overrides[get_settings] = lambda: Settings(base_url=BASE_URL)
    test_app.dependency_overrides[get_subscriber_repository] = lambda: subscriber_repository
    test_app.dependency_overrides[get_publication_ledger] = lambda: publication_ledger
    test_app.dependency_overrides[get_email_sender] = lambda: email_sender
    test_app.dependency_overrides[get_auth_gate] = lambda: auth_gate
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client; lifespan is not run, so no database is needed."""
    return TestClient(app)
