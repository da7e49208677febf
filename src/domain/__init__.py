"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for subscriber confirmation
and newsletter publishing. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .auth import AuthGate
from .exceptions import (
    AuthError,
    DeliveryError,
    InvalidCredentials,
    NewsletterError,
    PublishInProgress,
    StorageError,
    TokenNotFound,
    TransportError,
    Unauthenticated,
    ValidationError,
)
from .models import (
    AdministratorIdentity,
    AlreadyDelivered,
    Delivered,
    DeliveryInProgress,
    DeliveryOutcome,
    NewsletterIssue,
    PublishSummary,
    SkippedInvalidEmail,
    SubscriberEmail,
    SubscriberName,
    TransportFailed,
)
from .newsletters import NewsletterPublisher
from .ports import (
    ClaimResult,
    CredentialRepository,
    DeliveryState,
    EmailSender,
    PublicationLedger,
    SessionStore,
    SubscriberRepository,
    SubscriptionStatus,
)
from .subscriptions import ConfirmationService, SubscriptionService
from .tokens import ConfirmationTokenIssuer

__all__ = [
    "AdministratorIdentity",
    "AlreadyDelivered",
    "AuthError",
    "AuthGate",
    "ClaimResult",
    "ConfirmationService",
    "ConfirmationTokenIssuer",
    "CredentialRepository",
    "Delivered",
    "DeliveryError",
    "DeliveryInProgress",
    "DeliveryOutcome",
    "DeliveryState",
    "EmailSender",
    "InvalidCredentials",
    "NewsletterError",
    "NewsletterIssue",
    "NewsletterPublisher",
    "PublicationLedger",
    "PublishInProgress",
    "PublishSummary",
    "SessionStore",
    "SkippedInvalidEmail",
    "StorageError",
    "SubscriberEmail",
    "SubscriberName",
    "SubscriberRepository",
    "SubscriptionService",
    "SubscriptionStatus",
    "TokenNotFound",
    "TransportError",
    "TransportFailed",
    "Unauthenticated",
    "ValidationError",
]
