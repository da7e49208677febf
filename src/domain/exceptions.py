"""
Domain exceptions - Semantic error types for subscriptions and publishing.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""


class NewsletterError(Exception):
    """Base class for newsletter domain errors."""

    pass


class ValidationError(NewsletterError):
    """Client-supplied input is malformed."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class TokenNotFound(NewsletterError):
    """Confirmation token does not resolve to any subscriber."""

    pass


class AuthError(NewsletterError):
    """Base class for authentication failures."""

    pass


class Unauthenticated(AuthError):
    """No valid session is associated with the request."""

    pass


class InvalidCredentials(AuthError):
    """Username/password pair rejected (never says which half was wrong)."""

    pass


class TransportError(NewsletterError):
    """Email transport refused or failed to deliver a message."""

    pass


class DeliveryError(NewsletterError):
    """Email dispatch failed and the failure must reach the caller."""

    pass


class PublishInProgress(NewsletterError):
    """Another request is still publishing under the same idempotency key."""

    pass


class StorageError(NewsletterError):
    """Persistence layer failure. Always fatal to the current request."""

    pass
