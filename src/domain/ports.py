"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

if TYPE_CHECKING:
    from .models import PublishSummary


class SubscriptionStatus(str, Enum):
    """
    Subscriber confirmation states.

    State Transitions (forward-only):
    - PENDING_CONFIRMATION -> CONFIRMED (confirmation link followed)

    Terminal States:
    - CONFIRMED: eligible for newsletter delivery, never reverts

    Note: Forward-only transitions are enforced at the repository level
    via a conditional UPDATE (WHERE status = 'pending_confirmation').
    """

    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"


class DeliveryState(str, Enum):
    """Per-recipient state of one publish action in the ledger."""

    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


class ClaimResult(str, Enum):
    """
    Answer to a per-recipient delivery claim.

    - CLAIMED: the caller owns the delivery and must send
    - DELIVERED: an earlier attempt handled this recipient; do not send
    - IN_FLIGHT: another request holds a live claim; its result is unknown

    A PENDING claim older than the ledger's claim timeout is treated as
    abandoned by a crashed request and reported as DELIVERED, so the
    recipient is never sent the issue twice.
    """

    CLAIMED = "claimed"
    DELIVERED = "delivered"
    IN_FLIGHT = "in_flight"


class SubscriberRepository(Protocol):
    """Port interface for subscriber persistence."""

    def insert_pending(self, email: str, name: str) -> UUID:
        """
        Insert a subscriber in PENDING_CONFIRMATION state.

        If a subscriber with the same email already exists, its row is left
        untouched (name and status included) and its id is returned.

        Args:
            email: Normalized email address
            name: Validated display name

        Returns:
            Id of the new or existing subscriber
        """
        ...

    def store_token(self, token: str, subscriber_id: UUID) -> None:
        """Persist a confirmation token bound to a subscriber."""
        ...

    def find_by_token(self, token: str) -> UUID | None:
        """Resolve a confirmation token to its subscriber id, if any."""
        ...

    def mark_confirmed(self, subscriber_id: UUID) -> bool:
        """
        Atomically transition a subscriber to CONFIRMED.

        Implemented as a single conditional update, never read-then-write,
        so concurrent confirmations of the same subscriber are safe.

        Returns:
            True if a transition happened, False if already CONFIRMED
            (or the subscriber does not exist)
        """
        ...

    def list_confirmed(self) -> Sequence[tuple[UUID, str]]:
        """Return (id, stored email) for every CONFIRMED subscriber."""
        ...


class CredentialRepository(Protocol):
    """Port interface for administrator credentials."""

    def get_stored_credentials(self, username: str) -> tuple[UUID, str] | None:
        """Return (user_id, bcrypt password hash) for a username, if it exists."""
        ...

    def ensure_user(self, username: str, password_hash: str) -> UUID:
        """Create the administrator unless the username exists; return its id."""
        ...


class SessionStore(Protocol):
    """Port interface for server-tracked administrator sessions."""

    def create(self, session_id: str, user_id: UUID, ttl_seconds: int) -> None:
        """Store a session that expires after ttl_seconds."""
        ...

    def get_user_id(self, session_id: str) -> UUID | None:
        """Return the user bound to a live session, None if unknown or expired."""
        ...

    def delete(self, session_id: str) -> None:
        """Forget a session. Deleting an unknown session is a no-op."""
        ...


class PublicationLedger(Protocol):
    """Port interface recording publish actions per idempotency key."""

    def begin(self, idempotency_key: str, user_id: UUID, title: str) -> "PublishSummary | None":
        """
        Register a publish action under an idempotency key.

        Inserts an in-progress record unless one already exists.

        Returns:
            The stored summary if the key already completed, otherwise None
        """
        ...

    def claim_delivery(self, idempotency_key: str, subscriber_id: UUID) -> ClaimResult:
        """
        Atomically claim the right to send this publish to one subscriber.

        A previously FAILED delivery can be claimed again; PENDING or
        DELIVERED ones cannot.

        Returns:
            CLAIMED if the caller now owns the delivery and should send,
            otherwise why the claim was refused
        """
        ...

    def record_delivery(
        self, idempotency_key: str, subscriber_id: UUID, state: DeliveryState
    ) -> None:
        """Record the result of a claimed delivery."""
        ...

    def complete(self, idempotency_key: str, summary: "PublishSummary") -> bool:
        """
        Mark the publish action completed and store its summary.

        Refused while another request still holds a live PENDING claim
        under the key.

        Returns:
            True if the key is now completed
        """
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        """
        Send one email.

        Args:
            to: Recipient email address
            subject: Subject line
            html_body: HTML part
            text_body: Plain-text part

        Raises:
            TransportError: If the transport refused or failed the message
        """
        ...
