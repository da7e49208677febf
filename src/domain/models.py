"""
Domain value types - Validated inputs, identities and publish outcomes.

Validation happens once, at parse time: a SubscriberEmail or SubscriberName
instance is always valid. Stored subscriber emails are re-parsed before
newsletter delivery, since rows written by older code may not satisfy the
current rules.
"""

import hashlib
import unicodedata
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union
from uuid import UUID

from email_validator import EmailNotValidError, validate_email

from .exceptions import ValidationError

MAX_NAME_LENGTH = 256
MAX_IDEMPOTENCY_KEY_LENGTH = 100


@dataclass(frozen=True)
class SubscriberEmail:
    """Syntactically valid, normalized email address."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> "SubscriberEmail":
        """
        Validate email syntax and normalize it.

        Normalization: strip whitespace and lowercase the whole address
        (email-validator also applies Unicode NFC). No DNS lookup is made.

        Raises:
            ValidationError: If the address is not well-formed
        """
        try:
            validated = validate_email(raw.strip(), check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError("email", str(e)) from None
        return cls(validated.normalized.lower())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriberName:
    """Non-empty display name without control characters."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> "SubscriberName":
        """
        Validate a subscriber display name.

        Raises:
            ValidationError: If empty after stripping, longer than
                MAX_NAME_LENGTH, or containing control characters
        """
        name = raw.strip()
        if not name:
            raise ValidationError("name", "must not be empty")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError("name", f"must be at most {MAX_NAME_LENGTH} characters")
        if any(unicodedata.category(ch) == "Cc" for ch in name):
            raise ValidationError("name", "must not contain control characters")
        return cls(name)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AdministratorIdentity:
    """Administrator resolved by AuthGate for the duration of one request."""

    user_id: UUID


@dataclass(frozen=True)
class NewsletterIssue:
    """Content of one publish request. Not persisted."""

    title: str
    text_content: str
    html_content: str

    def content_key(self) -> str:
        """
        Derive an idempotency key from the issue content.

        SHA-256 over the length-prefixed fields, so ("ab", "c") and
        ("a", "bc") never collide.
        """
        digest = hashlib.sha256()
        for part in (self.title, self.text_content, self.html_content):
            encoded = part.encode()
            digest.update(len(encoded).to_bytes(8, "big"))
            digest.update(encoded)
        return digest.hexdigest()


def resolve_idempotency_key(issue: NewsletterIssue, supplied: str | None) -> str:
    """
    Pick the idempotency key for a publish action.

    A client-supplied key wins; otherwise the content hash is used.

    Raises:
        ValidationError: If the supplied key is empty, too long,
            or not printable ASCII
    """
    if supplied is None:
        return issue.content_key()
    if not 0 < len(supplied) <= MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(
            "idempotency_key",
            f"must be between 1 and {MAX_IDEMPOTENCY_KEY_LENGTH} characters",
        )
    if not all(" " <= ch <= "~" for ch in supplied):
        raise ValidationError("idempotency_key", "must be printable ASCII")
    return supplied


# Delivery outcomes for one recipient of one publish action


@dataclass(frozen=True)
class Delivered:
    pass


@dataclass(frozen=True)
class AlreadyDelivered:
    """Recipient was handled by an earlier attempt with the same key."""

    pass


@dataclass(frozen=True)
class DeliveryInProgress:
    """Recipient is claimed by a concurrent request that has not finished."""

    pass


@dataclass(frozen=True)
class SkippedInvalidEmail:
    reason: str


@dataclass(frozen=True)
class TransportFailed:
    reason: str


DeliveryOutcome = Union[
    Delivered, AlreadyDelivered, DeliveryInProgress, SkippedInvalidEmail, TransportFailed
]


@dataclass(frozen=True)
class PublishSummary:
    """
    Report of one publish action.

    Counts are persisted with the idempotency key so that a replayed
    request can return them; per-recipient outcomes are not.
    """

    idempotency_key: str
    delivered: int = 0
    skipped_invalid: int = 0
    failed: int = 0
    already_delivered: int = 0
    replayed: bool = False
    outcomes: Mapping[UUID, DeliveryOutcome] = field(default_factory=dict)

    @classmethod
    def from_outcomes(
        cls, idempotency_key: str, outcomes: Mapping[UUID, DeliveryOutcome]
    ) -> "PublishSummary":
        """Count outcomes by variant."""
        values = list(outcomes.values())
        return cls(
            idempotency_key=idempotency_key,
            delivered=sum(isinstance(o, Delivered) for o in values),
            skipped_invalid=sum(isinstance(o, SkippedInvalidEmail) for o in values),
            failed=sum(isinstance(o, TransportFailed) for o in values),
            already_delivered=sum(isinstance(o, AlreadyDelivered) for o in values),
            outcomes=dict(outcomes),
        )

    @classmethod
    def from_record(cls, idempotency_key: str, record: Mapping[str, Any]) -> "PublishSummary":
        """Rebuild a summary from its stored counts."""
        return cls(
            idempotency_key=idempotency_key,
            delivered=int(record.get("delivered", 0)),
            skipped_invalid=int(record.get("skipped_invalid", 0)),
            failed=int(record.get("failed", 0)),
            already_delivered=int(record.get("already_delivered", 0)),
        )

    def as_record(self) -> dict[str, int]:
        """Counts to persist alongside the idempotency key."""
        return {
            "delivered": self.delivered,
            "skipped_invalid": self.skipped_invalid,
            "failed": self.failed,
            "already_delivered": self.already_delivered,
        }

    @property
    def message(self) -> str:
        """Human-readable outcome for the administrator."""
        if self.replayed:
            return "The newsletter issue has already been published."
        message = "The newsletter issue has been published!"
        problems = []
        if self.failed:
            problems.append(f"{self.failed} failed")
        if self.skipped_invalid:
            problems.append(f"{self.skipped_invalid} skipped (invalid email)")
        if problems:
            message += " (" + ", ".join(problems) + ")"
        return message
