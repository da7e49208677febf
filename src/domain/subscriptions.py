"""
Subscription domain services - Subscriber confirmation state machine.

Subscriber State Machine (Forward-Only Transitions)
===================================================

States:
- PENDING_CONFIRMATION: Initial state after subscribing
- CONFIRMED: Terminal state after the confirmation link is followed

Valid Transitions:
    PENDING_CONFIRMATION -> CONFIRMED   (ConfirmationService.confirm)

Invalid Transitions (never allowed):
    CONFIRMED -> any    (CONFIRMED is terminal)

Writers:
- SubscriptionService is the only code path that inserts subscribers.
- ConfirmationService is the only code path that changes status.

Note: The transition is a single conditional UPDATE in the repository,
so concurrent confirmations of the same subscriber both succeed and the
subscriber ends up CONFIRMED exactly once.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from .exceptions import DeliveryError, TokenNotFound, TransportError
from .models import SubscriberEmail, SubscriberName
from .ports import EmailSender, SubscriberRepository
from .tokens import ConfirmationTokenIssuer

logger = logging.getLogger(__name__)

CONFIRMATION_SUBJECT = "Welcome!"


@dataclass
class SubscriptionService:
    """
    Domain service for new subscriptions.

    Orchestrates the subscribe flow: input validation, pending subscriber
    persistence, token issuance and confirmation email dispatch.
    """

    repository: SubscriberRepository
    token_issuer: ConfirmationTokenIssuer
    email_sender: EmailSender
    base_url: str

    def subscribe(self, email: str, name: str) -> UUID:
        """
        Subscribe a visitor and send them a confirmation link.

        Subscribing with an email that is already stored reuses that
        subscriber and mails a freshly issued token (resend).

        Args:
            email: Visitor's email address (validated and normalized)
            name: Visitor's display name (validated)

        Returns:
            Subscriber id

        Raises:
            ValidationError: If email or name is malformed
            DeliveryError: If the confirmation email could not be sent;
                the subscriber stays stored in PENDING_CONFIRMATION
        """
        subscriber_email = SubscriberEmail.parse(email)
        subscriber_name = SubscriberName.parse(name)

        subscriber_id = self.repository.insert_pending(str(subscriber_email), str(subscriber_name))
        logger.info("Stored pending subscriber %s", subscriber_id)

        token = self.token_issuer.issue(subscriber_id)
        link = self.token_issuer.confirmation_link(self.base_url, token)

        try:
            self.email_sender.send(
                str(subscriber_email),
                CONFIRMATION_SUBJECT,
                self._html_body(link),
                self._text_body(link),
            )
        except TransportError as e:
            logger.warning(
                "Failed to send confirmation email to subscriber %s: %s", subscriber_id, e
            )
            raise DeliveryError("Failed to send a confirmation email") from e

        logger.info("Sent confirmation email to subscriber %s", subscriber_id)
        return subscriber_id

    def _html_body(self, link: str) -> str:
        return (
            "Welcome to our newsletter!<br />"
            f'Click <a href="{link}">here</a> to confirm your subscription.'
        )

    def _text_body(self, link: str) -> str:
        return f"Welcome to our newsletter!\nVisit {link} to confirm your subscription."


@dataclass
class ConfirmationService:
    """Domain service resolving confirmation tokens."""

    repository: SubscriberRepository

    def confirm(self, token: str) -> None:
        """
        Confirm the subscriber bound to token.

        Idempotent: confirming an already CONFIRMED subscriber, with the
        same or another of its tokens, succeeds without changing anything.

        Raises:
            TokenNotFound: If the token was never issued
        """
        subscriber_id = self.repository.find_by_token(token)
        if subscriber_id is None:
            raise TokenNotFound("Unknown confirmation token")

        if self.repository.mark_confirmed(subscriber_id):
            logger.info("Subscriber %s confirmed", subscriber_id)
        else:
            logger.info("Subscriber %s was already confirmed", subscriber_id)
