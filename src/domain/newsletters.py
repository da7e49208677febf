"""
Newsletter publisher - Idempotent, best-effort fan-out to confirmed subscribers.

Publish Flow
============

1. Resolve the idempotency key (client-supplied, else content hash).
2. ledger.begin(): if the key already completed, return the stored
   summary with replayed=True. No email is sent.
3. For every CONFIRMED subscriber:
   - re-validate the stored email; invalid ones are skipped and logged
   - ledger.claim_delivery(); only a CLAIMED recipient is sent to.
     DELIVERED means an earlier attempt handled the recipient, IN_FLIGHT
     means a concurrent request with the same key still owns it
   - send, then record DELIVERED or FAILED
4. If any recipient is IN_FLIGHT, raise PublishInProgress: the key is
   left open for the owning request, which alone knows how its sends end.
5. If no recipient received the issue and at least one failed, raise
   DeliveryError and leave the key open so a retry can re-attempt the
   failed recipients.
6. If nobody received the issue at all (no confirmed subscribers), the
   key is left open too, so the same issue can be published once readers
   have confirmed.
7. Otherwise ledger.complete() stores the summary. The ledger refuses
   while a concurrent request holds a live claim, which surfaces as
   PublishInProgress.

Per-recipient claims make an interrupted publish resumable: a retry with
the same key skips recipients that were already sent to.
"""

import logging
from dataclasses import dataclass, replace
from uuid import UUID

from .exceptions import DeliveryError, PublishInProgress, TransportError, ValidationError
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
    TransportFailed,
    resolve_idempotency_key,
)
from .ports import ClaimResult, DeliveryState, EmailSender, PublicationLedger, SubscriberRepository

logger = logging.getLogger(__name__)


@dataclass
class NewsletterPublisher:
    """Domain service delivering one newsletter issue to every confirmed subscriber."""

    repository: SubscriberRepository
    ledger: PublicationLedger
    email_sender: EmailSender

    def publish(
        self,
        issue: NewsletterIssue,
        actor: AdministratorIdentity,
        idempotency_key: str | None = None,
    ) -> PublishSummary:
        """
        Publish a newsletter issue.

        Args:
            issue: Title and content to send
            actor: Authenticated administrator (attribution only)
            idempotency_key: Client-supplied key; defaults to a content hash

        Returns:
            PublishSummary with per-outcome counts

        Raises:
            ValidationError: If the supplied idempotency key is malformed
            DeliveryError: If every attempted recipient failed
            PublishInProgress: If a concurrent request with the same key
                has not finished
            StorageError: On any persistence failure
        """
        key = resolve_idempotency_key(issue, idempotency_key)

        previous = self.ledger.begin(key, actor.user_id, issue.title)
        if previous is not None:
            logger.info("Publish %s already completed; replaying (user_id=%s)", key, actor.user_id)
            return replace(previous, replayed=True)

        logger.info("Publishing newsletter issue %s (user_id=%s)", key, actor.user_id)

        outcomes: dict[UUID, DeliveryOutcome] = {}
        for subscriber_id, stored_email in self.repository.list_confirmed():
            outcomes[subscriber_id] = self._deliver(key, subscriber_id, stored_email, issue)

        summary = PublishSummary.from_outcomes(key, outcomes)
        logger.info(
            "Publish %s finished: delivered=%d failed=%d skipped_invalid=%d already_delivered=%d",
            key,
            summary.delivered,
            summary.failed,
            summary.skipped_invalid,
            summary.already_delivered,
        )

        in_flight = sum(isinstance(o, DeliveryInProgress) for o in outcomes.values())
        if in_flight:
            logger.info("Publish %s: %d recipient(s) held by a concurrent request", key, in_flight)
            raise PublishInProgress(f"Publish {key} is still in progress")

        if summary.failed and not (summary.delivered or summary.already_delivered):
            raise DeliveryError(
                f"Newsletter issue could not be delivered to any of {summary.failed} recipient(s)"
            )

        if not (summary.delivered or summary.already_delivered):
            logger.info("Publish %s reached no recipient; key left open", key)
            return summary

        if not self.ledger.complete(key, summary):
            raise PublishInProgress(f"Publish {key} is still in progress")
        return summary

    def _deliver(
        self, key: str, subscriber_id: UUID, stored_email: str, issue: NewsletterIssue
    ) -> DeliveryOutcome:
        try:
            email = SubscriberEmail.parse(stored_email)
        except ValidationError as e:
            logger.warning(
                "Skipping confirmed subscriber %s: stored email is invalid (%s)",
                subscriber_id,
                e.reason,
            )
            return SkippedInvalidEmail(reason=e.reason)

        claim = self.ledger.claim_delivery(key, subscriber_id)
        if claim == ClaimResult.DELIVERED:
            return AlreadyDelivered()
        if claim == ClaimResult.IN_FLIGHT:
            return DeliveryInProgress()

        try:
            self.email_sender.send(str(email), issue.title, issue.html_content, issue.text_content)
        except TransportError as e:
            logger.warning(
                "Failed to send newsletter issue %s to subscriber %s: %s", key, subscriber_id, e
            )
            self.ledger.record_delivery(key, subscriber_id, DeliveryState.FAILED)
            return TransportFailed(reason=str(e))

        self.ledger.record_delivery(key, subscriber_id, DeliveryState.DELIVERED)
        return Delivered()
