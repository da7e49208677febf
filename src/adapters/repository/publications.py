"""
PostgreSQL adapter for the publish idempotency ledger.

Implements the PublicationLedger protocol with two tables:

- newsletter_publications: one row per idempotency key, in_progress until
  the publisher completes it, then holding the summary counts as JSONB.
- newsletter_deliveries: one row per (key, subscriber). A row is claimed
  with INSERT ... ON CONFLICT DO UPDATE ... WHERE outcome = 'failed', so
  exactly one caller owns each pending delivery, and only failed
  deliveries can be claimed again. A publication cannot be completed
  while another request holds a live pending claim under its key.
"""

import logging
from uuid import UUID

from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.models import PublishSummary
from src.domain.ports import ClaimResult, DeliveryState

from .postgres import storage_errors

logger = logging.getLogger(__name__)

_IN_PROGRESS = "in_progress"
_COMPLETED = "completed"


class PostgresPublicationLedger:
    """Implements PublicationLedger protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool, claim_timeout_seconds: int = 300) -> None:
        self._pool = pool
        self._claim_timeout_seconds = claim_timeout_seconds

    def begin(self, idempotency_key: str, user_id: UUID, title: str) -> PublishSummary | None:
        """
        Open a publication record unless one exists for the key.

        Returns:
            Stored summary if the key already completed, otherwise None
        """
        insert_sql = """
            INSERT INTO newsletter_publications (idempotency_key, user_id, title, status, created_at)
            VALUES (%s, %s, %s, %s, NOW())
            ON CONFLICT (idempotency_key) DO NOTHING
        """

        select_sql = """
            SELECT status, summary
            FROM newsletter_publications
            WHERE idempotency_key = %s
        """

        with storage_errors("begin_publication"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(insert_sql, (idempotency_key, user_id, title, _IN_PROGRESS))
                cursor.execute(select_sql, (idempotency_key,))
                status, summary = cursor.fetchone()
                conn.commit()

        if status == _COMPLETED:
            return PublishSummary.from_record(idempotency_key, summary or {})
        return None

    def claim_delivery(self, idempotency_key: str, subscriber_id: UUID) -> ClaimResult:
        """
        Claim one recipient, or explain why the claim was refused.

        A refused claim is DELIVERED when the row says so or when its
        PENDING claim is older than the claim timeout (the owning request
        died mid-send); anything else belongs to a live request.
        """
        claim_sql = """
            INSERT INTO newsletter_deliveries (idempotency_key, subscriber_id, outcome, updated_at)
            VALUES (%s, %s, %s, NOW())
            ON CONFLICT (idempotency_key, subscriber_id) DO UPDATE
            SET outcome = EXCLUDED.outcome,
                updated_at = NOW()
            WHERE newsletter_deliveries.outcome = %s
        """

        holder_sql = """
            SELECT outcome = %s
                OR (outcome = %s AND updated_at <= NOW() - %s * INTERVAL '1 second')
            FROM newsletter_deliveries
            WHERE idempotency_key = %s AND subscriber_id = %s
        """

        with storage_errors("claim_delivery"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    claim_sql,
                    (
                        idempotency_key,
                        subscriber_id,
                        DeliveryState.PENDING.value,
                        DeliveryState.FAILED.value,
                    ),
                )
                conn.commit()
                # 1 if INSERT succeeded OR a FAILED row was re-claimed
                if cursor.rowcount == 1:
                    return ClaimResult.CLAIMED

                cursor.execute(
                    holder_sql,
                    (
                        DeliveryState.DELIVERED.value,
                        DeliveryState.PENDING.value,
                        self._claim_timeout_seconds,
                        idempotency_key,
                        subscriber_id,
                    ),
                )
                (settled,) = cursor.fetchone()
                conn.commit()

        if settled:
            return ClaimResult.DELIVERED
        return ClaimResult.IN_FLIGHT

    def record_delivery(
        self, idempotency_key: str, subscriber_id: UUID, state: DeliveryState
    ) -> None:
        sql = """
            UPDATE newsletter_deliveries
            SET outcome = %s, updated_at = NOW()
            WHERE idempotency_key = %s AND subscriber_id = %s
        """

        with storage_errors("record_delivery"):
            with self._pool.connection() as conn:
                conn.execute(sql, (state.value, idempotency_key, subscriber_id))
                conn.commit()

    def complete(self, idempotency_key: str, summary: PublishSummary) -> bool:
        sql = """
            UPDATE newsletter_publications
            SET status = %s, summary = %s, completed_at = NOW()
            WHERE idempotency_key = %s
              AND NOT EXISTS (
                  SELECT 1
                  FROM newsletter_deliveries
                  WHERE idempotency_key = %s
                    AND outcome = %s
                    AND updated_at > NOW() - %s * INTERVAL '1 second'
              )
        """

        with storage_errors("complete_publication"):
            with self._pool.connection() as conn:
                cursor = conn.execute(
                    sql,
                    (
                        _COMPLETED,
                        Jsonb(summary.as_record()),
                        idempotency_key,
                        idempotency_key,
                        DeliveryState.PENDING.value,
                        self._claim_timeout_seconds,
                    ),
                )
                conn.commit()
                completed = cursor.rowcount == 1

        if completed:
            logger.info("Publication %s completed", idempotency_key)
        else:
            logger.info("Publication %s not completed: deliveries still in flight", idempotency_key)
        return completed
