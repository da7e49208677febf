"""
PostgreSQL repository adapter - Implements SubscriberRepository protocol.

This module provides the PostgreSQL implementation of the domain's
subscriber port using psycopg3 with raw SQL, plus the helpers shared by
the other Postgres adapters (error translation, migrations).

Concurrency Design:
------------------
1. **insert_pending**: INSERT ... ON CONFLICT (email) DO UPDATE ... RETURNING id.
   The UNIQUE constraint on email makes concurrent subscriptions for the
   same address converge on one row; the no-op update lets RETURNING
   yield the existing id.

2. **mark_confirmed**: a single conditional UPDATE
   (WHERE status = 'pending_confirmation'). Under READ COMMITTED a second
   concurrent confirmation waits for the row lock, re-evaluates the WHERE
   clause against the committed row and updates nothing. Both callers
   succeed; exactly one reports a transition.

3. **find_by_token**: primary-key lookup on subscription_tokens.
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from uuid import UUID

import psycopg
from psycopg_pool import ConnectionPool

from src.domain.exceptions import StorageError
from src.domain.ports import SubscriptionStatus

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate psycopg errors raised inside the block into StorageError."""
    try:
        yield
    except psycopg.Error as e:
        logger.error("Database error during %s: %s", operation, e)
        raise StorageError(f"Database error during {operation}") from e


class PostgresSubscriberRepository:
    """
    Implements SubscriberRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def insert_pending(self, email: str, name: str) -> UUID:
        """
        Insert a pending subscriber, or return the id of the existing one.

        An existing row keeps its name and status.

        Args:
            email: Normalized email address
            name: Validated display name

        Returns:
            Subscriber id
        """
        sql = """
            INSERT INTO subscriptions (id, email, name, status, subscribed_at)
            VALUES (%s, %s, %s, %s, NOW())
            ON CONFLICT (email) DO UPDATE
            SET email = EXCLUDED.email
            RETURNING id
        """

        with storage_errors("insert_pending"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    sql,
                    (uuid.uuid4(), email, name, SubscriptionStatus.PENDING_CONFIRMATION.value),
                )
                row = cursor.fetchone()
                conn.commit()
        return row[0]

    def store_token(self, token: str, subscriber_id: UUID) -> None:
        """Persist a confirmation token bound to subscriber_id."""
        sql = """
            INSERT INTO subscription_tokens (subscription_token, subscriber_id, issued_at)
            VALUES (%s, %s, NOW())
        """

        with storage_errors("store_token"):
            with self._pool.connection() as conn:
                conn.execute(sql, (token, subscriber_id))
                conn.commit()

    def find_by_token(self, token: str) -> UUID | None:
        """Resolve a confirmation token to its subscriber id."""
        sql = """
            SELECT subscriber_id
            FROM subscription_tokens
            WHERE subscription_token = %s
        """

        with storage_errors("find_by_token"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (token,))
                row = cursor.fetchone()
        return row[0] if row is not None else None

    def mark_confirmed(self, subscriber_id: UUID) -> bool:
        """
        Transition a subscriber to CONFIRMED if it is still pending.

        Returns:
            True if this call performed the transition
        """
        sql = """
            UPDATE subscriptions
            SET status = %s
            WHERE id = %s AND status = %s
        """

        with storage_errors("mark_confirmed"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    sql,
                    (
                        SubscriptionStatus.CONFIRMED.value,
                        subscriber_id,
                        SubscriptionStatus.PENDING_CONFIRMATION.value,
                    ),
                )
                conn.commit()
                return cursor.rowcount == 1

    def list_confirmed(self) -> list[tuple[UUID, str]]:
        """Return (id, email) for every CONFIRMED subscriber, oldest first."""
        sql = """
            SELECT id, email
            FROM subscriptions
            WHERE status = %s
            ORDER BY subscribed_at, id
        """

        with storage_errors("list_confirmed"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (SubscriptionStatus.CONFIRMED.value,))
                rows = cursor.fetchall()
        return [(row[0], row[1]) for row in rows]


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)
                conn.commit()

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
