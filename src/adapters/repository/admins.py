"""
PostgreSQL adapters for administrator credentials and sessions.

Implements the CredentialRepository and SessionStore protocols. Session
expiry is evaluated with database time (NOW()), so application servers
with skewed clocks agree on whether a session is live.
"""

import uuid
from uuid import UUID

from psycopg_pool import ConnectionPool

from .postgres import storage_errors


class PostgresCredentialRepository:
    """Implements CredentialRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get_stored_credentials(self, username: str) -> tuple[UUID, str] | None:
        """Return (user_id, password_hash) for username, None if unknown."""
        sql = """
            SELECT user_id, password_hash
            FROM users
            WHERE username = %s
        """

        with storage_errors("get_stored_credentials"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (username,))
                row = cursor.fetchone()
        if row is None:
            return None
        return row[0], row[1]

    def ensure_user(self, username: str, password_hash: str) -> UUID:
        """
        Create an administrator unless the username already exists.

        An existing account keeps its password hash.

        Returns:
            user_id of the new or existing account
        """
        sql = """
            INSERT INTO users (user_id, username, password_hash)
            VALUES (%s, %s, %s)
            ON CONFLICT (username) DO UPDATE
            SET username = EXCLUDED.username
            RETURNING user_id
        """

        with storage_errors("ensure_user"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (uuid.uuid4(), username, password_hash))
                row = cursor.fetchone()
                conn.commit()
        return row[0]


class PostgresSessionStore:
    """Implements SessionStore protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create(self, session_id: str, user_id: UUID, ttl_seconds: int) -> None:
        sql = """
            INSERT INTO admin_sessions (session_id, user_id, created_at, expires_at)
            VALUES (%s, %s, NOW(), NOW() + %s * INTERVAL '1 second')
        """

        with storage_errors("create_session"):
            with self._pool.connection() as conn:
                conn.execute(sql, (session_id, user_id, ttl_seconds))
                conn.commit()

    def get_user_id(self, session_id: str) -> UUID | None:
        sql = """
            SELECT user_id
            FROM admin_sessions
            WHERE session_id = %s AND expires_at > NOW()
        """

        with storage_errors("get_session"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (session_id,))
                row = cursor.fetchone()
        return row[0] if row is not None else None

    def delete(self, session_id: str) -> None:
        with storage_errors("delete_session"):
            with self._pool.connection() as conn:
                conn.execute("DELETE FROM admin_sessions WHERE session_id = %s", (session_id,))
                conn.commit()
