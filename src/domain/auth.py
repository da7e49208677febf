"""
AuthGate - Administrator authentication.

Two credential carriers are supported:

1. **Transport credentials** (HTTP Basic on the machine-oriented publish
   endpoint, and the login form): a username/password pair checked with
   bcrypt against the stored hash.
2. **Sessions** (browser admin pages): a server-tracked session id issued
   at login and resolved through the injected SessionStore.

Security Design - Timing Oracle Prevention:
------------------------------------------
validate_credentials always runs bcrypt.checkpw, whether or not the
username exists. For unknown usernames it compares against a dummy hash
generated with the configured cost factor, so both failure modes cost
the same and return the same InvalidCredentials error.
"""

import logging
import secrets
from dataclasses import dataclass
from functools import lru_cache
from uuid import UUID

import bcrypt

from .exceptions import InvalidCredentials, Unauthenticated
from .models import AdministratorIdentity
from .ports import CredentialRepository, SessionStore

logger = logging.getLogger(__name__)

SESSION_ID_BYTES = 32

# bcrypt only uses the first 72 bytes; newer releases reject longer input
BCRYPT_MAX_BYTES = 72


@lru_cache
def _dummy_hash(cost: int) -> str:
    """Bcrypt hash compared against when a username is unknown."""
    return bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(cost)).decode()


def _password_bytes(password: str) -> bytes:
    return password.encode()[:BCRYPT_MAX_BYTES]


def hash_password(password: str, cost: int) -> str:
    """Hash a password with bcrypt at the given cost factor."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=cost)).decode()


@dataclass
class AuthGate:
    """Resolves requests to an AdministratorIdentity or rejects them."""

    credentials: CredentialRepository
    sessions: SessionStore
    session_ttl_seconds: int = 3600
    bcrypt_cost: int = 12

    def validate_credentials(self, username: str, password: str) -> AdministratorIdentity:
        """
        Check a username/password pair.

        Raises:
            InvalidCredentials: For unknown usernames and wrong passwords alike
        """
        stored = self.credentials.get_stored_credentials(username)
        if stored is not None:
            user_id, expected_hash = stored
        else:
            user_id, expected_hash = None, _dummy_hash(self.bcrypt_cost)

        # CRITICAL: checkpw runs before any branch on user existence
        password_valid = bcrypt.checkpw(_password_bytes(password), expected_hash.encode())

        if user_id is None or not password_valid:
            logger.warning("Rejected administrator credentials")
            raise InvalidCredentials("Authentication failed")
        return AdministratorIdentity(user_id=user_id)

    def login(self, username: str, password: str) -> str:
        """
        Validate credentials and open a session.

        Returns:
            New session id

        Raises:
            InvalidCredentials: If the credentials are rejected
        """
        identity = self.validate_credentials(username, password)
        session_id = secrets.token_urlsafe(SESSION_ID_BYTES)
        self.sessions.create(session_id, identity.user_id, self.session_ttl_seconds)
        logger.info("Administrator %s logged in", identity.user_id)
        return session_id

    def authenticate_session(self, session_id: str | None) -> AdministratorIdentity:
        """
        Resolve a session id to the administrator it belongs to.

        Raises:
            Unauthenticated: If the session is missing, unknown or expired
        """
        if not session_id:
            raise Unauthenticated("No session")
        user_id = self.sessions.get_user_id(session_id)
        if user_id is None:
            raise Unauthenticated("Invalid or expired session")
        return AdministratorIdentity(user_id=user_id)

    def logout(self, session_id: str | None) -> None:
        """Delete a session, if any."""
        if session_id:
            self.sessions.delete(session_id)

    def ensure_administrator(self, username: str, password: str) -> UUID:
        """Create an administrator account unless the username is taken."""
        return self.credentials.ensure_user(username, hash_password(password, self.bcrypt_cost))
