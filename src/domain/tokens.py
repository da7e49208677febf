"""
Confirmation token issuer.

Tokens are drawn from secrets.token_urlsafe, which reads the operating
system CSPRNG. 32 random bytes give 256 bits of entropy, well above what
enumeration could cover, encoded as 43 URL-safe characters.
"""

import secrets
from dataclasses import dataclass
from urllib.parse import urlencode
from uuid import UUID

from .ports import SubscriberRepository

TOKEN_BYTES = 32
CONFIRMATION_PATH = "/subscriptions/confirm"


@dataclass
class ConfirmationTokenIssuer:
    """Generates confirmation tokens and persists them against a subscriber."""

    repository: SubscriberRepository

    def issue(self, subscriber_id: UUID) -> str:
        """Generate, store and return a new token bound to subscriber_id."""
        token = secrets.token_urlsafe(TOKEN_BYTES)
        self.repository.store_token(token, subscriber_id)
        return token

    @staticmethod
    def confirmation_link(base_url: str, token: str) -> str:
        """Build {base_url}/subscriptions/confirm?subscription_token={token}."""
        query = urlencode({"subscription_token": token})
        return f"{base_url.rstrip('/')}{CONFIRMATION_PATH}?{query}"
