"""
Postmark email sender adapter - Implements EmailSender protocol over HTTP.

Sends one message per call to Postmark's `POST /email` endpoint. No retry
is attempted here; every failure (connection error, timeout, non-2xx
status) surfaces as a TransportError for the domain to handle.
"""

import logging

import httpx

from src.domain.exceptions import TransportError

logger = logging.getLogger(__name__)


class PostmarkEmailSender:
    """
    Implements EmailSender protocol via the Postmark HTTP API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        base_url: str,
        sender: str,
        authorization_token: str,
        timeout_ms: int = 10_000,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the sender.

        Args:
            base_url: Postmark API base URL
            sender: From address (must be a verified Postmark sender)
            authorization_token: Postmark server token
            timeout_ms: Per-request timeout
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._sender = sender
        self._client = httpx.Client(
            base_url=base_url,
            headers={"X-Postmark-Server-Token": authorization_token},
            timeout=timeout_ms / 1000,
            transport=transport,
        )

    def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        """
        Send one email through Postmark.

        Raises:
            TransportError: On connection failure, timeout or non-2xx response
        """
        payload = {
            "From": self._sender,
            "To": to,
            "Subject": subject,
            "HtmlBody": html_body,
            "TextBody": text_body,
        }
        try:
            response = self._client.post("/email", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Postmark rejected email: status=%d", e.response.status_code)
            raise TransportError(f"Email API returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Postmark request failed: %s: %s", type(e).__name__, e)
            raise TransportError(f"Email API request failed: {type(e).__name__}") from e

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._client.close()
