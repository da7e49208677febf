"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging outgoing messages for development and demos.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - confirmation links show up in the logs.
    """

    def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        """
        Log an email to the console (simulates email delivery).

        The text body is logged at INFO level so confirmation links are
        visible in docker-compose logs.

        Args:
            to: Recipient email address
            subject: Subject line
            html_body: HTML part (not logged)
            text_body: Plain-text part
        """
        logger.info("[EMAIL] To: %s Subject: %s\n%s", to, subject, text_body)
