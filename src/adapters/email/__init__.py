"""Email adapters - EmailSender implementations."""

from .console import ConsoleEmailSender
from .postmark import PostmarkEmailSender

__all__ = ["ConsoleEmailSender", "PostmarkEmailSender"]
