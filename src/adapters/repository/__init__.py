"""Repository adapters - Database implementations."""

from .admins import PostgresCredentialRepository, PostgresSessionStore
from .postgres import PostgresSubscriberRepository, run_migrations
from .publications import PostgresPublicationLedger

__all__ = [
    "PostgresCredentialRepository",
    "PostgresPublicationLedger",
    "PostgresSessionStore",
    "PostgresSubscriberRepository",
    "run_migrations",
]
