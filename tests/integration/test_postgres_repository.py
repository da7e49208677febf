"""
Integration tests for the PostgreSQL adapters.

Tests repository operations against a real PostgreSQL database.
Requires PostgreSQL to be running (via docker-compose).
"""

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import bcrypt
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.admins import PostgresCredentialRepository, PostgresSessionStore
from src.adapters.repository.postgres import PostgresSubscriberRepository
from src.adapters.repository.publications import PostgresPublicationLedger
from src.domain.exceptions import StorageError
from src.domain.models import PublishSummary
from src.domain.ports import ClaimResult, DeliveryState, SubscriptionStatus

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("clean_database")]


@pytest.fixture
def repository(pool: ConnectionPool) -> PostgresSubscriberRepository:
    """Create repository instance for each test."""
    return PostgresSubscriberRepository(pool)


@pytest.fixture
def credentials(pool: ConnectionPool) -> PostgresCredentialRepository:
    return PostgresCredentialRepository(pool)


@pytest.fixture
def sessions(pool: ConnectionPool) -> PostgresSessionStore:
    return PostgresSessionStore(pool)


@pytest.fixture
def ledger(pool: ConnectionPool) -> PostgresPublicationLedger:
    return PostgresPublicationLedger(pool)


@pytest.fixture
def admin_id(credentials: PostgresCredentialRepository) -> uuid.UUID:
    password_hash = bcrypt.hashpw(b"password", bcrypt.gensalt(4)).decode()
    return credentials.ensure_user("admin", password_hash)


def get_status(pool: ConnectionPool, subscriber_id: uuid.UUID) -> str:
    with pool.connection() as conn, conn.cursor() as cursor:
        cursor.execute("SELECT status FROM subscriptions WHERE id = %s", (subscriber_id,))
        return cursor.fetchone()[0]


class TestInsertPending:
    """Tests for insert_pending method."""

    def test_insert_creates_pending_row(
        self, repository: PostgresSubscriberRepository, pool: ConnectionPool
    ) -> None:
        """A new email creates one PENDING_CONFIRMATION row."""
        subscriber_id = repository.insert_pending("ursula_le_guin@gmail.com", "le guin")

        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT email, name, status FROM subscriptions")
            rows = cursor.fetchall()

        assert rows == [("ursula_le_guin@gmail.com", "le guin", "pending_confirmation")]
        assert isinstance(subscriber_id, uuid.UUID)

    def test_duplicate_email_returns_existing_id(
        self, repository: PostgresSubscriberRepository, pool: ConnectionPool
    ) -> None:
        """The same email converges on the same row and keeps its name."""
        first = repository.insert_pending("ursula_le_guin@gmail.com", "le guin")
        second = repository.insert_pending("ursula_le_guin@gmail.com", "someone else")

        assert first == second
        with pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT COUNT(*), MIN(name) FROM subscriptions")
            assert cursor.fetchone() == (1, "le guin")

    def test_duplicate_email_keeps_confirmed_status(
        self, repository: PostgresSubscriberRepository, pool: ConnectionPool
    ) -> None:
        """Subscribing again never reverts a confirmed subscriber."""
        subscriber_id = repository.insert_pending("ursula_le_guin@gmail.com", "le guin")
        repository.mark_confirmed(subscriber_id)

        repository.insert_pending("ursula_le_guin@gmail.com", "le guin")

        assert get_status(pool, subscriber_id) == SubscriptionStatus.CONFIRMED.value

    def test_concurrent_inserts_create_one_row(
        self, repository: PostgresSubscriberRepository
    ) -> None:
        """Racing subscriptions for one email converge on a single id."""
        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [
                executor.submit(repository.insert_pending, "race@example.com", "racer")
                for _ in range(5)
            ]
            ids = {f.result() for f in futures}

        assert len(ids) == 1


class TestTokens:
    """Tests for store_token and find_by_token methods."""

    def test_token_round_trip(self, repository: PostgresSubscriberRepository) -> None:
        """A stored token resolves to its subscriber."""
        subscriber_id = repository.insert_pending("user@example.com", "user")
        repository.store_token("token-abc", subscriber_id)

        assert repository.find_by_token("token-abc") == subscriber_id

    def test_unknown_token_returns_none(self, repository: PostgresSubscriberRepository) -> None:
        """An unknown token resolves to None."""
        assert repository.find_by_token("not-a-real-token") is None

    def test_multiple_tokens_per_subscriber(self, repository: PostgresSubscriberRepository) -> None:
        """Each resend adds a token; older ones stay valid."""
        subscriber_id = repository.insert_pending("user@example.com", "user")
        repository.store_token("first", subscriber_id)
        repository.store_token("second", subscriber_id)

        assert repository.find_by_token("first") == subscriber_id
        assert repository.find_by_token("second") == subscriber_id

    def test_duplicate_token_raises_storage_error(
        self, repository: PostgresSubscriberRepository
    ) -> None:
        """Primary key violations surface as StorageError."""
        subscriber_id = repository.insert_pending("user@example.com", "user")
        repository.store_token("same", subscriber_id)

        with pytest.raises(StorageError):
            repository.store_token("same", subscriber_id)

    def test_token_for_missing_subscriber_raises_storage_error(
        self, repository: PostgresSubscriberRepository
    ) -> None:
        """Foreign key violations surface as StorageError."""
        with pytest.raises(StorageError):
            repository.store_token("orphan", uuid.uuid4())


class TestMarkConfirmed:
    """Tests for mark_confirmed method."""

    def test_first_confirmation_transitions(
        self, repository: PostgresSubscriberRepository, pool: ConnectionPool
    ) -> None:
        """PENDING_CONFIRMATION -> CONFIRMED returns True."""
        subscriber_id = repository.insert_pending("user@example.com", "user")

        assert repository.mark_confirmed(subscriber_id) is True
        assert get_status(pool, subscriber_id) == "confirmed"

    def test_second_confirmation_is_noop(self, repository: PostgresSubscriberRepository) -> None:
        """An already confirmed subscriber reports no transition."""
        subscriber_id = repository.insert_pending("user@example.com", "user")
        repository.mark_confirmed(subscriber_id)

        assert repository.mark_confirmed(subscriber_id) is False

    def test_unknown_subscriber_returns_false(
        self, repository: PostgresSubscriberRepository
    ) -> None:
        assert repository.mark_confirmed(uuid.uuid4()) is False

    def test_concurrent_confirmations_transition_once(
        self, repository: PostgresSubscriberRepository, pool: ConnectionPool
    ) -> None:
        """Racing confirmations: exactly one reports the transition."""
        subscriber_id = repository.insert_pending("race@example.com", "racer")
        barrier = threading.Barrier(5)

        def confirm() -> bool:
            barrier.wait()
            return repository.mark_confirmed(subscriber_id)

        with ThreadPoolExecutor(max_workers=5) as executor:
            results = [f.result() for f in [executor.submit(confirm) for _ in range(5)]]

        assert results.count(True) == 1
        assert get_status(pool, subscriber_id) == "confirmed"


class TestListConfirmed:
    """Tests for list_confirmed method."""

    def test_only_confirmed_subscribers_listed(
        self, repository: PostgresSubscriberRepository
    ) -> None:
        """Pending subscribers are excluded."""
        confirmed = repository.insert_pending("confirmed@example.com", "c")
        repository.insert_pending("pending@example.com", "p")
        repository.mark_confirmed(confirmed)

        assert repository.list_confirmed() == [(confirmed, "confirmed@example.com")]

    def test_empty_when_nobody_confirmed(self, repository: PostgresSubscriberRepository) -> None:
        assert repository.list_confirmed() == []


class TestCredentials:
    """Tests for PostgresCredentialRepository."""

    def test_ensure_user_then_lookup(self, credentials: PostgresCredentialRepository) -> None:
        """A seeded user is found with its hash."""
        user_id = credentials.ensure_user("editor", "$2b$04$hash")

        assert credentials.get_stored_credentials("editor") == (user_id, "$2b$04$hash")

    def test_ensure_user_is_idempotent(self, credentials: PostgresCredentialRepository) -> None:
        """Seeding an existing username keeps the original id and hash."""
        first = credentials.ensure_user("editor", "$2b$04$first")
        second = credentials.ensure_user("editor", "$2b$04$second")

        assert first == second
        assert credentials.get_stored_credentials("editor") == (first, "$2b$04$first")

    def test_unknown_username_returns_none(self, credentials: PostgresCredentialRepository) -> None:
        assert credentials.get_stored_credentials("nobody") is None


class TestSessions:
    """Tests for PostgresSessionStore."""

    def test_live_session_resolves(
        self, sessions: PostgresSessionStore, admin_id: uuid.UUID
    ) -> None:
        """A fresh session maps to its user."""
        sessions.create("session-1", admin_id, ttl_seconds=3600)

        assert sessions.get_user_id("session-1") == admin_id

    def test_expired_session_is_ignored(
        self, sessions: PostgresSessionStore, admin_id: uuid.UUID
    ) -> None:
        """Expiry is evaluated with database time."""
        sessions.create("session-1", admin_id, ttl_seconds=0)

        assert sessions.get_user_id("session-1") is None

    def test_deleted_session_is_gone(
        self, sessions: PostgresSessionStore, admin_id: uuid.UUID
    ) -> None:
        sessions.create("session-1", admin_id, ttl_seconds=3600)
        sessions.delete("session-1")

        assert sessions.get_user_id("session-1") is None

    def test_delete_unknown_session_is_noop(self, sessions: PostgresSessionStore) -> None:
        sessions.delete("never-existed")


class TestPublicationLedger:
    """Tests for PostgresPublicationLedger."""

    def test_begin_new_key_returns_none(
        self, ledger: PostgresPublicationLedger, admin_id: uuid.UUID
    ) -> None:
        """A new key starts in progress."""
        assert ledger.begin("key-1", admin_id, "Issue #1") is None

    def test_begin_in_progress_key_returns_none(
        self, ledger: PostgresPublicationLedger, admin_id: uuid.UUID
    ) -> None:
        """An unfinished key can be resumed."""
        ledger.begin("key-1", admin_id, "Issue #1")
        assert ledger.begin("key-1", admin_id, "Issue #1") is None

    def test_completed_key_returns_summary(
        self, ledger: PostgresPublicationLedger, admin_id: uuid.UUID
    ) -> None:
        """Completed keys return the stored counts."""
        ledger.begin("key-1", admin_id, "Issue #1")
        summary = PublishSummary("key-1", delivered=3, failed=1, skipped_invalid=2)
        ledger.complete("key-1", summary)

        stored = ledger.begin("key-1", admin_id, "Issue #1")

        assert stored == summary

    def test_claim_semantics(
        self,
        ledger: PostgresPublicationLedger,
        repository: PostgresSubscriberRepository,
        admin_id: uuid.UUID,
    ) -> None:
        """Pending and delivered claims are refused; failed ones can be re-claimed."""
        subscriber_id = repository.insert_pending("reader@example.com", "reader")
        ledger.begin("key-1", admin_id, "Issue #1")

        assert ledger.claim_delivery("key-1", subscriber_id) == ClaimResult.CLAIMED
        assert ledger.claim_delivery("key-1", subscriber_id) == ClaimResult.IN_FLIGHT

        ledger.record_delivery("key-1", subscriber_id, DeliveryState.FAILED)
        assert ledger.claim_delivery("key-1", subscriber_id) == ClaimResult.CLAIMED

        ledger.record_delivery("key-1", subscriber_id, DeliveryState.DELIVERED)
        assert ledger.claim_delivery("key-1", subscriber_id) == ClaimResult.DELIVERED

    def test_abandoned_pending_claim_reports_delivered(
        self,
        pool: ConnectionPool,
        repository: PostgresSubscriberRepository,
        admin_id: uuid.UUID,
    ) -> None:
        """A pending claim past the timeout is settled, never re-claimable."""
        ledger = PostgresPublicationLedger(pool, claim_timeout_seconds=60)
        subscriber_id = repository.insert_pending("reader@example.com", "reader")
        ledger.begin("key-1", admin_id, "Issue #1")
        ledger.claim_delivery("key-1", subscriber_id)
        with pool.connection() as conn:
            conn.execute(
                "UPDATE newsletter_deliveries SET updated_at = NOW() - INTERVAL '2 minutes'"
            )
            conn.commit()

        assert ledger.claim_delivery("key-1", subscriber_id) == ClaimResult.DELIVERED
        assert ledger.complete("key-1", PublishSummary("key-1", already_delivered=1)) is True

    def test_complete_refused_while_claim_is_live(
        self,
        ledger: PostgresPublicationLedger,
        repository: PostgresSubscriberRepository,
        admin_id: uuid.UUID,
    ) -> None:
        """A key cannot close while another request still holds a pending claim."""
        subscriber_id = repository.insert_pending("reader@example.com", "reader")
        ledger.begin("key-1", admin_id, "Issue #1")
        ledger.claim_delivery("key-1", subscriber_id)

        assert ledger.complete("key-1", PublishSummary("key-1", already_delivered=1)) is False
        assert ledger.begin("key-1", admin_id, "Issue #1") is None

        ledger.record_delivery("key-1", subscriber_id, DeliveryState.FAILED)
        assert ledger.complete("key-1", PublishSummary("key-1", failed=1)) is True

    def test_concurrent_claims_have_one_winner(
        self,
        ledger: PostgresPublicationLedger,
        repository: PostgresSubscriberRepository,
        admin_id: uuid.UUID,
    ) -> None:
        """Racing claims for one recipient: exactly one caller may send."""
        subscriber_id = repository.insert_pending("reader@example.com", "reader")
        ledger.begin("key-1", admin_id, "Issue #1")
        barrier = threading.Barrier(5)

        def claim() -> ClaimResult:
            barrier.wait()
            return ledger.claim_delivery("key-1", subscriber_id)

        with ThreadPoolExecutor(max_workers=5) as executor:
            results = [f.result() for f in [executor.submit(claim) for _ in range(5)]]

        assert results.count(ClaimResult.CLAIMED) == 1
        assert results.count(ClaimResult.IN_FLIGHT) == 4
