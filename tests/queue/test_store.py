"""Tests for QueueStore — enqueue, router handoff, expiry, revocation, admin ops."""
from datetime import datetime, timedelta, timezone

import pytest

from hotspot.core.errors import (
    DuplicateReference,
    JobNotFound,
    UsernameCollision,
    ValidationError,
    WrongState,
)
from hotspot.models.payment_job import JobStatus, PaymentJob
from hotspot.services.credentials import Credential
from hotspot.services.queue.store import Customer, QueueStore
from hotspot.utils.clock import as_utc

GRACE = timedelta(minutes=10)


def _cred(n: int) -> Credential:
    return Credential(username=f"u_test{n:04d}", password="abcd1234")


def _enqueue(store, n: int, plan: str = "7d", **kwargs):
    return store.enqueue(reference=f"REF{n:04d}", plan=plan, credential=_cred(n), **kwargs).job


class TestEnqueue:
    @pytest.mark.parametrize(
        "plan, duration",
        [("24hr", timedelta(hours=24)), ("7d", timedelta(days=7)), ("30d", timedelta(days=30))],
    )
    def test_expiry_fixed_at_creation(self, db, clock, plan, duration):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1, plan=plan)
        assert job.status == JobStatus.PENDING
        assert as_utc(job.created_at) == clock.now
        assert as_utc(job.expires_at) - as_utc(job.created_at) == duration

    def test_alias_is_stored_as_code(self, db, clock):
        job = _enqueue(QueueStore(db, clock=clock), 1, plan="weekly")
        assert job.plan == "7d"
        assert job.amount == 2400

    def test_customer_and_mac_are_kept(self, db, clock):
        job = _enqueue(
            QueueStore(db, clock=clock),
            1,
            mac="AA:BB:CC:DD:EE:FF",
            customer=Customer(email="x@y.com", phone="+2348000000000"),
        )
        assert job.mac == "AA:BB:CC:DD:EE:FF"
        assert job.customer_email == "x@y.com"
        assert job.customer_phone == "+2348000000000"

    def test_missing_mac_defaults_to_unknown(self, db, clock):
        job = _enqueue(QueueStore(db, clock=clock), 1)
        assert job.mac == "unknown"

    def test_duplicate_reference_leaves_row_untouched(self, db, clock):
        store = QueueStore(db, clock=clock)
        first = _enqueue(store, 1)
        clock.advance(minutes=5)
        with pytest.raises(DuplicateReference):
            store.enqueue(reference="REF0001", plan="30d", credential=_cred(2))

        rows = db.query(PaymentJob).filter(PaymentJob.reference == "REF0001").all()
        assert len(rows) == 1
        assert rows[0].id == first.id
        assert rows[0].plan == "7d"
        assert rows[0].username == "u_test0001"

    def test_username_clash_is_reported(self, db, clock):
        store = QueueStore(db, clock=clock)
        _enqueue(store, 1)
        with pytest.raises(UsernameCollision):
            store.enqueue(reference="OTHERREF", plan="7d", credential=_cred(1))
        assert store.get_by_reference("OTHERREF") is None

    def test_unknown_plan_rejected(self, db, clock):
        with pytest.raises(ValidationError):
            QueueStore(db, clock=clock).enqueue(reference="R1", plan="1y", credential=_cred(1))

    def test_reference_exists(self, db, clock):
        store = QueueStore(db, clock=clock)
        assert store.reference_exists("REF0001") is False
        _enqueue(store, 1)
        assert store.reference_exists("REF0001") is True


class TestRouterHandoff:
    def test_claim_pending_oldest_first_and_limited(self, db, clock):
        store = QueueStore(db, clock=clock)
        for n in range(7):
            _enqueue(store, n)
            clock.advance(seconds=1)

        batch = store.claim_pending(limit=5)
        assert [j.reference for j in batch] == [f"REF{n:04d}" for n in range(5)]

    def test_claim_pending_is_read_only(self, db, clock):
        store = QueueStore(db, clock=clock)
        _enqueue(store, 1)
        first = store.claim_pending()
        second = store.claim_pending()
        assert [j.id for j in first] == [j.id for j in second]
        assert first[0].status == JobStatus.PENDING

    def test_claim_pending_skips_other_states(self, db, clock):
        store = QueueStore(db, clock=clock)
        a = _enqueue(store, 1)
        _enqueue(store, 2)
        store.mark_processed(a.id)
        assert [j.reference for j in store.claim_pending()] == ["REF0002"]

    def test_mark_processed_sets_timestamps(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        clock.advance(minutes=1)
        job = store.mark_processed(job.id)
        assert job.status == JobStatus.PROCESSED
        assert as_utc(job.processed_at) == clock.now
        assert as_utc(job.last_sync) == clock.now

    def test_mark_processed_is_idempotent(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        processed_at = as_utc(store.mark_processed(job.id).processed_at)
        clock.advance(minutes=3)
        again = store.mark_processed(job.id)
        assert again.status == JobStatus.PROCESSED
        assert as_utc(again.processed_at) == processed_at
        assert as_utc(again.last_sync) == clock.now

    def test_last_sync_never_moves_backwards(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        store.mark_processed(job.id)
        latest = clock.now
        clock.advance(minutes=-30)
        job = store.mark_processed(job.id)
        assert as_utc(job.last_sync) == latest

    def test_mark_processed_unknown_id(self, db, clock):
        with pytest.raises(JobNotFound):
            QueueStore(db, clock=clock).mark_processed(999)

    def test_mark_processed_rejects_expired(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        store.mark_expired(job.id)
        with pytest.raises(WrongState) as exc:
            store.mark_processed(job.id)
        assert exc.value.current == JobStatus.EXPIRED
        assert store.get(job.id).status == JobStatus.EXPIRED

    def test_mark_processed_rejects_suspended(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        store.mark_processed(job.id)
        store.suspend(job.id)
        with pytest.raises(WrongState):
            store.mark_processed(job.id)
        assert store.get(job.id).status == JobStatus.SUSPENDED


class TestExpiry:
    def test_claim_expirable_respects_grace(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1, plan="24hr")
        store.mark_processed(job.id)

        clock.advance(hours=24, minutes=5)
        assert store.claim_expirable(grace=GRACE) == []

        clock.advance(minutes=10)
        assert [j.id for j in store.claim_expirable(grace=GRACE)] == [job.id]

    def test_claim_expirable_only_processed(self, db, clock):
        store = QueueStore(db, clock=clock)
        _enqueue(store, 1, plan="24hr")
        clock.advance(days=2)
        assert store.claim_expirable(grace=GRACE) == []

    def test_mark_expired_from_pending_and_processed(self, db, clock):
        store = QueueStore(db, clock=clock)
        a = _enqueue(store, 1)
        b = _enqueue(store, 2)
        store.mark_processed(b.id)
        assert store.mark_expired(a.id).status == JobStatus.EXPIRED
        assert store.mark_expired(b.id).status == JobStatus.EXPIRED
        # already expired: no-op
        assert store.mark_expired(b.id).status == JobStatus.EXPIRED

    def test_mark_expired_rejects_suspended(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        store.mark_processed(job.id)
        store.suspend(job.id)
        with pytest.raises(WrongState):
            store.mark_expired(job.id)

    def test_expire_due_moves_pending_and_processed(self, db, clock):
        store = QueueStore(db, clock=clock)
        pending = _enqueue(store, 1, plan="24hr")
        processed = _enqueue(store, 2, plan="24hr")
        fresh = _enqueue(store, 3, plan="30d")
        suspended = _enqueue(store, 4, plan="24hr")
        store.mark_processed(processed.id)
        store.mark_processed(suspended.id)
        store.suspend(suspended.id)

        clock.advance(hours=25)
        expired = store.expire_due(grace=GRACE)

        assert sorted(expired) == sorted([pending.id, processed.id])
        assert store.get(pending.id).status == JobStatus.EXPIRED
        assert store.get(processed.id).status == JobStatus.EXPIRED
        assert store.get(fresh.id).status == JobStatus.PENDING
        assert store.get(suspended.id).status == JobStatus.SUSPENDED

    def test_expire_due_batch_limit(self, db, clock):
        store = QueueStore(db, clock=clock)
        for n in range(4):
            _enqueue(store, n, plan="24hr")
        clock.advance(days=2)
        assert len(store.expire_due(limit=3, grace=GRACE)) == 3
        assert len(store.expire_due(limit=3, grace=GRACE)) == 1
        assert store.expire_due(limit=3, grace=GRACE) == []


class TestRevocation:
    def test_feed_includes_due_processed_and_unrevoked_expired(self, db, clock):
        store = QueueStore(db, clock=clock)
        due = _enqueue(store, 1, plan="24hr")
        swept = _enqueue(store, 2, plan="24hr")
        live = _enqueue(store, 3, plan="30d")
        store.mark_processed(due.id)
        store.mark_processed(live.id)
        clock.advance(hours=25)
        store.mark_expired(swept.id)

        feed = store.revocation_feed(grace=GRACE)
        assert sorted(j.id for j in feed) == sorted([due.id, swept.id])

    def test_acknowledge_expires_and_stamps_once(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1, plan="24hr")
        store.mark_processed(job.id)
        clock.advance(hours=25)

        acked = store.acknowledge_revocation(job.id)
        assert acked.status == JobStatus.EXPIRED
        revoked_at = as_utc(acked.revoked_at)
        assert revoked_at == clock.now

        clock.advance(minutes=2)
        again = store.acknowledge_revocation(job.id)
        assert as_utc(again.revoked_at) == revoked_at
        assert as_utc(again.last_sync) == clock.now
        assert store.revocation_feed(grace=GRACE) == []

    def test_acknowledge_unknown_id_is_silent(self, db, clock):
        assert QueueStore(db, clock=clock).acknowledge_revocation(12345) is None

    def test_acknowledge_suspended_is_wrong_state(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        store.mark_processed(job.id)
        store.suspend(job.id)
        with pytest.raises(WrongState):
            store.acknowledge_revocation(job.id)

    def test_purge_revoked_only_old_revocations(self, db, clock):
        store = QueueStore(db, clock=clock)
        old = _enqueue(store, 1, plan="24hr")
        recent = _enqueue(store, 2, plan="24hr")
        unrevoked = _enqueue(store, 3, plan="24hr")
        clock.advance(hours=25)
        store.acknowledge_revocation(old.id)
        store.mark_expired(unrevoked.id)
        clock.advance(days=100)
        store.acknowledge_revocation(recent.id)

        deleted = store.purge_revoked(clock.now - timedelta(days=90))
        assert deleted == 1
        assert store.get(old.id) is None
        assert store.get(recent.id) is not None
        assert store.get(unrevoked.id) is not None


class TestAdministration:
    def test_suspend_and_resume(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        store.mark_processed(job.id)
        assert store.suspend(job.id).status == JobStatus.SUSPENDED
        assert store.suspend(job.id).status == JobStatus.SUSPENDED
        assert store.resume(job.id).status == JobStatus.PROCESSED
        assert store.resume(job.id).status == JobStatus.PROCESSED

    def test_suspend_pending_is_wrong_state(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        with pytest.raises(WrongState):
            store.suspend(job.id)

    def test_resume_requires_suspended(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        with pytest.raises(WrongState):
            store.resume(job.id)

    def test_delete(self, db, clock):
        store = QueueStore(db, clock=clock)
        job = _enqueue(store, 1)
        store.delete(job.id)
        assert store.get(job.id) is None
        with pytest.raises(JobNotFound):
            store.delete(job.id)

    def test_counts_by_status_zero_filled(self, db, clock):
        store = QueueStore(db, clock=clock)
        a = _enqueue(store, 1)
        _enqueue(store, 2)
        store.mark_processed(a.id)
        assert store.counts_by_status() == {
            JobStatus.PENDING: 1,
            JobStatus.PROCESSED: 1,
            JobStatus.SUSPENDED: 0,
            JobStatus.EXPIRED: 0,
        }

    def test_list_jobs_newest_first_with_filter(self, db, clock):
        store = QueueStore(db, clock=clock)
        for n in range(3):
            _enqueue(store, n)
            clock.advance(seconds=1)
        store.mark_processed(store.get_by_reference("REF0001").id)

        total, items = store.list_jobs()
        assert total == 3
        assert [j.reference for j in items] == ["REF0002", "REF0001", "REF0000"]

        total, items = store.list_jobs(status=JobStatus.PENDING, limit=1)
        assert total == 2
        assert [j.reference for j in items] == ["REF0002"]


class TestClockHandling:
    def test_naive_clock_values_are_treated_as_utc(self, db):
        naive = datetime(2026, 1, 1, 8, 0)
        store = QueueStore(db, clock=lambda: naive)
        job = _enqueue(store, 1, plan="24hr")
        assert as_utc(job.created_at) == datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)
