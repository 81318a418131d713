"""
Tests for the job index and the cache-aside job store.

Validates:
1. Index hands out copies and orders users' jobs newest first
2. created_at ties are broken by insertion order
3. Durable writes carry the retention TTL
4. Durable failures are absorbed as PersistenceWarning
5. Reads fall back to the durable tier and promote what they find
6. Write-behind applies writes in order and flush() drains them
"""

import threading
import warnings
from datetime import datetime, timedelta, timezone

import pytest

from conftest import MemoryBackend
from ingest.jobs.models import JobStatus, VideoJob
from ingest.persistence.errors import PersistenceWarning
from ingest.persistence.index import JobIndex
from ingest.persistence.store import JobStore

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _job(job_id, user_id="u1", created_at=T0, status=JobStatus.PENDING):
    return VideoJob(
        id=job_id,
        user_id=user_id,
        original_filename="a.mp4",
        original_filesize=1,
        qualities=["240p"],
        created_at=created_at,
        status=status,
    )


class TestJobIndex:

    def test_returns_copies(self):
        index = JobIndex()
        job = _job("video_1_a")
        index.put(job)

        job.progress = 40
        fetched = index.get("video_1_a")
        assert fetched.progress == 0

        fetched.progress = 70
        assert index.get("video_1_a").progress == 0

    def test_list_by_user_newest_first_with_limit(self):
        index = JobIndex()
        for i in range(5):
            index.put(_job(f"video_{i}_a", created_at=T0 + timedelta(seconds=i)))
        index.put(_job("video_9_other", user_id="u2"))

        jobs = index.list_by_user("u1", limit=3)
        assert [j.id for j in jobs] == ["video_4_a", "video_3_a", "video_2_a"]
        assert index.list_by_user("nobody") == []

    def test_created_at_ties_use_insertion_order(self):
        index = JobIndex()
        for job_id in ("video_1_c", "video_1_a", "video_1_b"):
            index.put(_job(job_id))

        assert [j.id for j in index.list_by_user("u1")] == ["video_1_b", "video_1_a", "video_1_c"]
        assert [j.id for j in index.list_by_status(JobStatus.PENDING)] == [
            "video_1_c", "video_1_a", "video_1_b"
        ]

    def test_replace_keeps_position(self):
        index = JobIndex()
        index.put(_job("video_1_a"))
        index.put(_job("video_1_b"))
        index.put(_job("video_1_a", status=JobStatus.PROCESSING))

        assert [j.id for j in index.list_by_user("u1")] == ["video_1_b", "video_1_a"]
        assert [j.id for j in index.list_by_status(JobStatus.PENDING)] == ["video_1_b"]

    def test_remove(self):
        index = JobIndex()
        index.put(_job("video_1_a"))
        assert index.remove("video_1_a") is True
        assert index.remove("video_1_a") is False
        assert index.list_by_user("u1") == []
        assert index.get("video_1_a") is None

    def test_concurrent_puts(self):
        index = JobIndex()

        def writer(n):
            for i in range(50):
                index.put(_job(f"video_{n}_{i}"))

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(index.list_by_user("u1")) == 200


class TestJobStore:

    def test_in_process_only(self):
        store = JobStore()
        store.put(_job("video_1_a"))
        assert store.get("video_1_a").id == "video_1_a"
        assert store.get("video_2_missing") is None
        assert not store.durable

    def test_put_writes_through_with_ttl(self):
        backend = MemoryBackend()
        store = JobStore(backend=backend, ttl_seconds=3600)
        store.put(_job("video_1_a"))

        assert backend.saves == [("video_1_a", JobStatus.PENDING, 3600)]

    def test_save_failure_is_absorbed(self):
        backend = MemoryBackend()
        backend.fail_saves = True
        store = JobStore(backend=backend)

        with pytest.warns(PersistenceWarning, match="redis down"):
            store.put(_job("video_1_a"))

        assert store.get("video_1_a") is not None

    def test_get_promotes_durable_record(self):
        backend = MemoryBackend()
        backend.save(_job("video_1_a"), 60)
        store = JobStore(backend=backend)

        assert store.get("video_1_a").id == "video_1_a"
        assert store.index.get("video_1_a") is not None

    def test_load_failure_reads_as_missing(self):
        backend = MemoryBackend()
        backend.fail_loads = True
        store = JobStore(backend=backend)

        with pytest.warns(PersistenceWarning):
            assert store.get("video_1_a") is None

    @pytest.mark.parametrize("outage", [
        ConnectionRefusedError("durable tier down"),
        TimeoutError("timed out"),
    ])
    def test_unwrapped_backend_errors_are_absorbed(self, outage):
        backend = MemoryBackend()
        backend.outage = outage
        store = JobStore(backend=backend)

        with pytest.warns(PersistenceWarning):
            store.put(_job("video_1_a"))
        with pytest.warns(PersistenceWarning):
            assert store.get("video_2_unknown") is None
        with pytest.warns(PersistenceWarning):
            assert store.list_by_user("u2") == []

        assert store.get("video_1_a").id == "video_1_a"

    def test_recovery_skips_records_that_fail_to_load(self):
        backend = MemoryBackend()
        backend.save(_job("video_1_a"), 60)
        store = JobStore(backend=backend)

        def flaky_load(job_id):
            raise ConnectionResetError("reset by peer")

        backend.load = flaky_load
        with pytest.warns(PersistenceWarning, match="reset by peer"):
            assert store.list_by_user("u1") == []

    def test_warnings_escalated_to_errors_stay_inside(self):
        backend = MemoryBackend()
        backend.fail_saves = True
        store = JobStore(backend=backend)

        with warnings.catch_warnings():
            warnings.simplefilter("error", PersistenceWarning)
            store.put(_job("video_1_a"))

        assert store.get("video_1_a") is not None

    def test_list_by_user_recovers_from_durable_tier(self):
        backend = MemoryBackend()
        backend.save(_job("video_1_a", created_at=T0), 60)
        backend.save(_job("video_2_b", created_at=T0 + timedelta(seconds=1)), 60)
        # Expired record whose id is still in the user's set
        backend.users["u1"].add("video_0_gone")
        store = JobStore(backend=backend)

        jobs = store.list_by_user("u1")
        assert [j.id for j in jobs] == ["video_2_b", "video_1_a"]

    def test_list_by_user_prefers_index(self):
        backend = MemoryBackend()
        backend.save(_job("video_1_durable"), 60)
        store = JobStore(backend=backend)
        store.index.put(_job("video_2_local"))

        assert [j.id for j in store.list_by_user("u1")] == ["video_2_local"]

    def test_delete_removes_both_tiers(self):
        backend = MemoryBackend()
        store = JobStore(backend=backend)
        store.put(_job("video_1_a"))

        assert store.delete("video_1_a") is True
        assert store.get("video_1_a") is None
        assert "video_1_a" not in backend.users["u1"]

    def test_pending_jobs_fifo(self):
        store = JobStore()
        store.put(_job("video_2_b", created_at=T0 + timedelta(seconds=1)))
        store.put(_job("video_1_a", created_at=T0))
        store.put(_job("video_3_c", status=JobStatus.COMPLETED))

        assert [j.id for j in store.pending_jobs()] == ["video_1_a", "video_2_b"]


class TestWriteBehind:

    def test_writes_applied_in_order_after_flush(self):
        backend = MemoryBackend()
        store = JobStore(backend=backend, write_behind=True)
        try:
            store.put(_job("video_1_a"))
            store.put(_job("video_1_a", status=JobStatus.PROCESSING))
            store.put(_job("video_1_a", status=JobStatus.COMPLETED))
            assert store.flush(timeout=5)

            assert [s[1] for s in backend.saves] == [
                JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.COMPLETED
            ]
            assert backend.records["video_1_a"].status == JobStatus.COMPLETED
        finally:
            store.close()

    def test_slow_backend_does_not_block_put(self):
        release = threading.Event()

        class SlowBackend(MemoryBackend):
            def save(self, job, ttl_seconds):
                release.wait(5)
                super().save(job, ttl_seconds)

        backend = SlowBackend()
        store = JobStore(backend=backend, write_behind=True)
        try:
            store.put(_job("video_1_a"))
            assert store.get("video_1_a") is not None
            assert backend.saves == []
            assert store.flush(timeout=0.05) is False
        finally:
            release.set()
            store.close()

        assert [s[0] for s in backend.saves] == ["video_1_a"]

    def test_failures_do_not_stop_the_writer(self):
        backend = MemoryBackend()
        backend.fail_saves = True
        store = JobStore(backend=backend, write_behind=True)
        try:
            store.put(_job("video_1_a"))
            assert store.flush(timeout=5)

            backend.fail_saves = False
            store.put(_job("video_2_b"))
            assert store.flush(timeout=5)
            assert [s[0] for s in backend.saves] == ["video_2_b"]
        finally:
            store.close()
