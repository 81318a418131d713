"""
Job store: in-process index in front of an optional durable tier.

The index is authoritative for the running process. The durable tier
(Redis) lets records outlive a restart. Durable failures of any kind never
reach callers: they are logged, emitted as PersistenceWarning, and the in-memory
path carries on.

With write_behind=True durable writes are handed to a single writer thread,
so a slow Redis never blocks a state transition. Writes are applied in the
order they were issued; flush() waits for the queue to drain.
"""

import logging
import queue
import threading
import warnings
from typing import Callable, List, Optional

from ..jobs.models import JobStatus, VideoJob
from .backends import JobBackend
from .errors import PersistenceError, PersistenceWarning
from .index import JobIndex

logger = logging.getLogger(__name__)

DEFAULT_USER_LIMIT = 50

_STOP = object()


class JobStore:
    """
    Cache-aside job store.

    put/delete go to the index first, then to the durable tier.
    get/list_by_user read the index and fall back to the durable tier,
    promoting what they find.
    """

    def __init__(
        self,
        backend: Optional[JobBackend] = None,
        ttl_seconds: int = 365 * 24 * 60 * 60,
        write_behind: bool = False,
        index: Optional[JobIndex] = None,
    ):
        """
        Args:
            backend: Durable tier, None for in-process only
            ttl_seconds: Lifetime of durable records
            write_behind: Apply durable writes on a background thread
            index: In-process index (a fresh one by default)
        """
        self.index = index if index is not None else JobIndex()
        self.backend = backend
        self.ttl_seconds = ttl_seconds
        self.write_behind = write_behind and backend is not None

        self._queue: "queue.Queue" = queue.Queue()
        self._writer: Optional[threading.Thread] = None
        if self.write_behind:
            self._writer = threading.Thread(
                target=self._drain, name="ingest-store-writer", daemon=True
            )
            self._writer.start()

    @property
    def durable(self) -> bool:
        return self.backend is not None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def put(self, job: VideoJob) -> None:
        """Commit a whole record to the index, then to the durable tier."""
        self.index.put(job)
        if self.backend is None:
            return
        record = job.snapshot()
        self._durable(f"save {record.id}", lambda: self.backend.save(record, self.ttl_seconds))

    def delete(self, job_id: str) -> bool:
        """
        Remove a record from both tiers.

        Returns:
            False if the index did not hold the job
        """
        job = self.index.get(job_id)
        removed = self.index.remove(job_id)
        if self.backend is not None:
            user_id = job.user_id if job else None
            self._durable(f"delete {job_id}", lambda: self.backend.delete(job_id, user_id))
        return removed

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, job_id: str) -> Optional[VideoJob]:
        job = self.index.get(job_id)
        if job is not None or self.backend is None:
            return job

        try:
            job = self.backend.load(job_id)
        except Exception as e:
            self._warn(f"load {job_id}", e)
            return None

        if job is not None:
            self.index.put(job)
            logger.debug(f"[Store] Promoted {job_id} from durable tier")
        return job

    def list_by_user(self, user_id: str, limit: Optional[int] = DEFAULT_USER_LIMIT) -> List[VideoJob]:
        """
        A user's jobs, newest first.

        When the index knows nothing about the user (for example after a
        restart) the durable tier's records are promoted first.
        """
        jobs = self.index.list_by_user(user_id, limit)
        if jobs or self.backend is None:
            return jobs

        try:
            job_ids = self.backend.list_user_job_ids(user_id)
        except Exception as e:
            self._warn(f"list jobs for user {user_id}", e)
            return []

        for job_id in job_ids:
            try:
                job = self.backend.load(job_id)
            except Exception as e:
                self._warn(f"load {job_id}", e)
                continue
            # Set members outlive expired records
            if job is not None:
                self.index.put(job)

        return self.index.list_by_user(user_id, limit)

    def pending_jobs(self) -> List[VideoJob]:
        """Pending jobs, oldest first."""
        return self.index.list_by_status(JobStatus.PENDING)

    # -------------------------------------------------------------------------
    # Write-behind
    # -------------------------------------------------------------------------

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for queued durable writes to be applied.

        Returns:
            True if the queue drained within the timeout
        """
        if self._writer is None:
            return True
        if timeout is None:
            self._queue.join()
            return True

        done = threading.Event()

        def _join():
            self._queue.join()
            done.set()

        threading.Thread(target=_join, daemon=True).start()
        return done.wait(timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        """Drain pending writes and stop the writer thread."""
        if self._writer is None:
            return
        self._queue.put(_STOP)
        self._writer.join(timeout)
        self._writer = None

    def _durable(self, what: str, op: Callable[[], None]) -> None:
        if self._writer is not None:
            self._queue.put((what, op))
            return
        try:
            op()
        except Exception as e:
            self._warn(what, e)

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                what, op = item
                try:
                    op()
                except Exception as e:
                    self._warn(what, e)
            finally:
                self._queue.task_done()

    def _warn(self, what: str, error: Exception) -> None:
        message = f"[Store] Durable {what} failed, continuing in-process: {error}"
        # Anything other than a wrapped backend error (socket timeouts,
        # refused connections) gets its traceback logged
        logger.warning(message, exc_info=None if isinstance(error, PersistenceError) else error)
        try:
            warnings.warn(message, PersistenceWarning, stacklevel=3)
        except PersistenceWarning:
            # Warnings filter set to "error"; already logged above
            pass
