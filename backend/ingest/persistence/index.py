"""
In-process job index.

The fast tier of the job store: jobs by id and job ids by owning user.
Records are stored and returned as copies, so a reader never observes a
record while it is being modified.
"""

import itertools
import threading
from typing import Dict, List, Optional, Set, Tuple

from ..jobs.models import JobStatus, VideoJob


class JobIndex:
    """
    Thread-safe in-memory index.

    Stores jobs and provides retrieval by id and by user.
    Ties on created_at are broken by insertion order.
    """

    def __init__(self):
        # job_id -> (insertion sequence, job)
        self._jobs: Dict[str, Tuple[int, VideoJob]] = {}
        # user_id -> job ids
        self._by_user: Dict[str, Set[str]] = {}
        self._sequence = itertools.count()
        self._lock = threading.RLock()

    def put(self, job: VideoJob) -> None:
        """
        Insert or replace a job record.

        Replacing keeps the original insertion sequence.
        """
        record = job.snapshot()
        with self._lock:
            existing = self._jobs.get(record.id)
            seq = existing[0] if existing else next(self._sequence)
            self._jobs[record.id] = (seq, record)
            self._by_user.setdefault(record.user_id, set()).add(record.id)

    def get(self, job_id: str) -> Optional[VideoJob]:
        """
        Retrieve a copy of a job by id, None if unknown.
        """
        with self._lock:
            entry = self._jobs.get(job_id)
        return entry[1].snapshot() if entry else None

    def remove(self, job_id: str) -> bool:
        """
        Remove a job. Returns False if it was not indexed.
        """
        with self._lock:
            entry = self._jobs.pop(job_id, None)
            if entry is None:
                return False
            user_ids = self._by_user.get(entry[1].user_id)
            if user_ids is not None:
                user_ids.discard(job_id)
                if not user_ids:
                    del self._by_user[entry[1].user_id]
            return True

    def list_by_user(self, user_id: str, limit: Optional[int] = None) -> List[VideoJob]:
        """
        Jobs for a user, newest first.

        Args:
            user_id: Owning user
            limit: Maximum number of jobs returned (None for all)
        """
        with self._lock:
            entries = [self._jobs[job_id] for job_id in self._by_user.get(user_id, ())]
        entries.sort(key=lambda e: (e[1].created_at, e[0]), reverse=True)
        if limit is not None:
            entries = entries[:max(0, limit)]
        return [job.snapshot() for _, job in entries]

    def list_by_status(self, status: JobStatus) -> List[VideoJob]:
        """
        Jobs in a given status, oldest first (FIFO).
        """
        with self._lock:
            entries = [e for e in self._jobs.values() if e[1].status == status]
        entries.sort(key=lambda e: (e[1].created_at, e[0]))
        return [job.snapshot() for _, job in entries]
