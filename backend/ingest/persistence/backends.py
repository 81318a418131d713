"""
Durable tier for job records.

JobBackend is the interface; RedisJobBackend stores records with a TTL so
they survive process restarts for the processed-artifact retention window.

Key layout:
    video_job:<job_id>           JSON job record
    user_video_jobs:<user_id>    set of the user's job ids

Backends raise PersistenceError subclasses. Absorbing those errors is the
job store's responsibility, not the backend's.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import redis
from pydantic import ValidationError as ModelValidationError

from ..jobs.models import VideoJob
from .errors import LoadError, SaveError

JOB_KEY = "video_job:{job_id}"
USER_JOBS_KEY = "user_video_jobs:{user_id}"


class JobBackend(ABC):
    """Durable job record storage."""

    @abstractmethod
    def save(self, job: VideoJob, ttl_seconds: int) -> None:
        """
        Save or replace a job record and index it under its user.

        Raises:
            SaveError: If the write fails
        """
        pass

    @abstractmethod
    def load(self, job_id: str) -> Optional[VideoJob]:
        """
        Load a job record, None if absent or expired.

        Raises:
            LoadError: If the read fails or the record is corrupt
        """
        pass

    @abstractmethod
    def delete(self, job_id: str, user_id: Optional[str] = None) -> None:
        """
        Delete a job record.

        Raises:
            SaveError: If the delete fails
        """
        pass

    @abstractmethod
    def list_user_job_ids(self, user_id: str) -> List[str]:
        """
        Ids of the user's jobs known to the durable tier.

        Raises:
            LoadError: If the read fails
        """
        pass


class RedisJobBackend(JobBackend):
    """
    Redis-backed durable tier.

    The client must be created with decode_responses=True.
    """

    def __init__(self, client: "redis.Redis"):
        self._client = client

    def save(self, job: VideoJob, ttl_seconds: int) -> None:
        payload = job.model_dump_json()
        user_key = USER_JOBS_KEY.format(user_id=job.user_id)
        try:
            pipe = self._client.pipeline()
            pipe.set(JOB_KEY.format(job_id=job.id), payload, ex=ttl_seconds)
            pipe.sadd(user_key, job.id)
            pipe.expire(user_key, ttl_seconds)
            pipe.execute()
        except redis.RedisError as e:
            raise SaveError(f"Failed to save job {job.id}: {e}") from e

    def load(self, job_id: str) -> Optional[VideoJob]:
        try:
            raw = self._client.get(JOB_KEY.format(job_id=job_id))
        except redis.RedisError as e:
            raise LoadError(f"Failed to load job {job_id}: {e}") from e

        if not raw:
            return None

        try:
            return VideoJob.model_validate_json(raw)
        except ModelValidationError as e:
            raise LoadError(f"Corrupt job record {job_id}: {e}") from e

    def delete(self, job_id: str, user_id: Optional[str] = None) -> None:
        try:
            pipe = self._client.pipeline()
            pipe.delete(JOB_KEY.format(job_id=job_id))
            if user_id is not None:
                pipe.srem(USER_JOBS_KEY.format(user_id=user_id), job_id)
            pipe.execute()
        except redis.RedisError as e:
            raise SaveError(f"Failed to delete job {job_id}: {e}") from e

    def list_user_job_ids(self, user_id: str) -> List[str]:
        try:
            members = self._client.smembers(USER_JOBS_KEY.format(user_id=user_id))
        except redis.RedisError as e:
            raise LoadError(f"Failed to list jobs for user {user_id}: {e}") from e
        return sorted(members or ())
