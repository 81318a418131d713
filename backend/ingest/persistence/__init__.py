"""
Job persistence: in-process index, Redis durable tier, cache-aside store.
"""

from .errors import PersistenceError, LoadError, SaveError, PersistenceWarning
from .index import JobIndex
from .backends import JobBackend, RedisJobBackend, JOB_KEY, USER_JOBS_KEY
from .client import create_redis_client
from .store import JobStore, DEFAULT_USER_LIMIT

__all__ = [
    "PersistenceError",
    "LoadError",
    "SaveError",
    "PersistenceWarning",
    "JobIndex",
    "JobBackend",
    "RedisJobBackend",
    "JOB_KEY",
    "USER_JOBS_KEY",
    "create_redis_client",
    "JobStore",
    "DEFAULT_USER_LIMIT",
]
