"""
Video job data models.

A VideoJob is a single request to produce streaming renditions from one
uploaded source. All models use Pydantic for validation.
State transitions are validated externally (see state.py).
"""

import secrets
import string
import threading
import time
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..metadata.models import VideoMetadata


JOB_ID_PREFIX = "video"
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_SUFFIX_LENGTH = 6


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """
    Job-level status.

    pending is initial; completed, failed and cancelled are terminal.
    """

    PENDING = "pending"  # Created, waiting for a processing slot
    PROCESSING = "processing"  # Admitted, transcoder running
    COMPLETED = "completed"  # Transcoder reported success
    FAILED = "failed"  # Transcoder error, timeout, or unreadable source
    CANCELLED = "cancelled"  # Cancelled by the owner


class JobIdGenerator:
    """
    Issues ids of the form video_<unixMillis>_<suffix>.

    Remembers every id it has issued so ids are unique for the lifetime of
    the process even if two submissions land in the same millisecond with
    the same random suffix.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._issued: Set[str] = set()
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            while True:
                millis = int(self._clock() * 1000)
                suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
                job_id = f"{JOB_ID_PREFIX}_{millis}_{suffix}"
                if job_id not in self._issued:
                    self._issued.add(job_id)
                    return job_id


class SubmitOptions(BaseModel):
    """
    Caller options for a submission.

    qualities overrides the default rendition ladder (still catalog-checked).
    generate_thumbnails and extract_audio add steps to the transcode and
    entries to the streaming manifests. enable_drm is recorded only;
    encryption follows the HLS/DASH settings.
    """

    model_config = ConfigDict(extra="forbid")

    qualities: Optional[List[str]] = None
    generate_thumbnails: bool = True
    extract_audio: bool = False
    enable_drm: bool = False


class VideoJob(BaseModel):
    """
    A video processing job.

    Identity, ownership, source description, metadata and qualities are
    fixed at creation. Status, progress, error and timestamps change only
    through the job service.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    # Identity
    id: str
    user_id: str
    course_id: Optional[str] = None

    # Source
    original_filename: str
    original_filesize: int = Field(ge=0)
    input_path: Optional[str] = None

    # State
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    error: Optional[str] = None

    # Plan
    metadata: Optional[VideoMetadata] = None  # None only when extraction failed
    qualities: List[str]
    options: SubmitOptions = Field(default_factory=SubmitOptions)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Execution
    estimated_duration: Optional[float] = None  # seconds
    output_path: Optional[str] = None

    @field_validator("qualities")
    @classmethod
    def validate_qualities(cls, v: List[str]) -> List[str]:
        """At least one rendition, no duplicates."""
        if not v:
            raise ValueError("A job needs at least one quality")
        if len(set(v)) != len(v):
            raise ValueError(f"Duplicate qualities: {v}")
        return v

    @property
    def is_terminal(self) -> bool:
        from .state import is_job_terminal
        return is_job_terminal(self.status)

    def snapshot(self) -> "VideoJob":
        """Independent copy safe to hand to callers."""
        return self.model_copy(deep=True)
