"""
Video jobs: models, lifecycle rules and quality selection.

The service that drives jobs lives in ingest.jobs.service; it is not
imported here because it depends on the persistence package, which itself
depends on the job models.
"""

from .errors import (
    JobError,
    InvalidStateTransitionError,
    Unauthorized,
    ProcessingError,
)
from .models import (
    JobStatus,
    JobIdGenerator,
    SubmitOptions,
    VideoJob,
)
from .state import (
    TERMINAL_JOB_STATES,
    CANCELLABLE_JOB_STATES,
    is_job_terminal,
    can_transition_job,
    validate_job_transition,
)
from .qualities import QualitySelector, ROUNDING_TOLERANCE_PX

__all__ = [
    # Errors
    "JobError",
    "InvalidStateTransitionError",
    "Unauthorized",
    "ProcessingError",
    # Models
    "JobStatus",
    "JobIdGenerator",
    "SubmitOptions",
    "VideoJob",
    # State
    "TERMINAL_JOB_STATES",
    "CANCELLABLE_JOB_STATES",
    "is_job_terminal",
    "can_transition_job",
    "validate_job_transition",
    # Qualities
    "QualitySelector",
    "ROUNDING_TOLERANCE_PX",
]
