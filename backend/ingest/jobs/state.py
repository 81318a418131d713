"""
State transition validation for video jobs.

Job lifecycle:
    pending → processing → completed | failed
    pending | processing → cancelled

INVARIANT: Terminal job states (COMPLETED, FAILED, CANCELLED) are immutable.
Each edge is taken at most once and no state is ever revisited.
"""

from typing import FrozenSet, Set, Tuple

from .errors import InvalidStateTransitionError
from .models import JobStatus


TERMINAL_JOB_STATES: FrozenSet[JobStatus] = frozenset({
    JobStatus.COMPLETED,
    JobStatus.FAILED,
    JobStatus.CANCELLED,
})

CANCELLABLE_JOB_STATES: FrozenSet[JobStatus] = frozenset({
    JobStatus.PENDING,
    JobStatus.PROCESSING,
})


_JOB_TRANSITIONS: Set[Tuple[JobStatus, JobStatus]] = {
    # Admission
    (JobStatus.PENDING, JobStatus.PROCESSING),

    # Transcoder outcome
    (JobStatus.PROCESSING, JobStatus.COMPLETED),
    (JobStatus.PROCESSING, JobStatus.FAILED),

    # Owner cancellation
    (JobStatus.PENDING, JobStatus.CANCELLED),
    (JobStatus.PROCESSING, JobStatus.CANCELLED),
}


def is_job_terminal(status: JobStatus) -> bool:
    """
    Check if a job status is terminal (immutable).

    Args:
        status: The job status to check

    Returns:
        True if the status is terminal, False otherwise
    """
    return status in TERMINAL_JOB_STATES


def can_transition_job(from_status: JobStatus, to_status: JobStatus) -> bool:
    """
    Check if a job state transition is legal.

    Self-transitions are not legal: a state is never revisited.

    Args:
        from_status: Current job status
        to_status: Target job status

    Returns:
        True if the transition is allowed, False otherwise
    """
    if is_job_terminal(from_status):
        return False

    return (from_status, to_status) in _JOB_TRANSITIONS


def validate_job_transition(job_id: str, from_status: JobStatus, to_status: JobStatus) -> None:
    """
    Validate a job state transition, raising an exception if illegal.

    Raises:
        InvalidStateTransitionError: If the transition is not allowed
    """
    if not can_transition_job(from_status, to_status):
        raise InvalidStateTransitionError(job_id, from_status.value, to_status.value)
