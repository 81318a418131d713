"""
Job-specific error types.

All errors inherit from JobError for easy catching.
Errors are explicit and provide actionable messages.
"""


class JobError(Exception):
    """Base exception for all job-related failures."""
    pass


class InvalidStateTransitionError(JobError):
    """Raised when attempting an illegal state transition."""

    def __init__(self, job_id: str, current_state: str, target_state: str):
        self.job_id = job_id
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Invalid job state transition for {job_id}: "
            f"{current_state} -> {target_state}"
        )


class Unauthorized(JobError):
    """Raised when a caller acts on a job it does not own."""

    def __init__(self, job_id: str, caller_id: str):
        self.job_id = job_id
        self.caller_id = caller_id
        super().__init__(f"Unauthorized: Cannot cancel another user's job ({job_id})")


class ProcessingError(JobError):
    """
    A failure after the job exists: metadata extraction or transcoding.

    Recorded on the job record (status=failed, error=message) rather than
    raised to the submitter.
    """

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(reason)
