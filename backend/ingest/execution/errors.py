"""
Execution-specific errors.

Transcode failures are recorded on the job (status=failed) by the job
service. They never take the process down.
"""

from typing import Optional


class TranscodeError(Exception):
    """
    Base exception for transcoding failures.

    Raised by Transcoder implementations; the message becomes the job's
    error.
    """

    pass


class TranscoderNotAvailableError(TranscodeError):
    """The transcoder binary is not installed or not on PATH."""

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary
        super().__init__(f"{binary} not found. Install ffmpeg or set the binary path explicitly.")


class RenditionFailedError(TranscodeError):
    """One rendition's encoder process exited non-zero."""

    def __init__(self, quality: str, exit_code: Optional[int] = None, stderr: Optional[str] = None):
        self.quality = quality
        self.exit_code = exit_code
        self.stderr = stderr

        message = f"Rendition {quality} failed"
        if exit_code is not None:
            message += f" (exit code: {exit_code})"
        lines = (stderr or "").strip().splitlines()
        if lines:
            message += f": {lines[-1]}"
        super().__init__(message)


class TranscodeCancelledError(TranscodeError):
    """The cancellation token was signalled while work was in progress."""

    def __init__(self, job_id: str, reason: Optional[str] = None):
        self.job_id = job_id
        self.reason = reason
        message = f"Transcoding of {job_id} was stopped"
        if reason:
            message += f": {reason}"
        super().__init__(message)
