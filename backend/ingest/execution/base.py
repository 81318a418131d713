"""
Transcoder abstraction.

The pixel-level encode is external to the ingest core. A Transcoder takes
an admitted job and produces its renditions; the job service owns every
state change around it.

Contract:
- transcode() blocks until done and returns a TranscodeResult
- Any exception means the job failed; its message becomes the job error
- progress(percent) may be called any number of times from the worker thread
- token.cancelled becoming True means the job was cancelled or timed out;
  the transcoder should stop its work and return or raise promptly
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..jobs.models import VideoJob


ProgressCallback = Callable[[int], None]


class CancellationToken:
    """
    One-shot stop signal shared between the job service and a transcoder.

    Signalling is idempotent; the first reason wins.
    """

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[str] = None
        self._lock = threading.Lock()

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until signalled or timeout. Returns True if signalled."""
        return self._event.wait(timeout)


@dataclass(frozen=True)
class TranscodeResult:
    """Outcome of a successful transcode."""

    output_path: str
    master_playlist: Optional[str] = None


class Transcoder(ABC):
    """Produces the renditions for one job."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def transcode(
        self,
        job: "VideoJob",
        token: CancellationToken,
        progress: ProgressCallback,
    ) -> TranscodeResult:
        """
        Encode every quality in job.qualities.

        Args:
            job: Snapshot of the admitted job
            token: Stop signal (cancel or timeout)
            progress: Callback taking a percentage 0-100

        Returns:
            TranscodeResult with the output location

        Raises:
            TranscodeError: On failure
        """
        pass
