"""
Pytest configuration and shared test doubles for the ingest test suite.

The job service is exercised deterministically:
- ManualExecutor queues transcodes until the test runs them
- FakeTimer replaces threading.Timer so timeouts fire on demand
- FakeExtractor returns canned metadata (or raises) instead of running ffprobe
- MemoryBackend is a dict-backed durable tier that can be shared between
  services to stand in for one Redis seen by two processes
"""

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# Add backend to Python path for test imports
backend_path = Path(__file__).parent.parent
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

from ingest.config.settings import IngestSettings, Limits
from ingest.execution.base import CancellationToken, Transcoder, TranscodeResult
from ingest.jobs.models import VideoJob
from ingest.jobs.service import VideoJobService
from ingest.metadata.extractors import MetadataExtractor
from ingest.metadata.models import VideoMetadata
from ingest.persistence.backends import JobBackend
from ingest.persistence.errors import LoadError, SaveError
from ingest.persistence.store import JobStore
from ingest.uploads.models import VideoUpload


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "e2e: marks tests as end-to-end (requires FFmpeg)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow"
    )


# =============================================================================
# Test doubles
# =============================================================================

class ManualExecutor:
    """Executor that runs submitted work only when asked."""

    def __init__(self):
        self.queue: List[tuple] = []
        self.shut_down = False

    def submit(self, fn: Callable, *args: Any, **kwargs: Any) -> None:
        if self.shut_down:
            raise RuntimeError("cannot schedule new futures after shutdown")
        self.queue.append((fn, args, kwargs))

    def run_next(self) -> None:
        fn, args, kwargs = self.queue.pop(0)
        fn(*args, **kwargs)

    def run_all(self) -> None:
        while self.queue:
            self.run_next()

    def shutdown(self, wait: bool = True) -> None:
        self.shut_down = True


class FakeTimer:
    """threading.Timer stand-in that fires only when the test says so."""

    def __init__(self, interval: float, function: Callable, args: tuple = (), kwargs: Optional[dict] = None):
        self.interval = interval
        self.function = function
        self.args = args
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.started and not self.cancelled:
            self.function(*self.args, **self.kwargs)


class TimerFactory:
    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, interval, function, args=(), kwargs=None) -> FakeTimer:
        timer = FakeTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    def for_job(self, job_id: str) -> FakeTimer:
        return next(t for t in self.timers if t.args == (job_id,))


class FakeExtractor(MetadataExtractor):
    """Returns fixed metadata, or raises the configured error."""

    def __init__(self, metadata: Optional[VideoMetadata] = None, error: Optional[Exception] = None):
        self.metadata = metadata
        self.error = error
        self.calls: List[VideoUpload] = []

    def extract(self, upload: VideoUpload) -> VideoMetadata:
        self.calls.append(upload)
        if self.error is not None:
            raise self.error
        return self.metadata


class MemoryBackend(JobBackend):
    """
    Dict-backed durable tier that records calls.

    fail_saves / fail_loads raise the wrapped backend errors; set `outage`
    to any exception to simulate a raw connection failure instead.
    """

    def __init__(self):
        self.records: Dict[str, VideoJob] = {}
        self.users: Dict[str, set] = {}
        self.saves: List[tuple] = []
        self.fail_saves = False
        self.fail_loads = False
        self.outage: Optional[Exception] = None

    def save(self, job, ttl_seconds):
        if self.outage is not None:
            raise self.outage
        if self.fail_saves:
            raise SaveError("redis down")
        self.saves.append((job.id, job.status, ttl_seconds))
        self.records[job.id] = job.snapshot()
        self.users.setdefault(job.user_id, set()).add(job.id)

    def load(self, job_id) -> Optional[VideoJob]:
        if self.outage is not None:
            raise self.outage
        if self.fail_loads:
            raise LoadError("redis down")
        job = self.records.get(job_id)
        return job.snapshot() if job else None

    def delete(self, job_id, user_id=None):
        if self.outage is not None:
            raise self.outage
        self.records.pop(job_id, None)
        if user_id is not None:
            self.users.get(user_id, set()).discard(job_id)

    def list_user_job_ids(self, user_id):
        if self.outage is not None:
            raise self.outage
        if self.fail_loads:
            raise LoadError("redis down")
        return sorted(self.users.get(user_id, ()))


class RecordingTranscoder(Transcoder):
    """
    Transcoder that reports the configured progress steps, then succeeds
    or raises.
    """

    def __init__(self, steps: Optional[List[int]] = None, error: Optional[Exception] = None):
        self.steps = steps or []
        self.error = error
        self.jobs = []
        self.tokens: List[CancellationToken] = []
        self.before_return: Optional[Callable[[], None]] = None

    def transcode(self, job, token, progress) -> TranscodeResult:
        self.jobs.append(job)
        self.tokens.append(token)
        for step in self.steps:
            progress(step)
        if self.before_return is not None:
            self.before_return()
        if self.error is not None:
            raise self.error
        return TranscodeResult(output_path=f"https://cdn.test/videos/{job.id}/master.m3u8")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings() -> IngestSettings:
    """Two processing slots, otherwise defaults."""
    return IngestSettings(limits=Limits(max_concurrent_jobs=2, processing_timeout=60))


@pytest.fixture
def metadata_1080p() -> VideoMetadata:
    return VideoMetadata(
        duration=120.0,
        width=1920,
        height=1080,
        fps=30.0,
        bitrate=6_000_000,
        codec="h264",
        audio_codec="aac",
    )


@pytest.fixture
def make_upload() -> Callable[..., VideoUpload]:
    def _make(
        filename: str = "lesson.mp4",
        size: int = 10 * 1024 * 1024,
        content_type: str = "video/mp4",
        path: Optional[str] = None,
    ) -> VideoUpload:
        return VideoUpload(filename=filename, size=size, content_type=content_type, path=path)

    return _make


@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def timers() -> TimerFactory:
    return TimerFactory()


@pytest.fixture
def transcoder() -> RecordingTranscoder:
    return RecordingTranscoder()


@pytest.fixture
def extractor(metadata_1080p) -> FakeExtractor:
    return FakeExtractor(metadata_1080p)


@pytest.fixture
def make_service(settings, executor, timers, transcoder, extractor):
    """Factory for a service wired to the deterministic doubles."""
    services = []

    def _make(**overrides) -> VideoJobService:
        kwargs = dict(
            settings=settings,
            transcoder=transcoder,
            extractor=extractor,
            executor=executor,
            timer_factory=timers,
            store=JobStore(ttl_seconds=settings.storage.retention_processed),
        )
        kwargs.update(overrides)
        service = VideoJobService(**kwargs)
        services.append(service)
        return service

    yield _make

    for service in services:
        service.shutdown(wait=False)


@pytest.fixture
def service(make_service) -> VideoJobService:
    return make_service()
