"""
Video ingest core.

Validates uploaded videos, plans their streaming renditions and runs their
transcoding jobs under a concurrency limit.

Usage:
    from ingest import build_service, VideoUpload

    service = build_service()
    job = service.submit_video(
        VideoUpload(filename="intro.mp4", size=1024, content_type="video/mp4", path="/tmp/intro.mp4"),
        user_id="user-1",
    )
    service.get_video_job(job.id)
"""

from .config import IngestSettings, DEFAULT_SETTINGS
from .uploads import VideoUpload, ValidationError
from .jobs import JobStatus, SubmitOptions, VideoJob, Unauthorized, ProcessingError
from .jobs.service import VideoJobService
from .bootstrap import build_service, configure_logging

__version__ = "0.1.0"

__all__ = [
    "IngestSettings",
    "DEFAULT_SETTINGS",
    "VideoUpload",
    "ValidationError",
    "JobStatus",
    "SubmitOptions",
    "VideoJob",
    "Unauthorized",
    "ProcessingError",
    "VideoJobService",
    "build_service",
    "configure_logging",
]
