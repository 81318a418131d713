"""
Process entry point wiring.

build_service() assembles one VideoJobService from settings: the Redis
durable tier when configured and reachable, ffprobe for metadata, ffmpeg
for transcoding. There is no module-level service; the caller owns the one
it builds.
"""

import logging
import os
from typing import Optional

from .config.settings import IngestSettings
from .execution.base import Transcoder
from .jobs.service import VideoJobService
from .metadata.extractors import MetadataExtractor
from .persistence.backends import RedisJobBackend
from .persistence.client import create_redis_client
from .persistence.store import JobStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for an entry point.

    Args:
        level: Level name; defaults to INGEST_LOG_LEVEL, then INFO
    """
    level_name = (level or os.environ.get("INGEST_LOG_LEVEL") or "INFO").upper()
    numeric = getattr(logging, level_name, None)
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level_name}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)


def build_store(settings: IngestSettings, write_behind: bool = True) -> JobStore:
    """Job store with the Redis tier attached when it is available."""
    backend = None
    client = create_redis_client(settings.redis)
    if client is not None:
        backend = RedisJobBackend(client)
    else:
        logger.info("[Store] Durable tier unavailable, jobs are kept in-process only")
    return JobStore(
        backend=backend,
        ttl_seconds=settings.storage.retention_processed,
        write_behind=write_behind,
    )


def build_service(
    settings: Optional[IngestSettings] = None,
    transcoder: Optional[Transcoder] = None,
    extractor: Optional[MetadataExtractor] = None,
) -> VideoJobService:
    """
    Build the job service for this process.

    Args:
        settings: Settings to use (IngestSettings.from_env() by default)
        transcoder: Transcoder override (FFmpegTranscoder by default)
        extractor: Metadata extractor override (FFProbeExtractor by default)
    """
    settings = settings or IngestSettings.from_env()
    service = VideoJobService(
        settings=settings,
        transcoder=transcoder,
        extractor=extractor,
        store=build_store(settings),
    )
    logger.info(
        f"[Jobs] Service ready: max {settings.limits.max_concurrent_jobs} concurrent jobs, "
        f"timeout {settings.limits.processing_timeout:.0f}s"
    )
    return service
