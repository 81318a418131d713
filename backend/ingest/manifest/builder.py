"""
Streaming manifest configuration.

Derives, from a job and the process settings, everything a packager and a
player need to know about the job's adaptive streams:

- ManifestConfig: HLS/DASH packaging parameters plus the job's qualities
- StreamingManifest: per-format descriptor with CDN URLs and bandwidths
- StreamingManifest also lists the thumbnail strip (one frame every
  THUMBNAIL_INTERVAL seconds) when the job asked for thumbnails
- render_master_playlist: the HLS master playlist text

These are pure functions of (job, settings). They do not depend on job
status, so a manifest config can be computed before any output exists.
"""

import math
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from ..config.catalog import QualityCatalog, DEFAULT_CATALOG
from ..config.settings import IngestSettings, DEFAULT_SETTINGS
from ..jobs.models import VideoJob

HLS_MASTER = "master.m3u8"
HLS_VARIANT = "playlist.m3u8"
DASH_MANIFEST = "manifest.mpd"

THUMBNAIL_DIR = "thumbnails"
THUMBNAIL_PATTERN = "thumb_%04d.jpg"
THUMBNAIL_INTERVAL = 10  # seconds
THUMBNAIL_WIDTH = 320

AUDIO_DIR = "audio"
AUDIO_TRACK = "audio.m4a"


class HlsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    segment_duration: int
    playlist_type: str
    enable_encryption: bool
    key_rotation_interval: int


class DashConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    segment_duration: int
    adaptation_sets: List[str]
    enable_encryption: bool


class ManifestConfig(BaseModel):
    """Packaging parameters for one job."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    job_id: str
    qualities: List[str]
    hls: HlsConfig
    dash: DashConfig


class RenditionEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    quality: str
    bandwidth: int  # bits per second, video + audio
    resolution: str
    url: str


class ThumbnailEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    time: int  # seconds into the source
    url: str


class StreamingManifest(BaseModel):
    """Where a player finds one format's streams."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    video_id: str
    format: Literal["hls", "dash"]
    base_url: str
    manifest: str
    qualities: List[RenditionEntry]
    thumbnails: List[ThumbnailEntry] = []
    duration: Optional[float] = None
    encrypted: bool


class StreamingManifests(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    hls: StreamingManifest
    dash: StreamingManifest
    audio_url: Optional[str] = None  # audio-only track, when extracted


def build_manifest_config(
    job: VideoJob,
    settings: IngestSettings = DEFAULT_SETTINGS,
) -> ManifestConfig:
    """
    Packaging parameters for a job, in any status.
    """
    hls = settings.hls
    dash = settings.dash
    return ManifestConfig(
        job_id=job.id,
        qualities=list(job.qualities),
        hls=HlsConfig(
            segment_duration=hls.segment_duration,
            playlist_type=hls.playlist_type,
            enable_encryption=hls.enable_encryption,
            key_rotation_interval=hls.key_rotation_interval,
        ),
        dash=DashConfig(
            segment_duration=dash.segment_duration,
            adaptation_sets=list(dash.adaptation_sets),
            enable_encryption=dash.enable_encryption,
        ),
    )


def _renditions(
    job: VideoJob,
    base_url: str,
    filename: str,
    catalog: QualityCatalog,
) -> List[RenditionEntry]:
    entries = []
    for label in job.qualities:
        profile = catalog.require(label)
        entries.append(RenditionEntry(
            quality=label,
            bandwidth=profile.bandwidth,
            resolution=profile.resolution,
            url=f"{base_url}/{label}/{filename}",
        ))
    return entries


def thumbnail_times(duration: float, interval: int = THUMBNAIL_INTERVAL) -> List[int]:
    """Capture times for a source: 0, interval, 2 * interval ... before the end."""
    return list(range(0, math.ceil(duration), interval))


def thumbnail_filename(position: int) -> str:
    """File name of the thumbnail at a 0-based position in the strip."""
    return THUMBNAIL_PATTERN % (position + 1)


def _thumbnails(job: VideoJob, base_url: str) -> List[ThumbnailEntry]:
    if not job.options.generate_thumbnails or job.metadata is None:
        return []
    return [
        ThumbnailEntry(time=time, url=f"{base_url}/{THUMBNAIL_DIR}/{thumbnail_filename(i)}")
        for i, time in enumerate(thumbnail_times(job.metadata.duration))
    ]


def build_streaming_manifests(
    job: VideoJob,
    settings: IngestSettings = DEFAULT_SETTINGS,
    catalog: QualityCatalog = DEFAULT_CATALOG,
) -> StreamingManifests:
    """
    HLS and DASH descriptors rooted at <cdn>/videos/<job id>.

    Raises:
        KeyError: If the job names a quality missing from the catalog
    """
    base_url = settings.storage.video_base_url(job.id)
    duration = job.metadata.duration if job.metadata else None
    thumbnails = _thumbnails(job, base_url)

    hls = StreamingManifest(
        video_id=job.id,
        format="hls",
        base_url=f"{base_url}/{HLS_MASTER}",
        manifest=HLS_MASTER,
        qualities=_renditions(job, base_url, HLS_VARIANT, catalog),
        thumbnails=thumbnails,
        duration=duration,
        encrypted=settings.hls.enable_encryption,
    )
    dash = StreamingManifest(
        video_id=job.id,
        format="dash",
        base_url=f"{base_url}/{DASH_MANIFEST}",
        manifest=DASH_MANIFEST,
        qualities=_renditions(job, base_url, DASH_MANIFEST, catalog),
        thumbnails=thumbnails,
        duration=duration,
        encrypted=settings.dash.enable_encryption,
    )
    audio_url = None
    if job.options.extract_audio:
        audio_url = f"{base_url}/{AUDIO_DIR}/{AUDIO_TRACK}"
    return StreamingManifests(hls=hls, dash=dash, audio_url=audio_url)


def render_master_playlist(
    qualities: List[str],
    catalog: QualityCatalog = DEFAULT_CATALOG,
) -> str:
    """
    HLS master playlist referencing <quality>/playlist.m3u8 variants.

    Raises:
        KeyError: If a quality is missing from the catalog
    """
    lines = ["#EXTM3U", "#EXT-X-VERSION:3", ""]
    for label in qualities:
        profile = catalog.require(label)
        lines.append(
            f"#EXT-X-STREAM-INF:BANDWIDTH={profile.bandwidth},"
            f"RESOLUTION={profile.resolution},NAME=\"{label}\""
        )
        lines.append(f"{label}/{HLS_VARIANT}")
        lines.append("")
    return "\n".join(lines) + "\n"
