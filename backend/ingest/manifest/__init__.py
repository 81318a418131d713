"""
Adaptive streaming manifest configuration (HLS and DASH).
"""

from .builder import (
    HlsConfig,
    DashConfig,
    ManifestConfig,
    RenditionEntry,
    ThumbnailEntry,
    StreamingManifest,
    StreamingManifests,
    build_manifest_config,
    build_streaming_manifests,
    render_master_playlist,
    thumbnail_times,
    thumbnail_filename,
    HLS_MASTER,
    HLS_VARIANT,
    DASH_MANIFEST,
    THUMBNAIL_DIR,
    THUMBNAIL_INTERVAL,
    AUDIO_DIR,
    AUDIO_TRACK,
)

__all__ = [
    "HlsConfig",
    "DashConfig",
    "ManifestConfig",
    "RenditionEntry",
    "ThumbnailEntry",
    "StreamingManifest",
    "StreamingManifests",
    "build_manifest_config",
    "build_streaming_manifests",
    "render_master_playlist",
    "thumbnail_times",
    "thumbnail_filename",
    "HLS_MASTER",
    "HLS_VARIANT",
    "DASH_MANIFEST",
    "THUMBNAIL_DIR",
    "THUMBNAIL_INTERVAL",
    "AUDIO_DIR",
    "AUDIO_TRACK",
]
