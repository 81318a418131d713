"""
Metadata extraction for uploaded source videos.

Usage:
    from ingest.metadata import FFProbeExtractor

    metadata = FFProbeExtractor().extract_path("/path/to/file.mp4")
    print(metadata.resolution, metadata.duration)
"""

from .errors import (
    MetadataError,
    MetadataExtractionError,
    FFProbeNotFoundError,
)
from .models import VideoMetadata
from .extractors import (
    MetadataExtractor,
    FFProbeExtractor,
    parse_probe_data,
)

__all__ = [
    # Errors
    "MetadataError",
    "MetadataExtractionError",
    "FFProbeNotFoundError",
    # Models
    "VideoMetadata",
    # Extraction
    "MetadataExtractor",
    "FFProbeExtractor",
    "parse_probe_data",
]
