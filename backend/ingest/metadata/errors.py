"""
Metadata errors.

A source that passes upload validation but cannot be probed becomes a
failed job; these errors carry the reason recorded on that job.
"""


class MetadataError(Exception):
    """Base exception for probing a source video."""
    pass


class MetadataExtractionError(MetadataError):
    """The source could not be probed or its probe output was unusable."""

    def __init__(self, filepath: str, reason: str):
        self.filepath = filepath
        self.reason = reason
        super().__init__(f"Failed to extract metadata from {filepath}: {reason}")


class FFProbeNotFoundError(MetadataError):
    """ffprobe is not installed or not on PATH."""

    def __init__(self, binary: str = "ffprobe"):
        self.binary = binary
        super().__init__(
            f"{binary} not found. Install ffmpeg (which ships ffprobe) to enable metadata extraction."
        )
