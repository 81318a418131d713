"""
Metadata extraction.

MetadataExtractor is the seam the job service depends on. FFProbeExtractor
is the production implementation: it shells out to ffprobe (part of ffmpeg)
and reads the first video and audio streams.

Extraction is read-only and non-destructive.
Missing required values raise MetadataExtractionError. No silent guessing.
"""

import json
import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from ..uploads.models import VideoUpload
from .errors import FFProbeNotFoundError, MetadataExtractionError
from .models import VideoMetadata

logger = logging.getLogger(__name__)


class MetadataExtractor(ABC):
    """
    Derives intrinsic properties of an uploaded video.

    Implementations raise MetadataError subclasses when the contents cannot
    be introspected.
    """

    @abstractmethod
    def extract(self, upload: VideoUpload) -> VideoMetadata:
        """
        Extract metadata for an upload.

        Args:
            upload: A validated upload

        Returns:
            VideoMetadata with every field populated
        """
        pass


class FFProbeExtractor(MetadataExtractor):
    """
    ffprobe-backed extractor.

    Requires the upload to carry a local path.
    """

    def __init__(self, ffprobe_path: Optional[str] = None, timeout: float = 60.0):
        """
        Args:
            ffprobe_path: Explicit ffprobe binary (defaults to PATH lookup)
            timeout: Seconds before a hung ffprobe is abandoned
        """
        self._ffprobe_path = ffprobe_path
        self.timeout = timeout

    def find_ffprobe(self) -> Optional[str]:
        """Locate the ffprobe binary. Result is cached after first success."""
        if self._ffprobe_path is None:
            self._ffprobe_path = shutil.which("ffprobe")
        return self._ffprobe_path

    @property
    def available(self) -> bool:
        return self.find_ffprobe() is not None

    def extract(self, upload: VideoUpload) -> VideoMetadata:
        """
        Raises:
            FFProbeNotFoundError: If ffprobe is not available
            MetadataExtractionError: If the file is missing or unparseable
        """
        if not upload.path:
            raise MetadataExtractionError(upload.filename, "Upload has no local path to probe")
        return self.extract_path(upload.path)

    def extract_path(self, filepath: str) -> VideoMetadata:
        ffprobe = self.find_ffprobe()
        if ffprobe is None:
            raise FFProbeNotFoundError()

        path = Path(filepath)
        if not path.exists():
            raise MetadataExtractionError(filepath, "File does not exist")
        if not path.is_file():
            raise MetadataExtractionError(filepath, "Path is not a file")

        try:
            probe_data = self._run_ffprobe(ffprobe, filepath)
        except subprocess.CalledProcessError as e:
            raise MetadataExtractionError(
                filepath, f"ffprobe failed with exit code {e.returncode}"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise MetadataExtractionError(
                filepath, f"ffprobe timed out after {self.timeout:.0f}s"
            ) from e
        except json.JSONDecodeError as e:
            raise MetadataExtractionError(
                filepath, f"Failed to parse ffprobe output: {e}"
            ) from e

        try:
            metadata = parse_probe_data(probe_data)
        except (ValueError, TypeError) as e:
            raise MetadataExtractionError(filepath, f"Failed to parse metadata: {e}") from e

        logger.info(
            f"[Metadata] Extracted {path.name}: {metadata.resolution} "
            f"{metadata.codec}/{metadata.audio_codec} {metadata.duration:.1f}s"
        )
        return metadata

    def _run_ffprobe(self, ffprobe: str, filepath: str) -> Dict[str, Any]:
        """
        Run ffprobe and return parsed JSON output.

        Raises:
            subprocess.CalledProcessError: If ffprobe fails
            subprocess.TimeoutExpired: If ffprobe hangs
            json.JSONDecodeError: If output is not valid JSON
        """
        cmd = [
            ffprobe,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            filepath,
        ]

        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
            timeout=self.timeout,
        )

        return json.loads(result.stdout)


def parse_probe_data(probe_data: Dict[str, Any]) -> VideoMetadata:
    """
    Convert ffprobe JSON into VideoMetadata.

    Args:
        probe_data: Parsed ffprobe output

    Returns:
        VideoMetadata

    Raises:
        ValueError: If required fields are missing or invalid
    """
    format_info = probe_data.get("format", {})
    video_stream = _get_stream(probe_data, "video")
    audio_stream = _get_stream(probe_data, "audio")

    if not video_stream:
        raise ValueError("No video stream found")

    duration_str = format_info.get("duration") or video_stream.get("duration")
    if not duration_str:
        raise ValueError("Duration not found")
    try:
        duration = float(duration_str)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid duration: {duration_str}")

    width = int(video_stream.get("width") or 0)
    height = int(video_stream.get("height") or 0)
    if width <= 0 or height <= 0:
        raise ValueError("Resolution not found")

    fps = _parse_rational(video_stream.get("r_frame_rate", "0/1"))
    if fps <= 0:
        # Try avg_frame_rate as fallback
        fps = _parse_rational(video_stream.get("avg_frame_rate", "0/1"))

    bitrate_str = format_info.get("bit_rate") or video_stream.get("bit_rate")
    try:
        bitrate = int(bitrate_str) if bitrate_str else 0
    except (ValueError, TypeError):
        bitrate = 0

    return VideoMetadata(
        duration=duration,
        width=width,
        height=height,
        fps=round(fps, 3),
        bitrate=bitrate,
        codec=video_stream.get("codec_name") or "unknown",
        audio_codec=(audio_stream or {}).get("codec_name") or "none",
    )


def _get_stream(probe_data: Dict[str, Any], codec_type: str) -> Optional[Dict[str, Any]]:
    """Find the first stream of a given type in ffprobe output."""
    for stream in probe_data.get("streams", []):
        if stream.get("codec_type") == codec_type:
            return stream
    return None


def _parse_rational(rational_str: str) -> float:
    """
    Parse a rational number string (e.g., "30000/1001") to float.

    Returns:
        Float value, or 0.0 if parsing fails
    """
    try:
        if "/" in rational_str:
            num, denom = rational_str.split("/")
            if int(denom) == 0:
                return 0.0
            return int(num) / int(denom)
        return float(rational_str)
    except (ValueError, ZeroDivisionError):
        return 0.0
