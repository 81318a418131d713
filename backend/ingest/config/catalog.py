"""
Quality catalog: the fixed rendition ladder and supported input formats.

Pure data. Every supported rendition label has exactly one profile.
Labels are ordered lowest to highest in QUALITY_LABELS.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class QualityProfile:
    """
    A single rendition target.

    Bitrates are kept in the "<n>k" notation ffmpeg accepts directly.
    """

    label: str
    resolution: str  # "WIDTHxHEIGHT"
    video_bitrate: str
    audio_bitrate: str
    fps: int
    profile: str  # H.264 profile: baseline | main | high

    @property
    def dimensions(self) -> Tuple[int, int]:
        width, height = self.resolution.lower().split("x")
        return int(width), int(height)

    @property
    def width(self) -> int:
        return self.dimensions[0]

    @property
    def height(self) -> int:
        return self.dimensions[1]

    @property
    def video_bits_per_second(self) -> int:
        return _kilobits(self.video_bitrate)

    @property
    def audio_bits_per_second(self) -> int:
        return _kilobits(self.audio_bitrate)

    @property
    def bandwidth(self) -> int:
        """Peak bandwidth advertised in HLS/DASH manifests (video + audio)."""
        return self.video_bits_per_second + self.audio_bits_per_second


def _kilobits(value: str) -> int:
    value = value.strip().lower()
    if value.endswith("k"):
        return int(value[:-1]) * 1000
    return int(value)


QUALITY_PROFILES: Dict[str, QualityProfile] = {
    "240p": QualityProfile("240p", "426x240", "400k", "64k", 24, "baseline"),
    "360p": QualityProfile("360p", "640x360", "800k", "96k", 30, "main"),
    "480p": QualityProfile("480p", "854x480", "1200k", "128k", 30, "main"),
    "720p": QualityProfile("720p", "1280x720", "2500k", "192k", 30, "high"),
    "1080p": QualityProfile("1080p", "1920x1080", "5000k", "256k", 30, "high"),
}

# Lowest first
QUALITY_LABELS: Tuple[str, ...] = tuple(
    sorted(QUALITY_PROFILES, key=lambda label: QUALITY_PROFILES[label].height)
)

SUPPORTED_FORMATS: FrozenSet[str] = frozenset({
    "video/mp4",
    "video/webm",
    "video/mov",
    "video/avi",
    "video/mkv",
    "video/wmv",
})

SUPPORTED_EXTENSIONS: FrozenSet[str] = frozenset({
    "mp4",
    "webm",
    "mov",
    "avi",
    "mkv",
    "wmv",
})


class QualityCatalog:
    """
    Read-only lookup over the rendition profiles.

    A catalog can be narrowed to a subset of the default profiles for
    deployments that do not publish the full ladder.
    """

    def __init__(self, profiles: Optional[Dict[str, QualityProfile]] = None):
        profiles = dict(profiles if profiles is not None else QUALITY_PROFILES)
        if not profiles:
            raise ValueError("QualityCatalog requires at least one profile")
        for label, profile in profiles.items():
            if label != profile.label:
                raise ValueError(f"Profile registered as '{label}' is labelled '{profile.label}'")
        self._profiles = profiles
        self._ascending: List[QualityProfile] = sorted(profiles.values(), key=lambda p: p.height)

    def __contains__(self, label: object) -> bool:
        return label in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    def get(self, label: str) -> Optional[QualityProfile]:
        return self._profiles.get(label)

    def require(self, label: str) -> QualityProfile:
        """
        Look up a profile, raising KeyError for unknown labels.
        """
        try:
            return self._profiles[label]
        except KeyError:
            raise KeyError(f"Unknown quality profile: {label}") from None

    @property
    def labels(self) -> List[str]:
        """Labels ordered lowest to highest."""
        return [p.label for p in self._ascending]

    @property
    def lowest(self) -> QualityProfile:
        return self._ascending[0]

    def descending(self) -> List[QualityProfile]:
        """Profiles ordered highest to lowest (ladder order)."""
        return list(reversed(self._ascending))

    def unknown_labels(self, labels: List[str]) -> List[str]:
        return [label for label in labels if label not in self._profiles]


DEFAULT_CATALOG = QualityCatalog()
