"""
Process-wide ingest settings.

Settings are immutable once built. The process entry point builds one
IngestSettings (usually via IngestSettings.from_env) and hands it to the
service and its collaborators.

Environment variables:
    INGEST_MAX_FILE_SIZE         bytes
    INGEST_MAX_DURATION          seconds
    INGEST_MAX_CONCURRENT_JOBS   count
    INGEST_PROCESSING_TIMEOUT    seconds
    INGEST_TEMP_DIR / INGEST_OUTPUT_DIR
    CDN_URL
    INGEST_RETENTION_TEMP / INGEST_RETENTION_PROCESSED   seconds
    REDIS_URL, or REDIS_HOST / REDIS_PORT / REDIS_PASSWORD / REDIS_DB
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Mapping, Optional, Tuple

from .catalog import SUPPORTED_EXTENSIONS, SUPPORTED_FORMATS


GIB = 1024 * 1024 * 1024
HOUR = 60 * 60
DAY = 24 * HOUR

DEFAULT_CDN_BASE_URL = "https://cdn.lazygamedevs.com"


def _require_positive(owner: str, **values: float) -> None:
    for name, value in values.items():
        if value is None or value <= 0:
            raise ValueError(f"{owner}.{name} must be positive, got {value!r}")


@dataclass(frozen=True)
class Limits:
    """Operational limits. All values must be strictly positive."""

    max_file_size: int = 5 * GIB
    max_duration: float = 4 * HOUR
    max_concurrent_jobs: int = 5
    processing_timeout: float = 1 * HOUR

    def __post_init__(self):
        _require_positive(
            "Limits",
            max_file_size=self.max_file_size,
            max_duration=self.max_duration,
            max_concurrent_jobs=self.max_concurrent_jobs,
            processing_timeout=self.processing_timeout,
        )


@dataclass(frozen=True)
class StoragePolicy:
    """
    Where artifacts live and how long they are kept.

    Retention windows are seconds. retention_processed doubles as the TTL of
    job records in the durable tier.
    """

    temp_dir: str = "/tmp/video-processing"
    output_dir: str = "/var/www/video-streams"
    cdn_base_url: str = DEFAULT_CDN_BASE_URL
    retention_temp: int = 1 * DAY
    retention_processed: int = 365 * DAY

    def __post_init__(self):
        _require_positive(
            "StoragePolicy",
            retention_temp=self.retention_temp,
            retention_processed=self.retention_processed,
        )

    def input_path(self, job_id: str, filename: str) -> str:
        return f"{self.temp_dir.rstrip('/')}/{job_id}/{filename}"

    def output_path(self, job_id: str, quality: Optional[str] = None) -> str:
        base = f"{self.output_dir.rstrip('/')}/{job_id}"
        return f"{base}/{quality}" if quality else base

    def video_base_url(self, job_id: str) -> str:
        return f"{self.cdn_base_url.rstrip('/')}/videos/{job_id}"


@dataclass(frozen=True)
class HlsSettings:
    segment_duration: int = 6
    playlist_type: str = "vod"
    enable_encryption: bool = True
    key_rotation_interval: int = 300

    def __post_init__(self):
        _require_positive(
            "HlsSettings",
            segment_duration=self.segment_duration,
            key_rotation_interval=self.key_rotation_interval,
        )
        if self.playlist_type != "vod":
            raise ValueError(f"HlsSettings.playlist_type must be 'vod', got {self.playlist_type!r}")


@dataclass(frozen=True)
class DashSettings:
    segment_duration: int = 4
    adaptation_sets: Tuple[str, ...] = ("video", "audio")
    enable_encryption: bool = True

    def __post_init__(self):
        _require_positive("DashSettings", segment_duration=self.segment_duration)
        if not self.adaptation_sets:
            raise ValueError("DashSettings.adaptation_sets cannot be empty")


@dataclass(frozen=True)
class RedisSettings:
    """
    Connection settings for the durable tier.

    Redis is optional: with neither url nor host set the store runs
    in-process only.
    """

    url: Optional[str] = None
    host: Optional[str] = None
    port: int = 6379
    password: Optional[str] = None
    db: int = 0
    socket_timeout: float = 5.0

    @property
    def enabled(self) -> bool:
        return bool(self.url or self.host)


@dataclass(frozen=True)
class IngestSettings:
    """
    Complete, immutable configuration for one ingest process.
    """

    limits: Limits = field(default_factory=Limits)
    storage: StoragePolicy = field(default_factory=StoragePolicy)
    hls: HlsSettings = field(default_factory=HlsSettings)
    dash: DashSettings = field(default_factory=DashSettings)
    redis: RedisSettings = field(default_factory=RedisSettings)
    supported_formats: frozenset = SUPPORTED_FORMATS
    supported_extensions: frozenset = SUPPORTED_EXTENSIONS

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["supported_formats"] = sorted(self.supported_formats)
        data["supported_extensions"] = sorted(self.supported_extensions)
        data["dash"]["adaptation_sets"] = list(self.dash.adaptation_sets)
        if data["redis"].get("password"):
            data["redis"]["password"] = "***"
        return data

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "IngestSettings":
        """
        Build settings from environment variables, falling back to defaults.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            IngestSettings

        Raises:
            ValueError: If a variable is present but not a valid number,
                or a resulting limit is not positive
        """
        env = os.environ if environ is None else environ
        defaults_limits = Limits()
        defaults_storage = StoragePolicy()

        limits = Limits(
            max_file_size=_env_int(env, "INGEST_MAX_FILE_SIZE", defaults_limits.max_file_size),
            max_duration=_env_float(env, "INGEST_MAX_DURATION", defaults_limits.max_duration),
            max_concurrent_jobs=_env_int(env, "INGEST_MAX_CONCURRENT_JOBS", defaults_limits.max_concurrent_jobs),
            processing_timeout=_env_float(env, "INGEST_PROCESSING_TIMEOUT", defaults_limits.processing_timeout),
        )
        storage = StoragePolicy(
            temp_dir=env.get("INGEST_TEMP_DIR") or defaults_storage.temp_dir,
            output_dir=env.get("INGEST_OUTPUT_DIR") or defaults_storage.output_dir,
            cdn_base_url=env.get("CDN_URL") or defaults_storage.cdn_base_url,
            retention_temp=_env_int(env, "INGEST_RETENTION_TEMP", defaults_storage.retention_temp),
            retention_processed=_env_int(env, "INGEST_RETENTION_PROCESSED", defaults_storage.retention_processed),
        )
        redis = RedisSettings(
            url=env.get("REDIS_URL") or None,
            host=env.get("REDIS_HOST") or None,
            port=_env_int(env, "REDIS_PORT", 6379),
            password=env.get("REDIS_PASSWORD") or None,
            db=_env_int(env, "REDIS_DB", 0),
        )
        return cls(limits=limits, storage=storage, redis=redis)


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}") from None


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}") from None


DEFAULT_SETTINGS = IngestSettings()
