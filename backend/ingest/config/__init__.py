"""
Static configuration: rendition catalog, limits, storage and manifest settings.
"""

from .catalog import (
    QualityProfile,
    QualityCatalog,
    QUALITY_PROFILES,
    QUALITY_LABELS,
    SUPPORTED_FORMATS,
    SUPPORTED_EXTENSIONS,
    DEFAULT_CATALOG,
)
from .settings import (
    Limits,
    StoragePolicy,
    HlsSettings,
    DashSettings,
    RedisSettings,
    IngestSettings,
    DEFAULT_SETTINGS,
)

__all__ = [
    # Catalog
    "QualityProfile",
    "QualityCatalog",
    "QUALITY_PROFILES",
    "QUALITY_LABELS",
    "SUPPORTED_FORMATS",
    "SUPPORTED_EXTENSIONS",
    "DEFAULT_CATALOG",
    # Settings
    "Limits",
    "StoragePolicy",
    "HlsSettings",
    "DashSettings",
    "RedisSettings",
    "IngestSettings",
    "DEFAULT_SETTINGS",
]
