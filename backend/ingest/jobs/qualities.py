"""
Rendition ladder selection.

The default ladder includes every catalog rendition that does not upscale
the source, highest first. The lowest rendition is always included so even
tiny sources get a playable stream.
"""

from typing import List, Optional

from ..config.catalog import QualityCatalog, DEFAULT_CATALOG
from ..metadata.models import VideoMetadata
from ..uploads.errors import ValidationError

# Encoders pad to macroblock boundaries, so a 1072- or 1088-line source is
# still a 1080p source.
ROUNDING_TOLERANCE_PX = 8


class QualitySelector:
    """Chooses the rendition ladder for a job."""

    def __init__(self, catalog: QualityCatalog = DEFAULT_CATALOG):
        self.catalog = catalog

    def select_qualities(self, metadata: Optional[VideoMetadata]) -> List[str]:
        """
        Default ladder for a source.

        Args:
            metadata: Source metadata (None yields the lowest rendition only)

        Returns:
            Labels ordered highest to lowest, never empty
        """
        if metadata is None:
            return [self.catalog.lowest.label]

        limit = metadata.short_side + ROUNDING_TOLERANCE_PX
        labels = [p.label for p in self.catalog.descending() if p.height <= limit]
        return labels or [self.catalog.lowest.label]

    def resolve_qualities(
        self,
        metadata: Optional[VideoMetadata],
        override: Optional[List[str]] = None,
    ) -> List[str]:
        """
        Caller override verbatim, or the default ladder.

        Raises:
            ValidationError: If the override is empty or names unknown labels
        """
        if override is None:
            return self.select_qualities(metadata)

        override = list(override)
        if not override:
            raise ValidationError(["At least one quality must be requested"])

        unknown = self.catalog.unknown_labels(override)
        if unknown:
            raise ValidationError([
                f"Unknown quality profile: {label}" for label in unknown
            ])

        duplicates = sorted({label for label in override if override.count(label) > 1})
        if duplicates:
            raise ValidationError([f"Duplicate quality: {label}" for label in duplicates])

        return override
