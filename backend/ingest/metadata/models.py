"""
Metadata data models.

Intrinsic properties of an uploaded source video.
Populated once at submission and immutable afterwards.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VideoMetadata(BaseModel):
    """
    Intrinsic properties of a source video.

    Numeric fields are non-negative. Codec names are lowercased.
    audio_codec is "none" when the source has no audio stream.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    duration: float = Field(ge=0)  # seconds
    width: int = Field(ge=0)
    height: int = Field(ge=0)
    fps: float = Field(ge=0)
    bitrate: int = Field(ge=0)  # bits per second
    codec: str
    audio_codec: str = "none"

    @field_validator("codec", "audio_codec")
    @classmethod
    def normalize_codec(cls, v: str) -> str:
        """Codec names must be non-empty."""
        if not v or not v.strip():
            raise ValueError("Codec name cannot be empty")
        return v.strip().lower()

    @property
    def short_side(self) -> int:
        """Smaller of width and height; rendition heights compare against this."""
        return min(self.width, self.height)

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"
