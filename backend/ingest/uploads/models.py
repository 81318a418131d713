"""
Upload data models.

An upload is what the API layer hands to the ingest core: the client's
declared filename, size and media type, plus where the bytes were spooled.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class VideoUpload(BaseModel):
    """
    An inbound upload awaiting validation.

    Fields are client-declared and untrusted until validated.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    filename: str
    size: int = Field(ge=0)  # bytes
    content_type: str
    path: Optional[str] = None  # Local path of the spooled upload, if any

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """Filename must be non-empty."""
        if not v or not v.strip():
            raise ValueError("Filename cannot be empty")
        return v

    @field_validator("content_type")
    @classmethod
    def normalize_content_type(cls, v: str) -> str:
        """Drop parameters (e.g. '; codecs=...') and lowercase."""
        return v.split(";", 1)[0].strip().lower()

    @property
    def extension(self) -> Optional[str]:
        """Lowercased extension without the dot, None if absent."""
        name = self.filename.strip().rsplit("/", 1)[-1]
        if "." not in name:
            return None
        ext = name.rsplit(".", 1)[1].lower()
        return ext or None
