"""
Upload validation.

Runs before any job exists. Every rule is checked and all violations are
reported together so the caller sees the complete picture.

Order of checks:
1. Declared media type is in the allow-list
2. Filename extension is present and recognised
3. Size is within Limits.max_file_size
4. Optional malware scanner (external capability)
"""

import logging
from typing import Callable, List, Optional

from ..config.settings import IngestSettings, DEFAULT_SETTINGS
from ..metadata.models import VideoMetadata
from .errors import ValidationError
from .models import VideoUpload

logger = logging.getLogger(__name__)

# Returns True when the upload looks malicious
MalwareScanner = Callable[[VideoUpload], bool]


def _format_bytes(size: int) -> str:
    gib = 1024 * 1024 * 1024
    mib = 1024 * 1024
    if size >= gib and size % gib == 0:
        return f"{size // gib}GB"
    if size >= mib:
        return f"{size / mib:.0f}MB"
    return f"{size} bytes"


class UploadValidator:
    """
    Checks uploads against format, extension and size limits.

    Stateless apart from its settings; safe to share across threads.
    """

    def __init__(
        self,
        settings: IngestSettings = DEFAULT_SETTINGS,
        scanner: Optional[MalwareScanner] = None,
    ):
        """
        Args:
            settings: Limits and format allow-lists to enforce
            scanner: Optional malware scanning capability
        """
        self.settings = settings
        self.scanner = scanner

    def check(self, upload: VideoUpload) -> List[str]:
        """
        Return the list of violated rules (empty when valid).
        """
        errors: List[str] = []

        if upload.content_type not in self.settings.supported_formats:
            errors.append(f"Unsupported video format: {upload.content_type or '(none)'}")

        extension = upload.extension
        if extension is None:
            errors.append("Missing file extension")
        elif extension not in self.settings.supported_extensions:
            errors.append(f"Unsupported file extension: {extension}")

        max_size = self.settings.limits.max_file_size
        if upload.size > max_size:
            errors.append(f"File size exceeds maximum allowed ({_format_bytes(max_size)})")

        if self.scanner is not None and self.scanner(upload):
            logger.warning(f"[Validator] Scanner flagged upload {upload.filename}")
            errors.append("File contains suspicious content")

        return errors

    def validate(self, upload: VideoUpload) -> None:
        """
        Validate an upload.

        Raises:
            ValidationError: Carrying every violated rule
        """
        errors = self.check(upload)
        if errors:
            raise ValidationError(errors)

    def validate_duration(self, metadata: VideoMetadata) -> None:
        """
        Enforce Limits.max_duration once the duration is known.

        Raises:
            ValidationError: If the source is longer than allowed
        """
        max_duration = self.settings.limits.max_duration
        if metadata.duration > max_duration:
            raise ValidationError([
                f"Video duration {metadata.duration:.0f}s exceeds maximum allowed ({max_duration:.0f}s)"
            ])
