"""
Upload-specific error types.

All errors inherit from UploadError for easy catching.
"""

from typing import List


class UploadError(Exception):
    """Base exception for all upload-related failures."""
    pass


class ValidationError(UploadError):
    """
    Raised when an upload fails one or more validation rules.

    Carries every violated rule, not just the first one.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Video validation failed: {', '.join(self.errors)}")
