"""
Upload intake: the untrusted file description and its validation.
"""

from .errors import UploadError, ValidationError
from .models import VideoUpload
from .validators import UploadValidator, MalwareScanner

__all__ = [
    "UploadError",
    "ValidationError",
    "VideoUpload",
    "UploadValidator",
    "MalwareScanner",
]
