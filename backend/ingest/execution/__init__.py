"""
Transcoding execution: transcoder interface, cancellation, admission gate.
"""

from .errors import (
    TranscodeError,
    TranscoderNotAvailableError,
    RenditionFailedError,
    TranscodeCancelledError,
)
from .base import CancellationToken, ProgressCallback, Transcoder, TranscodeResult
from .gate import ConcurrencyGate

__all__ = [
    "TranscodeError",
    "TranscoderNotAvailableError",
    "RenditionFailedError",
    "TranscodeCancelledError",
    "CancellationToken",
    "ProgressCallback",
    "Transcoder",
    "TranscodeResult",
    "ConcurrencyGate",
]
