#!/usr/bin/env python3
"""
Operator CLI for the ingest core.

Commands:
- plan: validate a local video file and print what ingesting it would
  produce (metadata, default qualities, manifest configuration). Nothing is
  transcoded and no job is stored.
- settings: print the effective settings (passwords masked)

Exit Codes:
===========
- 0: Success
- 1: Validation error
- 2: Processing error (file could not be probed)
- 4: System error (file not found, ffprobe missing, bad settings)
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

from .config.settings import IngestSettings
from .jobs.models import JobIdGenerator, VideoJob
from .jobs.qualities import QualitySelector
from .manifest.builder import build_manifest_config, build_streaming_manifests
from .metadata.errors import FFProbeNotFoundError, MetadataExtractionError
from .metadata.extractors import FFProbeExtractor
from .uploads.errors import ValidationError
from .uploads.models import VideoUpload
from .uploads.validators import UploadValidator

EXIT_OK = 0
EXIT_VALIDATION = 1
EXIT_PROCESSING = 2
EXIT_SYSTEM = 4


def _emit(payload: dict) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _load_settings() -> IngestSettings:
    try:
        return IngestSettings.from_env()
    except ValueError as e:
        print(f"ERROR: Invalid settings: {e}", file=sys.stderr)
        sys.exit(EXIT_SYSTEM)


def cmd_plan(args: argparse.Namespace) -> NoReturn:
    """
    Validate a file and print its ingest plan as JSON.

    Exit codes:
        0: Valid, plan printed
        1: Upload or duration rejected
        2: Metadata could not be extracted
        4: File not found or ffprobe missing
    """
    path = Path(args.file).resolve()
    if not path.is_file():
        print(f"ERROR: File not found: {path}", file=sys.stderr)
        sys.exit(EXIT_SYSTEM)

    settings = _load_settings()
    extension = path.suffix.lstrip(".").lower()
    upload = VideoUpload(
        filename=path.name,
        size=path.stat().st_size,
        content_type=args.mime or f"video/{extension}",
        path=str(path),
    )
    validator = UploadValidator(settings)

    try:
        validator.validate(upload)
    except ValidationError as e:
        _emit({"file": str(path), "valid": False, "errors": e.errors})
        sys.exit(EXIT_VALIDATION)

    try:
        metadata = FFProbeExtractor().extract(upload)
    except FFProbeNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_SYSTEM)
    except MetadataExtractionError as e:
        _emit({"file": str(path), "valid": True, "error": str(e)})
        sys.exit(EXIT_PROCESSING)

    try:
        validator.validate_duration(metadata)
    except ValidationError as e:
        _emit({"file": str(path), "valid": False, "errors": e.errors, "metadata": metadata.model_dump()})
        sys.exit(EXIT_VALIDATION)

    qualities = QualitySelector().select_qualities(metadata)
    preview = VideoJob(
        id=JobIdGenerator()(),
        user_id="cli",
        original_filename=upload.filename,
        original_filesize=upload.size,
        input_path=upload.path,
        metadata=metadata,
        qualities=qualities,
    )

    _emit({
        "file": str(path),
        "valid": True,
        "metadata": metadata.model_dump(),
        "qualities": qualities,
        "manifest": build_manifest_config(preview, settings).model_dump(),
        "streaming": build_streaming_manifests(preview, settings).model_dump(),
    })
    sys.exit(EXIT_OK)


def cmd_settings(args: argparse.Namespace) -> NoReturn:
    """Print effective settings as JSON."""
    _emit(_load_settings().to_dict())
    sys.exit(EXIT_OK)


def main(argv: Optional[List[str]] = None) -> NoReturn:
    """
    Main CLI entrypoint.

    Parses arguments and dispatches to subcommands.
    """
    parser = argparse.ArgumentParser(
        prog='ingest',
        description='Video ingest core - upload validation and job planning',
    )
    subparsers = parser.add_subparsers(dest='command', required=True, help='Command to execute')

    parser_plan = subparsers.add_parser(
        'plan',
        help='Validate a video file and print its ingest plan'
    )
    parser_plan.add_argument(
        'file',
        help='Path to a local video file'
    )
    parser_plan.add_argument(
        '--mime',
        default=None,
        help='Declared media type (default: video/<extension>)'
    )
    parser_plan.set_defaults(func=cmd_plan)

    parser_settings = subparsers.add_parser(
        'settings',
        help='Print effective settings'
    )
    parser_settings.set_defaults(func=cmd_settings)

    args = parser.parse_args(argv)
    args.func(args)


if __name__ == '__main__':
    main()
