"""
FFmpeg HLS transcoder.

Real transcoding via subprocess.Popen, one process per rendition:

- libx264 video at the profile's bitrate and H.264 profile, capped with
  maxrate and a 2x bufsize
- AAC stereo audio at the profile's audio bitrate
- scaled to fit the profile's resolution without upscaling the aspect ratio
- VOD HLS segments under <output_dir>/<job id>/<quality>/

Optional steps, driven by the job's submit options:

- generate_thumbnails: one 320px JPEG every 10 seconds of source under
  <output_dir>/<job id>/thumbnails/
- extract_audio: an AAC audio-only track at <output_dir>/<job id>/audio/

Last, the master playlist is written to <output_dir>/<job id>/master.m3u8.
Progress is reported after each step.

Cancellation: the token is polled while a process runs. On signal the
process gets SIGTERM, then SIGKILL if it is still alive after the grace
period.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

from ..config.catalog import QualityCatalog, QualityProfile, DEFAULT_CATALOG
from ..config.settings import IngestSettings, DEFAULT_SETTINGS
from ..jobs.models import VideoJob
from ..manifest.builder import (
    AUDIO_DIR,
    AUDIO_TRACK,
    HLS_MASTER,
    HLS_VARIANT,
    THUMBNAIL_DIR,
    THUMBNAIL_INTERVAL,
    THUMBNAIL_PATTERN,
    THUMBNAIL_WIDTH,
    render_master_playlist,
)
from .base import CancellationToken, ProgressCallback, Transcoder, TranscodeResult
from .errors import (
    RenditionFailedError,
    TranscodeCancelledError,
    TranscodeError,
    TranscoderNotAvailableError,
)

logger = logging.getLogger(__name__)

SEGMENT_PATTERN = "segment_%03d.ts"


class FFmpegTranscoder(Transcoder):
    """
    Produces an HLS rendition ladder with ffmpeg.
    """

    def __init__(
        self,
        settings: IngestSettings = DEFAULT_SETTINGS,
        catalog: QualityCatalog = DEFAULT_CATALOG,
        ffmpeg_path: Optional[str] = None,
        poll_interval: float = 0.5,
        kill_grace: float = 5.0,
    ):
        """
        Args:
            settings: Storage and HLS settings
            catalog: Rendition profiles
            ffmpeg_path: Explicit ffmpeg binary (searched on PATH otherwise)
            poll_interval: Seconds between cancellation checks
            kill_grace: Seconds between SIGTERM and SIGKILL
        """
        self.settings = settings
        self.catalog = catalog
        self._ffmpeg_path = ffmpeg_path
        self.poll_interval = poll_interval
        self.kill_grace = kill_grace

    @property
    def name(self) -> str:
        return "FFmpeg"

    @property
    def available(self) -> bool:
        return self.find_ffmpeg() is not None

    def find_ffmpeg(self) -> Optional[str]:
        """Find ffmpeg binary path."""
        if self._ffmpeg_path:
            return self._ffmpeg_path

        ffmpeg_path = shutil.which("ffmpeg")
        if ffmpeg_path:
            self._ffmpeg_path = ffmpeg_path
            return ffmpeg_path

        for path in ("/usr/local/bin/ffmpeg", "/usr/bin/ffmpeg", "/opt/homebrew/bin/ffmpeg"):
            if os.path.isfile(path) and os.access(path, os.X_OK):
                self._ffmpeg_path = path
                return path

        return None

    def build_rendition_command(
        self,
        input_path: str,
        quality_dir: str,
        profile: QualityProfile,
        ffmpeg: str = "ffmpeg",
    ) -> List[str]:
        """
        ffmpeg argv for one HLS rendition.
        """
        kbps = profile.video_bits_per_second // 1000
        hls = self.settings.hls
        return [
            ffmpeg,
            "-hide_banner",
            "-nostdin",
            "-y",
            "-i", input_path,
            # Video
            "-c:v", "libx264",
            "-profile:v", profile.profile,
            "-b:v", profile.video_bitrate,
            "-maxrate", profile.video_bitrate,
            "-bufsize", f"{kbps * 2}k",
            "-r", str(profile.fps),
            # Audio
            "-c:a", "aac",
            "-b:a", profile.audio_bitrate,
            "-ac", "2",
            # Scaling
            "-vf", f"scale={profile.width}:{profile.height}:force_original_aspect_ratio=decrease",
            # HLS
            "-f", "hls",
            "-hls_time", str(hls.segment_duration),
            "-hls_playlist_type", hls.playlist_type,
            "-hls_segment_filename", str(Path(quality_dir) / SEGMENT_PATTERN),
            "-hls_flags", "independent_segments",
            str(Path(quality_dir) / HLS_VARIANT),
        ]

    def build_thumbnail_command(
        self,
        input_path: str,
        thumbnail_dir: str,
        ffmpeg: str = "ffmpeg",
    ) -> List[str]:
        """
        ffmpeg argv for the thumbnail strip: one frame every
        THUMBNAIL_INTERVAL seconds, scaled to THUMBNAIL_WIDTH.
        """
        return [
            ffmpeg,
            "-hide_banner",
            "-nostdin",
            "-y",
            "-i", input_path,
            "-an",
            "-vf", f"fps=1/{THUMBNAIL_INTERVAL},scale={THUMBNAIL_WIDTH}:-2",
            "-q:v", "3",
            str(Path(thumbnail_dir) / THUMBNAIL_PATTERN),
        ]

    def build_audio_command(
        self,
        input_path: str,
        audio_dir: str,
        profile: QualityProfile,
        ffmpeg: str = "ffmpeg",
    ) -> List[str]:
        """
        ffmpeg argv for the audio-only track at the profile's audio bitrate.
        """
        return [
            ffmpeg,
            "-hide_banner",
            "-nostdin",
            "-y",
            "-i", input_path,
            "-vn",
            "-c:a", "aac",
            "-b:a", profile.audio_bitrate,
            "-ac", "2",
            str(Path(audio_dir) / AUDIO_TRACK),
        ]

    def transcode(
        self,
        job: VideoJob,
        token: CancellationToken,
        progress: ProgressCallback,
    ) -> TranscodeResult:
        ffmpeg = self.find_ffmpeg()
        if ffmpeg is None:
            raise TranscoderNotAvailableError("ffmpeg")
        if not job.input_path:
            raise TranscodeError(f"Job {job.id} has no input path")

        profiles = [self.catalog.require(label) for label in job.qualities]
        output_dir = Path(self.settings.storage.output_path(job.id))

        # (label, output directory, argv) per step; the master playlist is
        # the final step
        commands = []
        for profile in profiles:
            quality_dir = output_dir / profile.label
            commands.append((
                profile.label,
                quality_dir,
                self.build_rendition_command(job.input_path, str(quality_dir), profile, ffmpeg),
            ))
        # Without a duration there is nothing to space thumbnails over
        if job.options.generate_thumbnails and job.metadata is not None:
            thumbnail_dir = output_dir / THUMBNAIL_DIR
            commands.append((
                "thumbnails",
                thumbnail_dir,
                self.build_thumbnail_command(job.input_path, str(thumbnail_dir), ffmpeg),
            ))
        if job.options.extract_audio and profiles:
            audio_dir = output_dir / AUDIO_DIR
            commands.append((
                "audio",
                audio_dir,
                self.build_audio_command(job.input_path, str(audio_dir), profiles[0], ffmpeg),
            ))
        steps = len(commands) + 1

        logger.info(f"[FFmpeg] Transcoding {job.id}: {', '.join(label for label, _, _ in commands)}")

        for i, (label, step_dir, cmd) in enumerate(commands):
            if token.cancelled:
                raise TranscodeCancelledError(job.id, token.reason)

            step_dir.mkdir(parents=True, exist_ok=True)
            self._run(job.id, label, cmd, token)

            progress(int((i + 1) * 100 / steps))

        output_dir.mkdir(parents=True, exist_ok=True)
        master_path = output_dir / HLS_MASTER
        master_path.write_text(render_master_playlist(job.qualities, self.catalog), encoding="utf-8")
        progress(100)

        logger.info(f"[FFmpeg] Completed {job.id}: {master_path}")
        return TranscodeResult(
            output_path=f"{self.settings.storage.video_base_url(job.id)}/{HLS_MASTER}",
            master_playlist=str(master_path),
        )

    def _run(self, job_id: str, quality: str, cmd: List[str], token: CancellationToken) -> None:
        logger.info(f"[FFmpeg] Executing: {' '.join(cmd)}")

        # stderr goes to a file so a chatty encoder can never block on a full pipe
        with tempfile.TemporaryFile(mode="w+") as stderr:
            try:
                process = subprocess.Popen(
                    cmd,
                    stdout=subprocess.DEVNULL,
                    stderr=stderr,
                    text=True,
                )
            except OSError as e:
                raise TranscodeError(f"Failed to start ffmpeg for {quality}: {e}") from e

            logger.info(f"[FFmpeg] Started PID {process.pid} for {job_id}/{quality}")

            while process.poll() is None:
                if token.wait(self.poll_interval):
                    self._terminate(process)
                    raise TranscodeCancelledError(job_id, token.reason)

            exit_code = process.returncode
            logger.info(f"[FFmpeg] PID {process.pid} exited with code {exit_code}")

            if exit_code != 0:
                stderr.seek(0)
                raise RenditionFailedError(quality, exit_code, stderr.read())

    def _terminate(self, process: subprocess.Popen) -> None:
        logger.info(f"[FFmpeg] Sending SIGTERM to PID {process.pid}")
        try:
            process.terminate()
            try:
                process.wait(timeout=self.kill_grace)
            except subprocess.TimeoutExpired:
                logger.warning(f"[FFmpeg] PID {process.pid} did not terminate, sending SIGKILL")
                process.kill()
                process.wait()
        except ProcessLookupError:
            pass  # Process already dead
