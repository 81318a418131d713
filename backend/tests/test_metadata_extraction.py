"""
Tests for ffprobe-based metadata extraction.

ffprobe itself is mocked; these tests cover parsing and failure mapping.
"""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from ingest.metadata.errors import FFProbeNotFoundError, MetadataExtractionError
from ingest.metadata.extractors import FFProbeExtractor, parse_probe_data


PROBE_OUTPUT = {
    "streams": [
        {
            "codec_type": "video",
            "codec_name": "H264",
            "width": 1920,
            "height": 1080,
            "r_frame_rate": "30000/1001",
        },
        {"codec_type": "audio", "codec_name": "aac"},
    ],
    "format": {"duration": "125.5", "bit_rate": "5000000"},
}


class TestParseProbeData:

    def test_full_probe(self):
        metadata = parse_probe_data(PROBE_OUTPUT)
        assert metadata.duration == 125.5
        assert metadata.resolution == "1920x1080"
        assert metadata.fps == pytest.approx(29.97, abs=0.001)
        assert metadata.bitrate == 5_000_000
        assert metadata.codec == "h264"
        assert metadata.audio_codec == "aac"

    def test_no_audio_stream(self):
        data = {"streams": [PROBE_OUTPUT["streams"][0]], "format": PROBE_OUTPUT["format"]}
        assert parse_probe_data(data).audio_codec == "none"

    def test_avg_frame_rate_fallback(self):
        stream = dict(PROBE_OUTPUT["streams"][0], r_frame_rate="0/0", avg_frame_rate="25/1")
        data = {"streams": [stream], "format": PROBE_OUTPUT["format"]}
        assert parse_probe_data(data).fps == 25.0

    def test_missing_bitrate_is_zero(self):
        data = {"streams": PROBE_OUTPUT["streams"], "format": {"duration": "10"}}
        assert parse_probe_data(data).bitrate == 0

    @pytest.mark.parametrize("data, message", [
        ({"streams": [{"codec_type": "audio"}], "format": {"duration": "1"}}, "No video stream"),
        ({"streams": PROBE_OUTPUT["streams"], "format": {}}, "Duration not found"),
        ({"streams": [{"codec_type": "video", "width": 0, "height": 0}], "format": {"duration": "1"}}, "Resolution"),
    ])
    def test_missing_required_values(self, data, message):
        with pytest.raises(ValueError, match=message):
            parse_probe_data(data)


class TestFFProbeExtractor:

    def test_extract_runs_ffprobe(self, tmp_path, make_upload):
        source = tmp_path / "lesson.mp4"
        source.write_bytes(b"\x00")
        completed = MagicMock(stdout=json.dumps(PROBE_OUTPUT))

        with patch("ingest.metadata.extractors.subprocess.run", return_value=completed) as run:
            metadata = FFProbeExtractor(ffprobe_path="/usr/bin/ffprobe").extract(
                make_upload(path=str(source))
            )

        cmd = run.call_args[0][0]
        assert cmd[0] == "/usr/bin/ffprobe"
        assert "-show_streams" in cmd and "-show_format" in cmd
        assert cmd[-1] == str(source)
        assert metadata.height == 1080

    def test_upload_without_path(self, make_upload):
        with pytest.raises(MetadataExtractionError, match="no local path"):
            FFProbeExtractor(ffprobe_path="/usr/bin/ffprobe").extract(make_upload())

    def test_missing_file(self, tmp_path):
        with pytest.raises(MetadataExtractionError, match="does not exist"):
            FFProbeExtractor(ffprobe_path="/usr/bin/ffprobe").extract_path(str(tmp_path / "gone.mp4"))

    def test_ffprobe_not_installed(self, tmp_path):
        with patch("ingest.metadata.extractors.shutil.which", return_value=None):
            with pytest.raises(FFProbeNotFoundError):
                FFProbeExtractor().extract_path(str(tmp_path / "a.mp4"))

    def test_ffprobe_failure_maps_to_extraction_error(self, tmp_path):
        source = tmp_path / "broken.mp4"
        source.write_bytes(b"junk")
        error = subprocess.CalledProcessError(1, ["ffprobe"])

        with patch("ingest.metadata.extractors.subprocess.run", side_effect=error):
            with pytest.raises(MetadataExtractionError, match="exit code 1"):
                FFProbeExtractor(ffprobe_path="/usr/bin/ffprobe").extract_path(str(source))

    def test_unparseable_output(self, tmp_path):
        source = tmp_path / "broken.mp4"
        source.write_bytes(b"junk")

        with patch("ingest.metadata.extractors.subprocess.run", return_value=MagicMock(stdout="not json")):
            with pytest.raises(MetadataExtractionError, match="Failed to parse ffprobe output"):
                FFProbeExtractor(ffprobe_path="/usr/bin/ffprobe").extract_path(str(source))
