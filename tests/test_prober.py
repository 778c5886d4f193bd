"""
Tests for media probing.
"""

import json
from collections import namedtuple
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from video_transcoder.inspector import VideoProber, needs_transcoding, parse_frame_rate
from video_transcoder.utils import (
    InsufficientSpaceError,
    InvalidInputError,
    ProbeError,
    ProbeParseError,
)

DiskUsage = namedtuple("DiskUsage", ["total", "used", "free"])


@pytest.fixture
def prober():
    """Create prober instance."""
    return VideoProber()


def _mock_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0):
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    return process


class TestParseFrameRate:
    """Test frame rate parsing."""

    def test_fraction(self):
        assert parse_frame_rate("30000/1001") == 29.97
        assert parse_frame_rate("25/1") == 25.0

    def test_plain_number(self):
        assert parse_frame_rate("24") == 24.0

    def test_zero_denominator(self):
        assert parse_frame_rate("30/0") == 30.0

    def test_garbage(self):
        assert parse_frame_rate("abc") == 30.0
        assert parse_frame_rate("") == 30.0
        assert parse_frame_rate(None) == 30.0

    def test_static_wrapper(self):
        assert VideoProber.parse_frame_rate("60/1") == 60.0


class TestNeedsTranscoding:
    """Test the compatibility verdict."""

    def test_hevc_always_transcoded(self):
        assert needs_transcoding("hevc", "Main")
        assert needs_transcoding("h265")

    @pytest.mark.parametrize("profile", ["Baseline", "Constrained Baseline", "Main"])
    def test_h264_safe_profiles(self, profile):
        assert not needs_transcoding("h264", profile)

    @pytest.mark.parametrize("profile", ["High", "High 10", None])
    def test_h264_other_profiles(self, profile):
        assert needs_transcoding("h264", profile)

    @pytest.mark.parametrize("codec", ["vp8", "vp9", "av1"])
    def test_web_codecs_kept(self, codec):
        assert not needs_transcoding(codec)

    def test_unknown_codec(self):
        assert needs_transcoding("mpeg2video")
        assert needs_transcoding("prores")


class TestValidateInput:
    """Test source file checks."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidInputError, match="File not found"):
            VideoProber.validate_input(tmp_path / "missing.mp4")

    def test_directory(self, tmp_path):
        with pytest.raises(InvalidInputError, match="Not a file"):
            VideoProber.validate_input(tmp_path)

    def test_empty_file(self, tmp_path):
        empty = tmp_path / "empty.mp4"
        empty.touch()
        with pytest.raises(InvalidInputError, match="empty"):
            VideoProber.validate_input(empty)

    def test_invalid_input_is_probe_error(self, tmp_path):
        with pytest.raises(ProbeError):
            VideoProber.validate_input(tmp_path / "missing.mp4")


class TestProbe:
    """Test VideoProber.probe."""

    def test_initialization(self):
        assert VideoProber()._ffprobe_path == "ffprobe"
        assert VideoProber("/usr/bin/ffprobe")._ffprobe_path == "/usr/bin/ffprobe"

    @pytest.mark.asyncio
    async def test_probe_success(self, prober, input_file, sample_ffprobe_output):
        process = _mock_process(stdout=json.dumps(sample_ffprobe_output).encode())

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as mock_exec:
            metadata = await prober.probe(input_file)

        args = mock_exec.call_args[0]
        assert args[0] == "ffprobe"
        assert "-show_streams" in args
        assert args[-1] == str(input_file)

        assert metadata.codec == "hevc"
        assert metadata.profile == "Main 10"
        assert metadata.width == 3840
        assert metadata.height == 2160
        assert metadata.fps == 29.97
        assert metadata.duration == 120.5
        assert metadata.bitrate == 696320
        assert metadata.file_size == 10485760
        assert metadata.format_name == "matroska,webm"
        assert metadata.needs_transcoding
        assert len(metadata.audio_streams) == 1
        assert metadata.audio_streams[0].language == "eng"
        assert metadata.audio_streams[0].channel_layout_name == "stereo"
        assert len(metadata.subtitle_streams) == 1
        assert metadata.subtitle_streams[0].title == "English"

    @pytest.mark.asyncio
    async def test_probe_nonzero_exit(self, prober, input_file):
        process = _mock_process(stderr=b"Invalid data found", returncode=1)

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(ProbeError, match="Invalid data found"):
                await prober.probe(input_file)

    @pytest.mark.asyncio
    async def test_probe_invalid_json(self, prober, input_file):
        process = _mock_process(stdout=b"not json")

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(ProbeParseError):
                await prober.probe(input_file)

    @pytest.mark.asyncio
    async def test_probe_missing_binary(self, input_file):
        prober = VideoProber("/nonexistent/ffprobe")

        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError("no such file")),
        ):
            with pytest.raises(ProbeError, match="execution failed"):
                await prober.probe(input_file)

    @pytest.mark.asyncio
    async def test_probe_missing_file_never_spawns(self, prober, tmp_path):
        with patch("asyncio.create_subprocess_exec", AsyncMock()) as mock_exec:
            with pytest.raises(InvalidInputError):
                await prober.probe(tmp_path / "missing.mp4")
        mock_exec.assert_not_called()


class TestParseProbeData:
    """Test JSON to metadata conversion."""

    def test_no_video_stream(self, prober):
        data = {"format": {}, "streams": [{"codec_type": "audio", "codec_name": "aac"}]}
        with pytest.raises(ProbeParseError, match="No video stream"):
            prober.parse_probe_data(data)

    def test_bitrate_falls_back_to_stream(self, prober, sample_ffprobe_output):
        del sample_ffprobe_output["format"]["bit_rate"]
        metadata = prober.parse_probe_data(sample_ffprobe_output)
        assert metadata.bitrate == 600000

    def test_size_falls_back_to_file(self, prober, input_file, sample_ffprobe_output):
        del sample_ffprobe_output["format"]["size"]
        metadata = prober.parse_probe_data(sample_ffprobe_output, input_file)
        assert metadata.file_size == 4096

    def test_missing_fields_default(self, prober):
        data = {"streams": [{"codec_type": "video", "codec_name": "VP9"}]}
        metadata = prober.parse_probe_data(data)
        assert metadata.codec == "vp9"
        assert metadata.width == 0
        assert metadata.duration == 0.0
        assert metadata.fps == 30.0
        assert not metadata.needs_transcoding
        assert not metadata.has_audio

    def test_needs_transcoding_wrapper(self, prober, sample_ffprobe_output):
        metadata = prober.parse_probe_data(sample_ffprobe_output)
        assert VideoProber.needs_transcoding(metadata)


class TestDiskSpace:
    """Test free space checks."""

    def test_enough_space(self, tmp_path):
        with patch("shutil.disk_usage", return_value=DiskUsage(0, 0, 10 * 1024**3)):
            VideoProber.check_disk_space(tmp_path, 1024**3)

    def test_insufficient_space(self, tmp_path):
        # 1 GiB input needs 1.5 GiB + 1 GiB
        with patch("shutil.disk_usage", return_value=DiskUsage(0, 0, 2 * 1024**3)):
            with pytest.raises(InsufficientSpaceError) as exc_info:
                VideoProber.check_disk_space(tmp_path, 1024**3)

        assert exc_info.value.required == int(1.5 * 1024**3) + 1024**3
        assert exc_info.value.available == 2 * 1024**3

    def test_walks_up_to_existing_parent(self, tmp_path):
        with patch("shutil.disk_usage", return_value=DiskUsage(0, 0, 10 * 1024**3)) as usage:
            VideoProber.check_disk_space(tmp_path / "a" / "b", 100)
        assert usage.call_args[0][0] == tmp_path

    def test_query_failure_is_warning(self, tmp_path):
        with patch("shutil.disk_usage", side_effect=OSError("unsupported")):
            VideoProber.check_disk_space(tmp_path, 1024**3)


class TestAvailability:
    """Test ffprobe availability check."""

    @pytest.mark.asyncio
    async def test_available(self, prober):
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=_mock_process())):
            assert await prober.is_available()

    @pytest.mark.asyncio
    async def test_not_available(self, prober):
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError())):
            assert not await prober.is_available()
