"""
Tests for helper functions.
"""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from video_transcoder.utils import (
    format_duration,
    format_size,
    generate_session_id,
    get_file_size,
    get_memory_usage_percent,
    parse_time_to_seconds,
)


class TestFormatting:
    """Test human-readable formatting."""

    @pytest.mark.parametrize(
        "size,expected",
        [(512, "512.0 B"), (1536, "1.5 KB"), (5 * 1024**3, "5.0 GB")],
    )
    def test_format_size(self, size, expected):
        assert format_size(size) == expected

    def test_format_duration(self):
        assert format_duration(5445.9) == "01:30:45"

    @pytest.mark.parametrize(
        "value,expected",
        [("01:02:03.50", 3723.5), ("02:03.25", 123.25), ("7.5", 7.5)],
    )
    def test_parse_time_to_seconds(self, value, expected):
        assert parse_time_to_seconds(value) == expected


def test_get_file_size(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"x" * 10)

    assert get_file_size(path) == 10
    assert get_file_size(tmp_path / "missing.mp4") == 0
    assert get_file_size(tmp_path) == 0


def test_generate_session_id():
    first = generate_session_id()
    second = generate_session_id("thumb")

    assert first.startswith("ffmpeg_")
    assert second.startswith("thumb_")
    assert first != generate_session_id()


def test_memory_usage_excludes_page_cache():
    """Usage comes from the available figure, which includes reclaimable cache."""
    reading = SimpleNamespace(total=16 * 1024**3, available=12 * 1024**3, free=1024**3, percent=25.0)

    with patch("video_transcoder.utils.helpers.psutil.virtual_memory", return_value=reading):
        assert get_memory_usage_percent() == 25.0


def test_memory_usage_is_a_percentage():
    assert 0.0 <= get_memory_usage_percent() <= 100.0
