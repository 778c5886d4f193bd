"""
Tests for FFmpeg progress parsing.
"""

import pytest

from video_transcoder.executor import ProgressParser

BANNER = """ffmpeg version 6.0 Copyright (c) 2000-2023 the FFmpeg developers
Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'input.mp4':
  Duration: 00:02:30.00, start: 0.000000, bitrate: 5000 kb/s
    Stream #0:0(und): Video: h264, yuv420p, 1920x1080, 24 fps
"""


class TestParseLine:
    """Test single status lines."""

    def test_full_line(self):
        parser = ProgressParser(duration=100.0)
        record = parser.parse_line(
            "frame=  240 fps= 48.5 q=28.0 size=    1024kB time=00:00:10.00 "
            "bitrate= 838.9kbits/s speed=2.00x"
        )

        assert record is not None
        assert record.frame == 240
        assert record.fps == 48.5
        assert record.time == "00:00:10.00"
        assert record.time_seconds == 10.0
        assert record.bitrate == "838.9kbits/s"
        assert record.speed == 2.0
        assert record.percent == 10.0
        assert record.eta == 45.0

    def test_field_order_does_not_matter(self):
        parser = ProgressParser(duration=100.0)
        record = parser.parse_line("time=00:00:50.00 speed=1x frame=10")
        assert record.frame == 10
        assert record.percent == 50.0

    def test_requires_frame_and_time(self):
        parser = ProgressParser(duration=100.0)
        assert parser.parse_line("frame=  10 fps=25") is None
        assert parser.parse_line("size=1kB time=00:00:01.00") is None
        assert parser.parse_line("Stream mapping:") is None

    def test_no_duration_means_no_percent(self):
        parser = ProgressParser()
        record = parser.parse_line("frame=1 time=00:00:01.00 speed=1.0x")
        assert record.percent is None
        assert record.eta is None

    def test_bitrate_not_available(self):
        parser = ProgressParser()
        record = parser.parse_line("frame=1 time=00:00:00.00 bitrate=N/A speed=N/A")
        assert record.bitrate == "N/A"
        assert record.speed is None

    def test_percent_clamped(self):
        parser = ProgressParser(duration=10.0)
        record = parser.parse_line("frame=300 time=00:00:12.00 speed=1x")
        assert record.percent == 100.0
        assert record.eta == 0.0

    def test_percent_never_decreases(self):
        parser = ProgressParser(duration=100.0)
        first = parser.parse_line("frame=100 time=00:00:40.00")
        second = parser.parse_line("frame=101 time=00:00:30.00")
        assert first.percent == 40.0
        assert second.percent == 40.0

    def test_zero_duration_ignored(self):
        parser = ProgressParser(duration=0)
        assert parser.duration is None


class TestFeed:
    """Test chunked stderr consumption."""

    def test_duration_from_banner(self):
        parser = ProgressParser()
        parser.feed(BANNER)
        assert parser.duration == 150.0

        records = parser.feed("frame=  360 fps=24 time=00:00:15.00 bitrate=1000kbits/s speed=1x\r")
        assert len(records) == 1
        assert records[0].percent == 10.0

    def test_carriage_return_separated_records(self):
        parser = ProgressParser(duration=60.0)
        records = parser.feed(
            "frame=1 time=00:00:06.00 speed=1x\r"
            "frame=2 time=00:00:12.00 speed=1x\r"
            "frame=3 time=00:00:18.00 speed=1x\r"
        )
        assert [r.frame for r in records] == [1, 2, 3]
        assert [r.percent for r in records] == [10.0, 20.0, 30.0]

    def test_partial_line_is_buffered(self):
        parser = ProgressParser(duration=60.0)
        assert parser.feed("frame=  30 fps=30 ti") == []
        records = parser.feed("me=00:00:30.00 speed=1x\r")
        assert len(records) == 1
        assert records[0].percent == 50.0

    def test_flush_handles_unterminated_tail(self):
        parser = ProgressParser(duration=60.0)
        assert parser.feed("frame=60 time=00:01:00.00") == []
        records = parser.flush()
        assert len(records) == 1
        assert records[0].percent == 100.0
        assert parser.flush() == []

    def test_stderr_lines_are_kept(self):
        parser = ProgressParser()
        parser.feed("line one\r\n\r\nline two\n")
        assert parser.stderr_lines == ["line one", "line two"]
        assert parser.stderr_text == "line one\nline two"

    def test_stderr_history_is_bounded(self):
        parser = ProgressParser()
        parser.feed("".join(f"line {i}\n" for i in range(500)))
        lines = parser.stderr_lines
        assert len(lines) == 200
        assert lines[-1] == "line 499"

    @pytest.mark.parametrize("separator", ["\r", "\n", "\r\n"])
    def test_separators(self, separator):
        parser = ProgressParser(duration=10.0)
        records = parser.feed(f"frame=1 time=00:00:01.00{separator}")
        assert len(records) == 1
