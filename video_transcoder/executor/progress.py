"""
Incremental parser for FFmpeg stderr progress output.

FFmpeg rewrites its status line with carriage returns, so stderr arrives as
arbitrary chunks of ``\\r`` and ``\\n`` separated text. The parser keeps the
unterminated tail between feeds and extracts each field with its own pattern,
so the order of fields on a line does not matter.
"""

import re
from typing import Optional

from ..models import TranscodingProgress
from ..utils import parse_time_to_seconds

DURATION_PATTERN = re.compile(r"Duration:\s*(\d+:\d{2}:\d{2}(?:\.\d+)?)")
FRAME_PATTERN = re.compile(r"frame=\s*(\d+)")
FPS_PATTERN = re.compile(r"fps=\s*(\d+(?:\.\d+)?)")
BITRATE_PATTERN = re.compile(r"bitrate=\s*(N/A|\d+(?:\.\d+)?\s*\w+/s)")
TIME_PATTERN = re.compile(r"time=\s*(-?\d+:\d{2}:\d{2}(?:\.\d+)?)")
SPEED_PATTERN = re.compile(r"speed=\s*(\d+(?:\.\d+)?)x")

LINE_SPLIT = re.compile(r"[\r\n]")

# Lines kept for error reporting
MAX_STDERR_LINES = 200


class ProgressParser:
    """
    Line-buffered scanner for FFmpeg progress records.

    A record is produced only for lines carrying both ``frame=`` and
    ``time=``. Percent requires a known duration, either passed in or read
    from the ``Duration:`` banner, and never decreases.
    """

    def __init__(self, duration: Optional[float] = None):
        """
        Initialize parser.

        Args:
            duration: Media duration in seconds, if already known
        """
        self.duration: Optional[float] = duration if duration and duration > 0 else None
        self._buffer = ""
        self._last_percent = 0.0
        self._lines: list[str] = []

    def feed(self, chunk: str) -> list[TranscodingProgress]:
        """
        Consume a chunk of stderr text.

        Args:
            chunk: Decoded stderr data, possibly ending mid-line

        Returns:
            Progress records completed by this chunk, in order
        """
        self._buffer += chunk
        parts = LINE_SPLIT.split(self._buffer)
        self._buffer = parts.pop()

        records = []
        for line in parts:
            record = self._process_line(line)
            if record is not None:
                records.append(record)
        return records

    def flush(self) -> list[TranscodingProgress]:
        """Process whatever is left in the buffer at end of stream."""
        remaining, self._buffer = self._buffer, ""
        record = self._process_line(remaining)
        return [record] if record is not None else []

    def _process_line(self, line: str) -> Optional[TranscodingProgress]:
        line = line.strip()
        if not line:
            return None

        self._lines.append(line)
        if len(self._lines) > MAX_STDERR_LINES:
            del self._lines[0]

        if self.duration is None:
            duration_match = DURATION_PATTERN.search(line)
            if duration_match:
                duration = parse_time_to_seconds(duration_match.group(1))
                if duration > 0:
                    self.duration = duration

        return self.parse_line(line)

    def parse_line(self, line: str) -> Optional[TranscodingProgress]:
        """
        Parse one complete status line.

        Returns:
            Progress record, or None if frame or time is missing
        """
        frame_match = FRAME_PATTERN.search(line)
        time_match = TIME_PATTERN.search(line)
        if not frame_match or not time_match:
            return None

        time_str = time_match.group(1)
        time_seconds = max(0.0, parse_time_to_seconds(time_str))

        fps_match = FPS_PATTERN.search(line)
        bitrate_match = BITRATE_PATTERN.search(line)
        speed_match = SPEED_PATTERN.search(line)

        fps = float(fps_match.group(1)) if fps_match else None
        bitrate = bitrate_match.group(1).replace(" ", "") if bitrate_match else None
        speed = float(speed_match.group(1)) if speed_match else None

        percent: Optional[float] = None
        eta: Optional[float] = None
        if self.duration:
            raw = time_seconds / self.duration * 100
            self._last_percent = max(self._last_percent, min(100.0, max(0.0, raw)))
            percent = round(self._last_percent, 2)

            if speed and speed > 0:
                eta = max(0.0, self.duration - time_seconds) / speed

        return TranscodingProgress(
            frame=int(frame_match.group(1)),
            time=time_str,
            time_seconds=time_seconds,
            fps=fps,
            bitrate=bitrate,
            speed=speed,
            percent=percent,
            eta=eta,
        )

    @property
    def stderr_lines(self) -> list[str]:
        """Recent non-empty stderr lines."""
        return self._lines.copy()

    @property
    def stderr_text(self) -> str:
        """Recent stderr as a single string."""
        return "\n".join(self._lines)
