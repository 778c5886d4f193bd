"""
Shared fixtures.
"""

import asyncio
from pathlib import Path
from typing import Optional

import pytest

from video_transcoder.models import VideoMetadata
from video_transcoder.utils import (
    ProcessCancelledError,
    ProcessExitError,
    ProcessSpawnError,
    ProcessTimeoutError,
)


def make_metadata(
    codec: str = "h264",
    width: int = 1920,
    height: int = 1080,
    duration: float = 60.0,
    bitrate: int = 4_000_000,
    fps: float = 30.0,
    file_size: int = 30_000_000,
    needs_transcoding: bool = False,
    profile: Optional[str] = "Main",
) -> VideoMetadata:
    """Build a VideoMetadata with sensible defaults."""
    return VideoMetadata(
        codec=codec,
        width=width,
        height=height,
        duration=duration,
        bitrate=bitrate,
        fps=fps,
        file_size=file_size,
        needs_transcoding=needs_transcoding,
        profile=profile,
    )


@pytest.fixture
def metadata_factory():
    """Factory for VideoMetadata."""
    return make_metadata


@pytest.fixture
def sample_ffprobe_output():
    """Sample ffprobe JSON output for an HEVC file."""
    return {
        "format": {
            "filename": "/path/to/video.mkv",
            "format_name": "matroska,webm",
            "duration": "120.5",
            "size": "10485760",
            "bit_rate": "696320",
        },
        "streams": [
            {
                "index": 0,
                "codec_type": "video",
                "codec_name": "hevc",
                "profile": "Main 10",
                "width": 3840,
                "height": 2160,
                "r_frame_rate": "30000/1001",
                "bit_rate": "600000",
                "pix_fmt": "yuv420p10le",
            },
            {
                "index": 1,
                "codec_type": "audio",
                "codec_name": "aac",
                "sample_rate": "48000",
                "channels": 2,
                "bit_rate": "128000",
                "tags": {"language": "eng"},
            },
            {
                "index": 2,
                "codec_type": "subtitle",
                "codec_name": "subrip",
                "tags": {"language": "eng", "title": "English"},
            },
        ],
    }


@pytest.fixture
def input_file(tmp_path):
    """A non-empty stand-in media file."""
    path = tmp_path / "input.mp4"
    path.write_bytes(b"\x00" * 4096)
    return path


class FakeFFmpegProcess:
    """
    Scripted stand-in for AsyncFFmpegProcess.

    Behaviors: "ok" writes the output file and exits 0, "empty" writes a
    zero-byte output, "fail" exits 1, "timeout" raises a timeout,
    "spawn_error" fails to start and "hang" waits until killed or released.
    """

    def __init__(
        self,
        command,
        timeout=None,
        progress_callback=None,
        duration=None,
        kill_grace_period=5.0,
        behavior="ok",
        progress=(),
    ):
        self.command = command
        self.timeout = timeout
        self.progress_callback = progress_callback
        self.duration = duration
        self.behavior = behavior
        self.progress = list(progress)
        self.pid = None
        self.returncode = None
        self.started = False
        self.paused = False
        self.cancelled = False
        self.released = asyncio.Event()

    @property
    def output_path(self) -> Path:
        return Path(self.command[-1])

    async def start(self):
        if self.behavior == "spawn_error":
            raise ProcessSpawnError("Failed to start ffmpeg: not found")
        self.started = True
        self.pid = 1000 + id(self) % 1000

    async def wait(self):
        for record in self.progress:
            if self.progress_callback:
                self.progress_callback(record)

        if self.behavior == "hang":
            await self.released.wait()

        if self.cancelled:
            self.returncode = -15
            raise ProcessCancelledError("Process was killed")

        if self.behavior == "fail":
            self.returncode = 1
            raise ProcessExitError(
                "FFmpeg failed with code 1: Conversion failed!",
                returncode=1,
                command=self.command,
                stderr="Conversion failed!",
            )

        if self.behavior == "timeout":
            raise ProcessTimeoutError("Process exceeded timeout", timeout=self.timeout or 0.0)

        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        size = 0 if self.behavior == "empty" else 2048
        self.output_path.write_bytes(b"\x00" * size)
        self.returncode = 0
        return ""

    def release(self):
        self.released.set()

    async def kill(self):
        self.cancelled = True
        self.released.set()

    def pause(self):
        if not self.started or self.paused or self.returncode is not None:
            return False
        self.paused = True
        return True

    def resume(self):
        if not self.paused:
            return False
        self.paused = False
        return True


class FakeProcessFactory:
    """Creates FakeFFmpegProcess objects, consuming queued behaviors in order."""

    def __init__(self, default: str = "ok"):
        self.default = default
        self.behaviors: list[str] = []
        self.progress = ()
        self.processes: list[FakeFFmpegProcess] = []

    def __call__(self, command, **kwargs):
        behavior = self.behaviors.pop(0) if self.behaviors else self.default
        process = FakeFFmpegProcess(command, behavior=behavior, progress=self.progress, **kwargs)
        self.processes.append(process)
        return process

    def running(self) -> list[FakeFFmpegProcess]:
        return [p for p in self.processes if p.started and p.returncode is None and not p.cancelled]

    def release_all(self):
        for process in self.processes:
            process.release()


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def process_factory():
    """Scripted FFmpeg process factory."""
    return FakeProcessFactory()


@pytest.fixture
def settle_loop():
    """Coroutine that yields to the event loop a few times."""
    return settle
