"""
Data models for media file information.

This module contains dataclasses describing a probed media file: the primary
video stream plus audio and subtitle stream descriptors.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class AudioStreamInfo:
    """Information about an audio stream."""

    index: int
    codec: str
    channels: int = 0
    sample_rate: int = 0
    bitrate: int = 0
    language: str = "und"

    @property
    def channel_layout_name(self) -> str:
        """Get common channel layout name."""
        layouts = {
            1: "mono",
            2: "stereo",
            6: "5.1",
            8: "7.1",
        }
        return layouts.get(self.channels, f"{self.channels}ch")


@dataclass(frozen=True)
class SubtitleStreamInfo:
    """Information about a subtitle stream."""

    index: int
    codec: str
    language: str = "und"
    title: Optional[str] = None


@dataclass(frozen=True)
class VideoMetadata:
    """Read-only snapshot of a probed media file."""

    codec: str
    width: int
    height: int
    duration: float
    bitrate: int
    fps: float
    file_size: int
    needs_transcoding: bool
    profile: Optional[str] = None
    format_name: Optional[str] = None
    pix_fmt: Optional[str] = None
    audio_streams: list[AudioStreamInfo] = field(default_factory=list)
    subtitle_streams: list[SubtitleStreamInfo] = field(default_factory=list)

    @property
    def resolution(self) -> str:
        """Get resolution as string (e.g., '1920x1080')."""
        return f"{self.width}x{self.height}"

    @property
    def aspect_ratio(self) -> float:
        """Calculate aspect ratio."""
        return self.width / self.height if self.height > 0 else 0.0

    @property
    def pixel_count(self) -> int:
        """Total pixels per frame."""
        return self.width * self.height

    @property
    def has_audio(self) -> bool:
        """Check if media has audio streams."""
        return len(self.audio_streams) > 0

    @property
    def has_subtitles(self) -> bool:
        """Check if media has subtitle streams."""
        return len(self.subtitle_streams) > 0
