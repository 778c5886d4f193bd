"""
Configuration models using Pydantic.

This module defines the service settings and the per-task transcoding
configuration.
"""

import re
import tempfile
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_OUTPUT_FORMATS = ["mp4", "webm", "mov", "mkv", "avi"]

BITRATE_PATTERN = re.compile(r"^\d+(\.\d+)?[kKmMgG]?$")


class QualityTier(str, Enum):
    """Encoding quality tier."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ULTRA = "ultra"


def _validate_bitrate(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not BITRATE_PATTERN.match(v):
        raise ValueError("bitrate must look like 128k, 4M or 2500000")
    return v


class TranscodingConfig(BaseModel):
    """Desired output of a single transcoding task. Immutable."""

    model_config = ConfigDict(frozen=True)

    output_format: str = Field(default="mp4", description="Output container")
    video_codec: str = Field(default="libx264", description="FFmpeg video encoder")
    audio_codec: str = Field(default="aac", description="FFmpeg audio encoder")
    quality: QualityTier = Field(default=QualityTier.MEDIUM, description="Quality tier")
    max_width: Optional[int] = Field(default=1920, ge=2, description="Maximum output width")
    max_height: Optional[int] = Field(default=1080, ge=2, description="Maximum output height")
    video_bitrate: Optional[str] = Field(default=None, description="Video bitrate cap, e.g. 4M")
    audio_bitrate: Optional[str] = Field(default="128k", description="Audio bitrate")
    max_frame_rate: Optional[float] = Field(default=None, gt=0, description="Frame rate cap")
    hardware_acceleration: bool = Field(default=False, description="Request hardware decoding")
    extra_args: tuple[str, ...] = Field(default=(), description="Passthrough FFmpeg arguments")

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate output container."""
        if v.lower() not in SUPPORTED_OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of {SUPPORTED_OUTPUT_FORMATS}")
        return v.lower()

    @field_validator("video_bitrate", "audio_bitrate")
    @classmethod
    def validate_bitrate(cls, v: Optional[str]) -> Optional[str]:
        """Validate bitrate strings."""
        return _validate_bitrate(v)


class ExecutionSettings(BaseModel):
    """Process execution and scheduling settings."""

    max_concurrent_tasks: int = Field(
        default=2, ge=1, le=32, description="Tasks allowed to be processing at once"
    )
    max_concurrent_processes: int = Field(
        default=3, ge=1, le=64, description="FFmpeg processes allowed at once (tasks + thumbnails)"
    )
    process_timeout: float = Field(
        default=300.0, gt=0, description="Wall-clock timeout per FFmpeg process in seconds"
    )
    kill_grace_period: float = Field(
        default=5.0, ge=0, description="Seconds between SIGTERM and SIGKILL"
    )
    memory_threshold: float = Field(
        default=96.0, gt=0, le=100, description="Refuse new processes above this memory usage %"
    )
    max_retries: int = Field(default=3, ge=0, le=10, description="Default retries per task")
    temp_dir: Path = Field(
        default=Path(tempfile.gettempdir()) / "video-processing",
        description="Directory for temporary files",
    )
    ffmpeg_path: str = Field(default="ffmpeg", description="FFmpeg executable")
    ffprobe_path: str = Field(default="ffprobe", description="FFprobe executable")


class DefaultsSettings(BaseModel):
    """Defaults applied to tasks submitted without an explicit config."""

    quality: QualityTier = Field(default=QualityTier.MEDIUM)
    video_codec: str = Field(default="libx264")
    audio_codec: str = Field(default="aac")
    output_format: str = Field(default="mp4")
    max_width: Optional[int] = Field(default=1920, ge=2)
    max_height: Optional[int] = Field(default=1080, ge=2)

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate output container."""
        if v.lower() not in SUPPORTED_OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of {SUPPORTED_OUTPUT_FORMATS}")
        return v.lower()

    def to_transcoding_config(self, **overrides) -> TranscodingConfig:
        """Build a task config from these defaults."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return TranscodingConfig(**values)


class ThumbnailSettings(BaseModel):
    """Thumbnail generation defaults."""

    time: float = Field(default=10.0, ge=0, description="Seconds into the video")
    width: int = Field(default=320, ge=16, le=3840, description="Thumbnail width")
    height: int = Field(default=240, ge=16, le=2160, description="Thumbnail height")
    quality: int = Field(default=2, ge=1, le=31, description="JPEG quality (1-31, lower is better)")
    format: str = Field(default="jpg", description="Image format")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate image format."""
        valid_formats = ["jpg", "png", "webp"]
        if v.lower() not in valid_formats:
            raise ValueError(f"format must be one of {valid_formats}")
        return v.lower()


class TranscoderSettings(BaseModel):
    """Main transcoder configuration."""

    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    defaults: DefaultsSettings = Field(default_factory=DefaultsSettings)
    thumbnails: ThumbnailSettings = Field(default_factory=ThumbnailSettings)

    @classmethod
    def create_default(cls) -> "TranscoderSettings":
        """Create default configuration."""
        return cls()
