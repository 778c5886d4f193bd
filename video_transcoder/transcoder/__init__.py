"""FFmpeg command construction."""

from video_transcoder.transcoder.command import (
    QUALITY_PRESETS,
    FFmpegCommandBuilder,
    TranscodeCommandBuilder,
    calculate_output_resolution,
)

__all__ = [
    "QUALITY_PRESETS",
    "FFmpegCommandBuilder",
    "TranscodeCommandBuilder",
    "calculate_output_resolution",
]
