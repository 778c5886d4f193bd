"""Data models for the video transcoder."""

from video_transcoder.models.media import (
    AudioStreamInfo,
    SubtitleStreamInfo,
    VideoMetadata,
)
from video_transcoder.models.results import (
    ThumbnailOptions,
    ThumbnailResult,
    TranscodingProgress,
    TranscodingResult,
    TranscodingStats,
)
from video_transcoder.models.tasks import (
    ALLOWED_TRANSITIONS,
    ProcessInfo,
    ProcessStatus,
    TaskOptions,
    TaskStatus,
    TranscodingTask,
)

__all__ = [
    # Media models
    "AudioStreamInfo",
    "SubtitleStreamInfo",
    "VideoMetadata",
    # Task models
    "ALLOWED_TRANSITIONS",
    "ProcessInfo",
    "ProcessStatus",
    "TaskOptions",
    "TaskStatus",
    "TranscodingTask",
    # Result models
    "ThumbnailOptions",
    "ThumbnailResult",
    "TranscodingProgress",
    "TranscodingResult",
    "TranscodingStats",
]
