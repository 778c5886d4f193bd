"""FFmpeg process execution and orchestration."""

from video_transcoder.executor.orchestrator import ProcessOrchestrator
from video_transcoder.executor.progress import ProgressParser
from video_transcoder.executor.subprocess import AsyncFFmpegProcess

__all__ = [
    "AsyncFFmpegProcess",
    "ProcessOrchestrator",
    "ProgressParser",
]
