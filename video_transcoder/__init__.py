"""
Video Transcoder

Queues FFmpeg transcoding jobs, runs them under concurrency and memory limits,
validates the outputs and reports progress.
"""

__version__ = "0.1.0"

from video_transcoder.config import ConfigManager, TranscoderSettings, TranscodingConfig
from video_transcoder.executor import ProcessOrchestrator
from video_transcoder.inspector import VideoProber
from video_transcoder.models import (
    TaskOptions,
    TaskStatus,
    TranscodingResult,
    TranscodingTask,
    VideoMetadata,
)
from video_transcoder.scheduler import TranscodingListener, TranscodingScheduler
from video_transcoder.utils import (
    ConfigurationError,
    TranscoderError,
    get_logger,
    setup_logger,
)

__all__ = [
    "__version__",
    # Core
    "ProcessOrchestrator",
    "TranscodingScheduler",
    "TranscodingListener",
    "VideoProber",
    # Config
    "ConfigManager",
    "TranscoderSettings",
    "TranscodingConfig",
    # Models
    "TaskOptions",
    "TaskStatus",
    "TranscodingResult",
    "TranscodingTask",
    "VideoMetadata",
    # Utils
    "ConfigurationError",
    "TranscoderError",
    "get_logger",
    "setup_logger",
]
