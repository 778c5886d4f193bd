"""Configuration management for the video transcoder."""

from video_transcoder.config.manager import ConfigManager
from video_transcoder.config.models import (
    SUPPORTED_OUTPUT_FORMATS,
    DefaultsSettings,
    ExecutionSettings,
    QualityTier,
    ThumbnailSettings,
    TranscoderSettings,
    TranscodingConfig,
)

__all__ = [
    # Manager
    "ConfigManager",
    # Models
    "SUPPORTED_OUTPUT_FORMATS",
    "DefaultsSettings",
    "ExecutionSettings",
    "QualityTier",
    "ThumbnailSettings",
    "TranscoderSettings",
    "TranscodingConfig",
]
