"""Output validation."""

from video_transcoder.validator.checker import (
    ResultValidator,
    compute_compression_ratio,
    compute_quality_score,
    expected_codec_family,
)

__all__ = [
    "ResultValidator",
    "compute_compression_ratio",
    "compute_quality_score",
    "expected_codec_family",
]
