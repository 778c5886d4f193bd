"""Media probing."""

from video_transcoder.inspector.prober import (
    SAFE_CODECS,
    VideoProber,
    needs_transcoding,
    parse_frame_rate,
)

__all__ = [
    "SAFE_CODECS",
    "VideoProber",
    "needs_transcoding",
    "parse_frame_rate",
]
