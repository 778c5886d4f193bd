"""Thumbnail and preview generation."""

from video_transcoder.thumbnails.generator import ThumbnailGenerator, calculate_thumbnail_size

__all__ = [
    "ThumbnailGenerator",
    "calculate_thumbnail_size",
]
