"""
Helper functions for the video transcoder.

This module contains utility functions used throughout the application.
"""

import time
import uuid
from pathlib import Path

import psutil


def format_size(bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 GB")
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(bytes) < 1024.0:
            return f"{bytes:.1f} {unit}"
        bytes /= 1024.0  # type: ignore
    return f"{bytes:.1f} PB"


def format_duration(seconds: float) -> str:
    """
    Format duration as HH:MM:SS.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string (e.g., "01:30:45")
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def parse_time_to_seconds(time_str: str) -> float:
    """
    Parse time string to seconds.

    Supports formats:
    - HH:MM:SS.mmm
    - MM:SS.mmm
    - SS.mmm

    Args:
        time_str: Time string to parse

    Returns:
        Time in seconds
    """
    parts = time_str.split(":")
    if len(parts) == 3:
        hours, minutes, seconds = parts
        return float(hours) * 3600 + float(minutes) * 60 + float(seconds)
    elif len(parts) == 2:
        minutes, seconds = parts
        return float(minutes) * 60 + float(seconds)
    else:
        return float(parts[0])


def ensure_directory(path: Path) -> Path:
    """
    Ensure directory exists, create if it doesn't.

    Args:
        path: Directory path

    Returns:
        Resolved directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path.resolve()


def get_file_size(path: Path) -> int:
    """
    Get file size in bytes.

    Args:
        path: File path

    Returns:
        File size in bytes, 0 if file doesn't exist
    """
    if path.exists() and path.is_file():
        return path.stat().st_size
    return 0


def generate_session_id(prefix: str = "ffmpeg") -> str:
    """Generate a unique process session id, e.g. ``ffmpeg_1718000000000_3f9a1c2b0``."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def get_memory_usage_percent() -> float:
    """
    Get system memory usage as a percentage.

    Reclaimable page cache counts as available.

    Returns:
        Memory in use, 0.0 to 100.0
    """
    return psutil.virtual_memory().percent
