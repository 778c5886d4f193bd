"""
Data models for transcoding results.

This module contains dataclasses for progress events, terminal task results,
aggregate statistics and thumbnail outputs.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class TranscodingProgress:
    """One progress record parsed from FFmpeg stderr."""

    frame: int
    time: str
    time_seconds: float
    fps: Optional[float] = None
    bitrate: Optional[str] = None
    speed: Optional[float] = None
    percent: Optional[float] = None
    eta: Optional[float] = None  # Seconds remaining


@dataclass
class TranscodingResult:
    """Terminal outcome of a task."""

    task_id: str
    success: bool
    output_path: Path
    original_size: int = 0
    output_size: int = 0
    compression_ratio: float = 0.0
    processing_time: float = 0.0
    quality_score: Optional[int] = None
    error: Optional[str] = None
    retry_count: int = 0
    skipped: bool = False

    @property
    def size_mb(self) -> float:
        """Get output size in megabytes."""
        return self.output_size / (1024 * 1024)


@dataclass
class TranscodingStats:
    """Rolling statistics over finished tasks."""

    total_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    cancelled_tasks: int = 0
    retried_attempts: int = 0
    average_processing_time: float = 0.0
    average_compression_ratio: float = 0.0
    total_input_bytes: int = 0
    total_output_bytes: int = 0

    def record_completed(self, result: TranscodingResult) -> None:
        """Fold a successful result into the running means."""
        self.total_tasks += 1
        self.completed_tasks += 1
        n = self.completed_tasks
        self.average_processing_time += (result.processing_time - self.average_processing_time) / n
        self.average_compression_ratio += (
            result.compression_ratio - self.average_compression_ratio
        ) / n
        self.total_input_bytes += result.original_size
        self.total_output_bytes += result.output_size

    def record_failed(self) -> None:
        self.total_tasks += 1
        self.failed_tasks += 1

    def record_cancelled(self) -> None:
        self.total_tasks += 1
        self.cancelled_tasks += 1

    def record_retry(self) -> None:
        self.retried_attempts += 1

    @property
    def success_rate(self) -> float:
        """Fraction of finished tasks that completed."""
        if self.total_tasks == 0:
            return 0.0
        return self.completed_tasks / self.total_tasks


@dataclass
class ThumbnailOptions:
    """Options for frame extraction."""

    time: Optional[float] = None  # None -> min(10s, duration / 2)
    width: int = 320
    height: int = 240
    quality: int = 2
    format: str = "jpg"
    count: int = 1
    interval: Optional[float] = None  # None -> duration / (count + 1)


@dataclass
class ThumbnailResult:
    """Result of thumbnail generation."""

    paths: list[Path] = field(default_factory=list)
    width: int = 0
    height: int = 0
    format: str = "jpg"
    total_size: int = 0

    @property
    def count(self) -> int:
        """Number of generated images."""
        return len(self.paths)
