"""
Data models for transcoding tasks.

This module contains the task entity owned by the scheduler, its status state
machine, the per-submission options and the process registry snapshot exposed
by the orchestrator.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from video_transcoder.config.models import TranscodingConfig
from video_transcoder.models.media import VideoMetadata
from video_transcoder.models.results import TranscodingProgress
from video_transcoder.utils import InvalidStateTransitionError


class TaskStatus(Enum):
    """Status of a transcoding task."""

    PENDING = "pending"
    PROCESSING = "processing"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transitions are expected."""
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED)


# FAILED -> PENDING is only reachable through TranscodingTask.reset_for_retry()
ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.PROCESSING, TaskStatus.CANCELLED}),
    TaskStatus.PROCESSING: frozenset(
        {
            TaskStatus.PAUSED,
            TaskStatus.COMPLETED,
            TaskStatus.FAILED,
            TaskStatus.CANCELLED,
        }
    ),
    TaskStatus.PAUSED: frozenset({TaskStatus.PROCESSING}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class TaskOptions:
    """Per-submission options."""

    priority: int = 0
    max_retries: Optional[int] = None  # None -> execution.max_retries
    force_transcode: bool = False


@dataclass
class TranscodingTask:
    """A request to produce one output file from one input file."""

    input_path: Path
    output_path: Path
    config: TranscodingConfig
    priority: int = 0
    max_retries: int = 3
    task_id: str = field(default_factory=lambda: f"task_{uuid.uuid4().hex[:12]}")
    status: TaskStatus = TaskStatus.PENDING
    progress: float = 0.0
    retry_count: int = 0
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    error: Optional[str] = None
    input_metadata: Optional[VideoMetadata] = None
    output_metadata: Optional[VideoMetadata] = None
    latest_progress: Optional[TranscodingProgress] = None

    def transition_to(self, status: TaskStatus) -> None:
        """
        Move the task to a new status.

        Args:
            status: Target status

        Raises:
            InvalidStateTransitionError: If the state machine forbids the move
        """
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStateTransitionError(
                f"Task {self.task_id}: cannot transition from "
                f"{self.status.value} to {status.value}"
            )

        self.status = status
        now = time.time()
        if status == TaskStatus.PROCESSING and self.started_at is None:
            self.started_at = now
        elif status.is_terminal:
            self.ended_at = now

    def update_progress(self, percent: float) -> float:
        """
        Update progress, clamped to [0, 100] and never decreasing.

        Returns:
            The stored progress value
        """
        clamped = max(0.0, min(100.0, percent))
        if clamped > self.progress:
            self.progress = clamped
        return self.progress

    def reset_for_retry(self) -> None:
        """
        Return a failed task to pending for another attempt.

        Raises:
            InvalidStateTransitionError: If the task is not failed or has no
                retry budget left
        """
        if self.status != TaskStatus.FAILED:
            raise InvalidStateTransitionError(
                f"Task {self.task_id}: only failed tasks can be retried "
                f"(status is {self.status.value})"
            )
        if not self.can_retry:
            raise InvalidStateTransitionError(
                f"Task {self.task_id}: retry budget exhausted ({self.max_retries})"
            )

        self.retry_count += 1
        self.status = TaskStatus.PENDING
        self.started_at = None
        self.ended_at = None
        self.error = None
        self.progress = 0.0
        self.latest_progress = None

    @property
    def can_retry(self) -> bool:
        """Check if another attempt is allowed."""
        return self.retry_count < self.max_retries

    @property
    def is_terminal(self) -> bool:
        """Check if task reached a terminal status."""
        return self.status.is_terminal

    @property
    def duration(self) -> Optional[float]:
        """Calculate task duration if it has ended."""
        if self.started_at and self.ended_at:
            return self.ended_at - self.started_at
        return None


class ProcessStatus(Enum):
    """Status of an orchestrated FFmpeg process."""

    STARTING = "starting"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    KILLED = "killed"


@dataclass
class ProcessInfo:
    """Snapshot of one orchestrated process."""

    session_id: str
    command: list[str]
    status: ProcessStatus = ProcessStatus.STARTING
    pid: Optional[int] = None
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    input_path: Optional[str] = None
    output_path: Optional[str] = None
    progress: Optional[TranscodingProgress] = None
    error: Optional[str] = None

    @property
    def elapsed(self) -> float:
        """Seconds since start (or until end)."""
        return (self.end_time or time.time()) - self.start_time
