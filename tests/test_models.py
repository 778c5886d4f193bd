"""
Tests for data models.
"""

from pathlib import Path

import pytest

from video_transcoder.config import TranscodingConfig
from video_transcoder.models import (
    ALLOWED_TRANSITIONS,
    TaskStatus,
    TranscodingResult,
    TranscodingStats,
    TranscodingTask,
)
from video_transcoder.utils import InvalidStateTransitionError


@pytest.fixture
def task():
    """Create a pending task."""
    return TranscodingTask(
        input_path=Path("in.mkv"),
        output_path=Path("out.mp4"),
        config=TranscodingConfig(),
        max_retries=2,
    )


class TestTaskStatus:
    """Test the status state machine."""

    def test_terminal_statuses(self):
        assert TaskStatus.COMPLETED.is_terminal
        assert TaskStatus.FAILED.is_terminal
        assert TaskStatus.CANCELLED.is_terminal
        assert not TaskStatus.PENDING.is_terminal
        assert not TaskStatus.PROCESSING.is_terminal
        assert not TaskStatus.PAUSED.is_terminal

    def test_terminal_statuses_have_no_exits(self):
        for status in TaskStatus:
            if status.is_terminal:
                assert ALLOWED_TRANSITIONS[status] == frozenset()


class TestTranscodingTask:
    """Test TranscodingTask lifecycle."""

    def test_defaults(self, task):
        assert task.status == TaskStatus.PENDING
        assert task.task_id.startswith("task_")
        assert task.progress == 0.0
        assert task.retry_count == 0
        assert task.started_at is None

    def test_unique_ids(self):
        ids = {
            TranscodingTask(Path("a"), Path("b"), TranscodingConfig()).task_id for _ in range(50)
        }
        assert len(ids) == 50

    def test_happy_path(self, task):
        task.transition_to(TaskStatus.PROCESSING)
        assert task.started_at is not None

        task.transition_to(TaskStatus.PAUSED)
        task.transition_to(TaskStatus.PROCESSING)
        task.transition_to(TaskStatus.COMPLETED)

        assert task.is_terminal
        assert task.ended_at is not None
        assert task.duration is not None

    @pytest.mark.parametrize(
        "path",
        [
            [TaskStatus.COMPLETED],
            [TaskStatus.PAUSED],
            [TaskStatus.PROCESSING, TaskStatus.PENDING],
            [TaskStatus.PROCESSING, TaskStatus.PAUSED, TaskStatus.COMPLETED],
            [TaskStatus.PROCESSING, TaskStatus.PAUSED, TaskStatus.CANCELLED],
            [TaskStatus.CANCELLED, TaskStatus.PROCESSING],
        ],
    )
    def test_invalid_transitions(self, task, path):
        with pytest.raises(InvalidStateTransitionError):
            for status in path:
                task.transition_to(status)

    def test_progress_is_clamped_and_monotonic(self, task):
        assert task.update_progress(42.5) == 42.5
        assert task.update_progress(10.0) == 42.5
        assert task.update_progress(150.0) == 100.0
        assert task.update_progress(-5.0) == 100.0

    def test_reset_for_retry(self, task):
        task.transition_to(TaskStatus.PROCESSING)
        task.update_progress(60.0)
        task.transition_to(TaskStatus.FAILED)
        task.error = "boom"

        task.reset_for_retry()

        assert task.status == TaskStatus.PENDING
        assert task.retry_count == 1
        assert task.progress == 0.0
        assert task.error is None
        assert task.started_at is None
        assert task.ended_at is None

    def test_retry_budget(self, task):
        for _ in range(2):
            task.transition_to(TaskStatus.PROCESSING)
            task.transition_to(TaskStatus.FAILED)
            task.reset_for_retry()

        task.transition_to(TaskStatus.PROCESSING)
        task.transition_to(TaskStatus.FAILED)

        assert task.retry_count == 2
        assert not task.can_retry
        with pytest.raises(InvalidStateTransitionError, match="exhausted"):
            task.reset_for_retry()

    def test_reset_requires_failed(self, task):
        with pytest.raises(InvalidStateTransitionError, match="only failed"):
            task.reset_for_retry()


class TestTranscodingStats:
    """Test running statistics."""

    def test_empty(self):
        stats = TranscodingStats()
        assert stats.success_rate == 0.0

    def test_running_means(self):
        stats = TranscodingStats()
        for time_taken, ratio in [(10.0, 0.5), (20.0, 0.3), (30.0, 0.1)]:
            stats.record_completed(
                TranscodingResult(
                    task_id="t",
                    success=True,
                    output_path=Path("o"),
                    original_size=1000,
                    output_size=500,
                    processing_time=time_taken,
                    compression_ratio=ratio,
                )
            )
        stats.record_failed()
        stats.record_cancelled()
        stats.record_retry()

        assert stats.completed_tasks == 3
        assert stats.total_tasks == 5
        assert stats.retried_attempts == 1
        assert stats.average_processing_time == pytest.approx(20.0)
        assert stats.average_compression_ratio == pytest.approx(0.3)
        assert stats.total_input_bytes == 3000
        assert stats.success_rate == pytest.approx(0.6)

    def test_size_mb(self):
        result = TranscodingResult(
            task_id="t", success=True, output_path=Path("o"), output_size=3 * 1024 * 1024
        )
        assert result.size_mb == 3.0
