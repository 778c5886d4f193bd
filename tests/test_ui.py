"""
Tests for the progress display and logging integration.
"""

import io
import logging
from pathlib import Path

import pytest
from rich.console import Console

from video_transcoder.models import TranscodingProgress, TranscodingResult
from video_transcoder.ui import ProgressDisplay, display_summary_table
from video_transcoder.utils import get_active_monitor, log_performance, setup_logger


@pytest.fixture
def console():
    """Console writing to memory."""
    return Console(file=io.StringIO(), width=120, record=True)


@pytest.fixture
def display(console):
    return ProgressDisplay(console=console)


def _result(task_id: str, skipped: bool = False) -> TranscodingResult:
    return TranscodingResult(
        task_id=task_id,
        success=True,
        output_path=Path("/out") / f"{task_id}.mp4",
        output_size=2048,
        skipped=skipped,
    )


def _fields(display: ProgressDisplay, index: int = 0):
    return display.progress.tasks[index]


class TestProgressDisplay:
    """Test ProgressDisplay listener hooks."""

    def test_lifecycle_counts(self, display):
        display.on_task_queued("a")
        display.on_task_queued("b")
        display.on_task_started("a")

        assert display.counts["queued"] == 1
        assert display.counts["active"] == 1

        display.on_task_completed("a", _result("a"))
        display.on_task_started("b")
        display.on_task_failed("b", "boom")

        assert display.counts == {
            "queued": 0,
            "active": 0,
            "completed": 1,
            "failed": 1,
            "cancelled": 0,
        }
        assert _fields(display, 0).completed == 100
        assert "failed" in _fields(display, 1).fields["status"]

    def test_retry_requeues(self, display):
        display.on_task_queued("a")
        display.on_task_started("a")
        display.on_task_retry("a")

        assert display.counts["active"] == 0
        assert display.counts["queued"] == 1
        assert _fields(display).completed == 0

    def test_skipped_task(self, display):
        display.on_task_completed("a", _result("a", skipped=True))

        assert display.counts["completed"] == 1
        assert display.counts["active"] == 0
        assert "skipped" in _fields(display).fields["status"]

    def test_cancelled(self, display):
        display.on_task_queued("a")
        display.on_task_cancelled("a")
        assert display.counts["cancelled"] == 1

    def test_progress_updates_bar(self, display):
        display.on_task_started("a")
        display.on_progress(
            "a",
            TranscodingProgress(
                frame=100,
                time="00:00:04.00",
                time_seconds=4.0,
                fps=25.0,
                speed=1.5,
                percent=40.0,
                eta=4.0,
            ),
        )

        task = _fields(display)
        assert task.completed == 40.0
        assert "1.50x" in task.fields["status"]
        assert "25 fps" in task.fields["status"]
        assert "ETA" in task.fields["status"]

    def test_progress_without_duration(self, display):
        display.on_progress(
            "a", TranscodingProgress(frame=1, time="00:00:01.00", time_seconds=1.0)
        )
        task = _fields(display)
        assert task.completed == 0
        assert task.fields["status"] == "00:00:01.00"

    def test_task_name(self, display):
        display.on_task_queued("task_1")
        display.set_task_name("task_1", "movie.mkv")
        display.set_task_name("task_2", "later.mkv")
        display.on_task_queued("task_2")

        assert [t.description for t in display.progress.tasks] == ["movie.mkv", "later.mkv"]

    def test_statistics_line(self, display):
        display.on_task_queued("a")
        display.on_task_completed("b", _result("b", skipped=True))

        stats = display._generate_statistics()

        assert "Queued: 1" in stats
        assert "Completed: 1" in stats
        assert "Failed" not in stats

    def test_live_routes_logs(self, display, console):
        logger = setup_logger("video_transcoder.test_ui", console=console)

        with display:
            assert get_active_monitor() is display
            logger.info("hello from the encoder")
            assert any("hello from the encoder" in line for line in display._log_lines)

        assert get_active_monitor() is None
        logger.handlers.clear()
        logger.propagate = True

    def test_log_lines_bounded(self, console):
        display = ProgressDisplay(console=console, max_log_lines=2)
        for i in range(5):
            display.add_log(f"line {i}")
        assert list(display._log_lines) == ["line 3", "line 4"]


def test_display_summary_table(console):
    display_summary_table("clip.mp4", [("Codec", "h264"), ("Resolution", "1920x1080")], console)

    text = console.export_text()
    assert "clip.mp4" in text
    assert "Codec" in text
    assert "1920x1080" in text


def test_setup_logger_file(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    logger = setup_logger("video_transcoder.test_file", level="DEBUG", log_file=log_file)

    logger.debug("written to disk")
    for handler in logger.handlers:
        handler.flush()

    assert "written to disk" in log_file.read_text()
    assert logger.level == logging.DEBUG

    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()


@pytest.mark.asyncio
async def test_log_performance_times_calls(caplog):
    logger = logging.getLogger("timing_test")

    @log_performance(logger)
    async def inspect_input():
        return "metadata"

    @log_performance(logger, level=logging.INFO)
    def validate_output():
        raise ValueError("empty output")

    with caplog.at_level(logging.DEBUG, logger="timing_test"):
        assert await inspect_input() == "metadata"
        with pytest.raises(ValueError):
            validate_output()

    first, second = caplog.records
    assert first.levelno == logging.DEBUG
    assert "inspect_input[/cyan] completed in" in first.getMessage()
    assert second.levelno == logging.INFO
    assert "validate_output[/red] failed after" in second.getMessage()
    assert "empty output" in second.getMessage()
