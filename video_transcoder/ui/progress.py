"""
Live progress display for scheduled transcodes.

``ProgressDisplay`` is a scheduler listener that renders one Rich progress bar
per task plus a scrolling log panel fed by the logging integration.
"""

from collections import deque
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from ..models import TranscodingProgress, TranscodingResult
from ..scheduler.events import TranscodingListener
from ..utils import format_duration, format_size, get_logger, set_active_monitor

logger = get_logger(__name__)


class ProgressDisplay(TranscodingListener):
    """
    Rich-based progress display driven by scheduler events.

    Provides:
    - A progress bar per task
    - Speed and ETA from FFmpeg progress records
    - Queue statistics in the panel subtitle
    - Log messages below the progress bars
    """

    def __init__(self, console: Optional[Console] = None, max_log_lines: int = 10):
        """
        Initialize progress display.

        Args:
            console: Rich console (creates new if None)
            max_log_lines: Number of log lines kept below the bars
        """
        self.console = console or Console()
        self.progress = self.create_progress()
        self._live: Optional[Live] = None
        self._rich_tasks: dict[str, TaskID] = {}
        self._names: dict[str, str] = {}
        self._log_lines: deque[str] = deque(maxlen=max_log_lines)
        self.counts = {"queued": 0, "active": 0, "completed": 0, "failed": 0, "cancelled": 0}

    def create_progress(self) -> Progress:
        """
        Create Rich progress display.

        Returns:
            Progress object with custom columns
        """
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=None),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            TextColumn("[cyan]{task.fields[status]}"),
            console=self.console,
            expand=True,
        )

    def start(self) -> None:
        """Start the live display and route logging into it."""
        self._live = Live(
            self._generate_layout(),
            console=self.console,
            refresh_per_second=4,
            transient=False,
        )
        self._live.start()
        set_active_monitor(self)

    def stop(self) -> None:
        """Stop the live display."""
        if self._live:
            self._live.update(self._generate_layout())
            self._live.stop()
            self._live = None
        set_active_monitor(None)

    def __enter__(self) -> "ProgressDisplay":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def set_task_name(self, task_id: str, name: str) -> None:
        """Set the label shown for a task."""
        self._names[task_id] = name
        if task_id in self._rich_tasks:
            self.progress.update(self._rich_tasks[task_id], description=name)

    def add_log(self, message: str) -> None:
        """
        Add a log message to display below progress bars.

        Args:
            message: Log message (Rich markup allowed)
        """
        self._log_lines.append(message)
        self._refresh()

    def _task(self, task_id: str) -> TaskID:
        if task_id not in self._rich_tasks:
            self._rich_tasks[task_id] = self.progress.add_task(
                self._names.get(task_id, task_id), total=100.0, status="queued"
            )
        return self._rich_tasks[task_id]

    def _refresh(self) -> None:
        if self._live:
            self._live.update(self._generate_layout())

    # Listener hooks

    def on_task_queued(self, task_id: str) -> None:
        self._task(task_id)
        self.counts["queued"] += 1
        self._refresh()

    def on_task_started(self, task_id: str) -> None:
        self.progress.update(self._task(task_id), status="starting")
        self.counts["queued"] = max(0, self.counts["queued"] - 1)
        self.counts["active"] += 1
        self._refresh()

    def on_progress(self, task_id: str, progress: TranscodingProgress) -> None:
        parts = []
        if progress.speed:
            parts.append(f"{progress.speed:.2f}x")
        if progress.fps:
            parts.append(f"{progress.fps:.0f} fps")
        if progress.eta is not None:
            parts.append(f"ETA {format_duration(progress.eta)}")

        fields = {"status": " ".join(parts) or progress.time}
        if progress.percent is not None:
            fields["completed"] = progress.percent
        self.progress.update(self._task(task_id), **fields)

    def on_task_retry(self, task_id: str) -> None:
        self.progress.update(self._task(task_id), completed=0, status="[yellow]retrying")
        self.counts["active"] = max(0, self.counts["active"] - 1)
        self.counts["queued"] += 1
        self._refresh()

    def on_task_completed(self, task_id: str, result: TranscodingResult) -> None:
        status = "[green]✓ skipped (copied)" if result.skipped else (
            f"[green]✓ {format_size(result.output_size)}"
        )
        self.progress.update(self._task(task_id), completed=100, status=status)
        if not result.skipped:
            self.counts["active"] = max(0, self.counts["active"] - 1)
        self.counts["completed"] += 1
        self._refresh()

    def on_task_failed(self, task_id: str, error: str) -> None:
        self.progress.update(self._task(task_id), status="[red]✗ failed")
        self.counts["active"] = max(0, self.counts["active"] - 1)
        self.counts["failed"] += 1
        self._refresh()

    def on_task_cancelled(self, task_id: str) -> None:
        self.progress.update(self._task(task_id), status="[dim]cancelled")
        self.counts["active"] = max(0, self.counts["active"] - 1)
        self.counts["cancelled"] += 1
        self._refresh()

    def on_shutdown(self) -> None:
        self._refresh()

    # Layout

    def _generate_statistics(self) -> str:
        labels = [
            ("queued", "dim"),
            ("active", "yellow"),
            ("completed", "green"),
            ("failed", "red"),
            ("cancelled", "dim"),
        ]
        parts = [
            f"[{style}]{name.capitalize()}: {self.counts[name]}[/{style}]"
            for name, style in labels
            if self.counts[name]
        ]
        return " | ".join(parts)

    def _generate_layout(self) -> Group:
        progress_panel = Panel(
            self.progress,
            title="[bold cyan]Transcoding Progress[/bold cyan]",
            subtitle=self._generate_statistics(),
            border_style="cyan",
        )

        if not self._log_lines:
            return Group(progress_panel)

        log_panel = Panel(
            Text.from_markup("\n".join(self._log_lines), overflow="fold"),
            title="[bold yellow]Logs[/bold yellow]",
            border_style="yellow",
            padding=(0, 1),
        )
        return Group(progress_panel, log_panel)


def display_summary_table(
    title: str,
    data: list[tuple[str, str]],
    console: Optional[Console] = None,
) -> None:
    """
    Display a summary table.

    Args:
        title: Table title
        data: List of (key, value) tuples
        console: Rich console (creates new if None)
    """
    console = console or Console()

    table = Table(title=title, show_header=False, box=None)
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    for key, value in data:
        table.add_row(key, value)

    console.print(table)
