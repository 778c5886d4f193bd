"""
Logging for the transcoder.

Console output goes through Rich. While a ``ProgressDisplay`` owns the
terminal, package log records are diverted into its log panel so they do
not break the live progress bars.
"""

import inspect
import logging
import time
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, cast

from rich.console import Console
from rich.logging import RichHandler

F = TypeVar("F", bound=Callable[..., Any])

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# ProgressDisplay currently rendering, set by its __enter__/__exit__
_active_monitor: Optional[Any] = None


def set_active_monitor(monitor: Optional[Any]) -> None:
    """Register the live ``ProgressDisplay`` that receives log lines, or None."""
    global _active_monitor
    _active_monitor = monitor


def get_active_monitor() -> Optional[Any]:
    return _active_monitor


class MonitorIntegratedHandler(logging.Handler):
    """
    Route records to the live progress display when one is rendering.

    The display gets a one-line ``LEVEL: message`` entry in its log panel.
    With no display active, or if the display rejects the line, the record
    is printed by the wrapped RichHandler.
    """

    LEVEL_STYLES = {
        "DEBUG": "dim",
        "INFO": "cyan",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold red",
    }

    def __init__(self, rich_handler: RichHandler):
        super().__init__(rich_handler.level)
        self.rich_handler = rich_handler
        self.setFormatter(rich_handler.formatter)

    def panel_line(self, record: logging.LogRecord) -> str:
        style = self.LEVEL_STYLES.get(record.levelname, "white")
        return f"[{style}]{record.levelname}[/{style}]: {record.getMessage()}"

    def emit(self, record: logging.LogRecord) -> None:
        display = get_active_monitor()
        if display is None or not hasattr(display, "add_log"):
            self.rich_handler.emit(record)
            return

        try:
            display.add_log(self.panel_line(record))
        except Exception:
            self.rich_handler.emit(record)


def _file_handler(log_file: Path, level: int) -> logging.FileHandler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode="w")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logger(
    name: str = "video_transcoder",
    level: str = "INFO",
    log_file: Optional[Path] = None,
    verbose: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure the package logger.

    Called once by the CLI. Modules log through ``get_logger(__name__)`` and
    inherit these handlers.

    Args:
        name: Logger to configure
        level: Log level name, ignored when verbose is set
        log_file: Also write plain-text records here (truncated on start)
        verbose: DEBUG level, with source paths in console output
        console: Rich console for output (stderr if None)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)
    logger.handlers.clear()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        markup=True,
        show_time=True,
        show_path=verbose,
        omit_repeated_times=False,
        level=log_level,
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(MonitorIntegratedHandler(rich_handler))

    if log_file:
        logger.addHandler(_file_handler(log_file, log_level))

    logger.propagate = False
    return logger


def log_performance(
    logger: Optional[logging.Logger] = None, level: int = logging.DEBUG
) -> Callable[[F], F]:
    """
    Log how long the decorated call took.

    Used on the ffprobe-backed steps (input probing and output validation)
    so their cost shows up next to the encode timings in verbose runs.
    Works on plain and async functions; exceptions are logged and re-raised.

    Args:
        logger: Logger to write to (package logger if None)
        level: Level of the timing record
    """
    log = logger or logging.getLogger("video_transcoder")

    def report(name: str, start: float, error: Optional[Exception] = None) -> None:
        elapsed = time.time() - start
        if error is None:
            log.log(level, f"[cyan]{name}[/cyan] completed in {elapsed:.2f}s")
        else:
            log.log(level, f"[red]{name}[/red] failed after {elapsed:.2f}s: {error}")

    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start = time.time()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    report(func.__name__, start, e)
                    raise
                report(func.__name__, start)
                return result

            return cast(F, async_wrapper)

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(func.__name__, start, e)
                raise
            report(func.__name__, start)
            return result

        return cast(F, sync_wrapper)

    return decorator


def get_logger(name: str = "video_transcoder") -> logging.Logger:
    """
    Get a module logger.

    Names under ``video_transcoder.`` inherit the handlers installed by
    setup_logger().
    """
    return logging.getLogger(name)
