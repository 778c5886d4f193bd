"""Utility functions, logging and exceptions."""

from video_transcoder.utils.errors import (
    CodecMismatchError,
    ConcurrencyLimitError,
    ConfigurationError,
    EmptyOutputError,
    InsufficientSpaceError,
    InvalidInputError,
    InvalidStateTransitionError,
    MemoryPressureError,
    ProbeError,
    ProbeParseError,
    ProcessCancelledError,
    ProcessExitError,
    ProcessSpawnError,
    ProcessTimeoutError,
    SchedulerShutdownError,
    TaskNotFoundError,
    TranscoderError,
    ValidationError,
)
from video_transcoder.utils.helpers import (
    ensure_directory,
    format_duration,
    format_size,
    generate_session_id,
    get_file_size,
    get_memory_usage_percent,
    parse_time_to_seconds,
)
from video_transcoder.utils.logger import (
    get_active_monitor,
    get_logger,
    log_performance,
    set_active_monitor,
    setup_logger,
)

__all__ = [
    # Errors
    "CodecMismatchError",
    "ConcurrencyLimitError",
    "ConfigurationError",
    "EmptyOutputError",
    "InsufficientSpaceError",
    "InvalidInputError",
    "InvalidStateTransitionError",
    "MemoryPressureError",
    "ProbeError",
    "ProbeParseError",
    "ProcessCancelledError",
    "ProcessExitError",
    "ProcessSpawnError",
    "ProcessTimeoutError",
    "SchedulerShutdownError",
    "TaskNotFoundError",
    "TranscoderError",
    "ValidationError",
    # Helpers
    "ensure_directory",
    "format_duration",
    "format_size",
    "generate_session_id",
    "get_file_size",
    "get_memory_usage_percent",
    "parse_time_to_seconds",
    # Logging
    "get_active_monitor",
    "get_logger",
    "log_performance",
    "set_active_monitor",
    "setup_logger",
]
