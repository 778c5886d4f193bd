"""
Custom exceptions for the video transcoder.

This module defines the exception hierarchy used throughout the application.
Errors raised while submitting a task propagate to the caller; errors raised
while a task executes are captured on the task and drive the retry decision.
"""

from typing import Optional


class TranscoderError(Exception):
    """Base exception for all transcoder errors."""

    pass


class ConfigurationError(TranscoderError):
    """Configuration is invalid or missing."""

    pass


class ProbeError(TranscoderError):
    """Failed to probe a media file."""

    pass


class InvalidInputError(ProbeError):
    """Source file is missing, empty or unreadable."""

    pass


class ProbeParseError(ProbeError):
    """FFprobe output could not be parsed."""

    pass


class InsufficientSpaceError(TranscoderError):
    """Not enough free disk space for the output."""

    def __init__(self, message: str, required: int, available: int):
        """
        Initialize disk space error.

        Args:
            message: Error message
            required: Bytes required
            available: Bytes available
        """
        super().__init__(message)
        self.required = required
        self.available = available


class ConcurrencyLimitError(TranscoderError):
    """Maximum number of concurrent processes reached."""

    def __init__(self, message: str, limit: int):
        super().__init__(message)
        self.limit = limit


class MemoryPressureError(TranscoderError):
    """Memory usage is above the safety threshold."""

    def __init__(self, message: str, usage: float, threshold: float):
        super().__init__(message)
        self.usage = usage
        self.threshold = threshold


class ProcessSpawnError(TranscoderError):
    """External process could not be started."""

    pass


class ProcessExitError(TranscoderError):
    """External process exited with a non-zero code."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        command: list[str] | None = None,
        stderr: str | None = None,
    ):
        """
        Initialize process exit error with command details.

        Args:
            message: Error message
            returncode: Process exit code
            command: Command that failed
            stderr: Captured diagnostic output
        """
        super().__init__(message)
        self.returncode = returncode
        self.command = command
        self.stderr = stderr


class ProcessTimeoutError(TranscoderError):
    """Process exceeded timeout threshold."""

    def __init__(self, message: str, timeout: float):
        """
        Initialize timeout error.

        Args:
            message: Error message
            timeout: Timeout value in seconds
        """
        super().__init__(message)
        self.timeout = timeout


class ProcessCancelledError(TranscoderError):
    """Process was killed on request."""

    pass


class ValidationError(TranscoderError):
    """Output validation failed."""

    pass


class EmptyOutputError(ValidationError):
    """Output file is missing or has zero bytes."""

    pass


class CodecMismatchError(ValidationError):
    """Output codec does not match the requested codec family."""

    def __init__(self, message: str, expected: str, actual: str):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class InvalidStateTransitionError(TranscoderError):
    """Task status change is not allowed by the lifecycle."""

    pass


class TaskNotFoundError(TranscoderError):
    """No task with the given id."""

    pass


class SchedulerShutdownError(TranscoderError):
    """Scheduler no longer accepts work."""

    pass
