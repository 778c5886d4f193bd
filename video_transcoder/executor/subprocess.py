"""
Async subprocess wrapper for FFmpeg execution.

This module runs a single FFmpeg process, streams its stderr through the
progress parser, enforces a wall-clock timeout and supports graceful
termination, pause and resume.
"""

import asyncio
import codecs
import re
import signal
from typing import Callable, Optional

from ..models import TranscodingProgress
from ..utils import (
    ProcessCancelledError,
    ProcessExitError,
    ProcessSpawnError,
    ProcessTimeoutError,
    get_logger,
)
from .progress import ProgressParser

logger = get_logger(__name__)

READ_CHUNK_SIZE = 4096

ERROR_PATTERNS = [
    r"Error while (opening|decoding|encoding)",
    r"Invalid data found",
    r"No such file or directory",
    r"Permission denied",
    r"Unknown encoder",
    r"Codec .* is not supported",
    r"Invalid argument",
    r"Conversion failed",
]


class AsyncFFmpegProcess:
    """
    Async wrapper for FFmpeg subprocess execution.

    Provides non-blocking process execution with:
    - Incremental stderr parsing and progress callbacks
    - Timeout handling
    - Graceful termination (SIGTERM, then SIGKILL after a grace period)
    - Pause and resume via SIGSTOP/SIGCONT
    """

    def __init__(
        self,
        command: list[str],
        timeout: Optional[float] = None,
        progress_callback: Optional[Callable[[TranscodingProgress], None]] = None,
        duration: Optional[float] = None,
        kill_grace_period: float = 5.0,
    ):
        """
        Initialize async FFmpeg process.

        Args:
            command: Full command including the executable
            timeout: Maximum execution time in seconds (None = no timeout)
            progress_callback: Called with each parsed progress record
            duration: Media duration for percent calculation, if known
            kill_grace_period: Seconds to wait after SIGTERM before SIGKILL
        """
        self.command = command
        self.timeout = timeout
        self.progress_callback = progress_callback
        self.kill_grace_period = kill_grace_period
        self.parser = ProgressParser(duration)
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._process: Optional[asyncio.subprocess.Process] = None
        self._cancelled = False
        self._paused = False

    async def start(self) -> None:
        """
        Spawn the process.

        A kill that arrives while the spawn is pending terminates the
        process as soon as it exists.

        Raises:
            ProcessSpawnError: If the OS refuses to start it
            ProcessCancelledError: If the process was killed before spawning
        """
        if self._cancelled:
            raise ProcessCancelledError("Process was killed before it started")

        logger.debug(f"Full command: {' '.join(self.command)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProcessSpawnError(f"Failed to start {self.command[0]}: {e}") from e

        if self._cancelled:
            await self.terminate()

    async def wait(self) -> str:
        """
        Stream stderr until the process exits.

        Returns:
            Captured stderr text

        Raises:
            ProcessTimeoutError: If process exceeds timeout
            ProcessCancelledError: If the process was killed on request
            ProcessExitError: If the process exits non-zero
        """
        if not self._process:
            raise RuntimeError("Process not started")

        try:
            if self.timeout:
                await asyncio.wait_for(self._communicate_with_progress(), timeout=self.timeout)
            else:
                await self._communicate_with_progress()

        except asyncio.TimeoutError:
            logger.error(f"FFmpeg process exceeded timeout of {self.timeout}s")
            await self.terminate()
            raise ProcessTimeoutError(
                f"Process exceeded timeout of {self.timeout}s",
                timeout=self.timeout or 0.0,
            )

        except asyncio.CancelledError:
            await self.terminate()
            raise

        stderr = self.parser.stderr_text

        if self._cancelled:
            raise ProcessCancelledError("Process was killed")

        if self._process.returncode != 0:
            error_msg = self._extract_error_message(stderr)
            raise ProcessExitError(
                f"FFmpeg failed with code {self._process.returncode}: {error_msg}",
                returncode=self._process.returncode,
                command=self.command,
                stderr=stderr,
            )

        return stderr

    async def run(self) -> str:
        """Start the process and wait for it."""
        await self.start()
        return await self.wait()

    async def _communicate_with_progress(self) -> None:
        """Read stderr in chunks, feeding the parser, then wait for exit."""
        if not self._process:
            raise RuntimeError("Process not started")

        stream = self._process.stderr
        if stream is not None:
            while True:
                chunk = await stream.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                self._dispatch(self.parser.feed(self._decoder.decode(chunk)))
            self._dispatch(self.parser.feed(self._decoder.decode(b"", final=True)))
            self._dispatch(self.parser.flush())

        await self._process.wait()

    def _dispatch(self, records: list[TranscodingProgress]) -> None:
        if not self.progress_callback:
            return

        for record in records:
            try:
                self.progress_callback(record)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

    def _extract_error_message(self, stderr: str) -> str:
        """
        Extract meaningful error message from stderr.

        Args:
            stderr: Complete stderr output

        Returns:
            Matching line with context, or the last lines of stderr
        """
        lines = [line for line in stderr.split("\n") if line.strip()]

        for pattern in ERROR_PATTERNS:
            regex = re.compile(pattern, re.IGNORECASE)
            for i, line in enumerate(lines):
                if regex.search(line):
                    return " | ".join(lines[i : i + 3])

        return " | ".join(lines[-3:]) if lines else "Unknown error"

    async def kill(self) -> None:
        """Terminate on request; wait() then raises ProcessCancelledError."""
        self._cancelled = True
        await self.terminate()

    async def terminate(self) -> None:
        """
        Terminate the process gracefully.

        Sends SIGTERM, waits for the grace period, then sends SIGKILL if needed.
        """
        if not self._process or self._process.returncode is not None:
            return

        try:
            logger.info(f"Terminating FFmpeg process {self._process.pid}...")
            self._process.terminate()
            if self._paused:
                # A stopped process only acts on SIGTERM once continued
                self._process.send_signal(signal.SIGCONT)
                self._paused = False

            try:
                await asyncio.wait_for(self._process.wait(), timeout=self.kill_grace_period)
                logger.debug("Process terminated gracefully")
            except asyncio.TimeoutError:
                logger.warning("Forcing process termination...")
                self._process.kill()
                await self._process.wait()
                logger.debug("Process killed")

        except ProcessLookupError:
            pass

    def pause(self) -> bool:
        """Suspend the process with SIGSTOP."""
        if not self.is_running or self._paused:
            return False
        try:
            self._process.send_signal(signal.SIGSTOP)  # type: ignore[union-attr]
        except (ProcessLookupError, AttributeError, ValueError) as e:
            logger.warning(f"Could not pause process: {e}")
            return False
        self._paused = True
        return True

    def resume(self) -> bool:
        """Continue a suspended process with SIGCONT."""
        if not self.is_running or not self._paused:
            return False
        try:
            self._process.send_signal(signal.SIGCONT)  # type: ignore[union-attr]
        except (ProcessLookupError, AttributeError, ValueError) as e:
            logger.warning(f"Could not resume process: {e}")
            return False
        self._paused = False
        return True

    @property
    def pid(self) -> Optional[int]:
        """Get process id."""
        return self._process.pid if self._process else None

    @property
    def is_running(self) -> bool:
        """Check if process is currently running."""
        return self._process is not None and self._process.returncode is None

    @property
    def is_paused(self) -> bool:
        """Check if process is suspended."""
        return self._paused

    @property
    def was_cancelled(self) -> bool:
        """Check if the process was killed on request."""
        return self._cancelled

    @property
    def returncode(self) -> Optional[int]:
        """Get process return code."""
        return self._process.returncode if self._process else None

    @property
    def stderr_output(self) -> list[str]:
        """Get captured stderr lines."""
        return self.parser.stderr_lines
