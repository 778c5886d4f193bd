"""
Process orchestration for FFmpeg.

This module owns the registry of running FFmpeg processes. It enforces the
process limit and memory threshold before spawning, forwards progress, and
supports kill, pause, resume and bulk cleanup.
"""

import asyncio
import time
from pathlib import Path
from typing import Callable, Optional

from ..config.models import ExecutionSettings
from ..models import ProcessInfo, ProcessStatus, TranscodingProgress
from ..utils import (
    ConcurrencyLimitError,
    MemoryPressureError,
    ProcessCancelledError,
    TranscoderError,
    ensure_directory,
    generate_session_id,
    get_logger,
    get_memory_usage_percent,
)
from .subprocess import AsyncFFmpegProcess

logger = get_logger(__name__)

ProgressHandler = Callable[[str, TranscodingProgress], None]
ErrorHandler = Callable[[str, Exception], None]
CompleteHandler = Callable[[str, float], None]

TEMP_FILE_PATTERNS = ("ffmpeg_*", "temp_*")


def _argument_after(args: list[str], flag: str) -> Optional[str]:
    try:
        return args[args.index(flag) + 1]
    except (ValueError, IndexError):
        return None


class ProcessOrchestrator:
    """
    Runs FFmpeg processes under a shared limit.

    One instance is constructed by the application and handed to the
    scheduler and the thumbnail generator. Session ids are unique among
    active processes; a finished process leaves the registry.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        max_processes: int = 3,
        process_timeout: Optional[float] = 300.0,
        kill_grace_period: float = 5.0,
        memory_threshold: float = 96.0,
        temp_dir: Optional[Path] = None,
        memory_probe: Callable[[], float] = get_memory_usage_percent,
        process_factory: Callable[..., AsyncFFmpegProcess] = AsyncFFmpegProcess,
    ):
        """
        Initialize orchestrator.

        Args:
            ffmpeg_path: FFmpeg executable
            max_processes: Maximum simultaneously running processes
            process_timeout: Wall-clock timeout per process in seconds
            kill_grace_period: Seconds between SIGTERM and SIGKILL
            memory_threshold: Refuse to spawn above this memory usage percent
            temp_dir: Directory holding temporary files
            memory_probe: Returns current memory usage percent
            process_factory: Creates the process wrapper
        """
        if max_processes < 1:
            raise ValueError("max_processes must be at least 1")

        self.ffmpeg_path = ffmpeg_path
        self.max_processes = max_processes
        self.process_timeout = process_timeout
        self.kill_grace_period = kill_grace_period
        self.memory_threshold = memory_threshold
        self.temp_dir = temp_dir
        self._memory_probe = memory_probe
        self._process_factory = process_factory

        self._processes: dict[str, AsyncFFmpegProcess] = {}
        self._info: dict[str, ProcessInfo] = {}

    @classmethod
    def from_settings(cls, settings: ExecutionSettings, **kwargs) -> "ProcessOrchestrator":
        """Create orchestrator from execution settings."""
        return cls(
            ffmpeg_path=settings.ffmpeg_path,
            max_processes=settings.max_concurrent_processes,
            process_timeout=settings.process_timeout,
            kill_grace_period=settings.kill_grace_period,
            memory_threshold=settings.memory_threshold,
            temp_dir=settings.temp_dir,
            **kwargs,
        )

    def get_temp_dir(self) -> Path:
        """Get (and create) the temporary directory."""
        if self.temp_dir is None:
            raise TranscoderError("No temporary directory configured")
        return ensure_directory(self.temp_dir)

    async def execute(
        self,
        args: list[str],
        session_id: Optional[str] = None,
        on_progress: Optional[ProgressHandler] = None,
        on_error: Optional[ErrorHandler] = None,
        on_complete: Optional[CompleteHandler] = None,
        duration: Optional[float] = None,
    ) -> str:
        """
        Run FFmpeg with the given arguments and wait for it to exit.

        Exactly one of ``on_complete`` or ``on_error`` fires once the process
        has been admitted. The failure is also raised to the caller.

        Args:
            args: FFmpeg arguments without the executable
            session_id: Session id (generated if None)
            on_progress: Called with (session_id, progress) per record
            on_error: Called with (session_id, error) on failure
            on_complete: Called with (session_id, elapsed_seconds) on success
            duration: Media duration for percent calculation

        Returns:
            The session id

        Raises:
            ValueError: If the session id is already active
            ConcurrencyLimitError: If the process limit is reached
            MemoryPressureError: If memory usage is above the threshold
            ProcessSpawnError: If the process cannot be started
            ProcessExitError: If the process exits non-zero
            ProcessTimeoutError: If the process exceeds the timeout
            ProcessCancelledError: If the process was killed
        """
        sid = session_id or generate_session_id()

        if sid in self._processes:
            raise ValueError(f"Session already active: {sid}")

        if len(self._processes) >= self.max_processes:
            raise ConcurrencyLimitError(
                f"Maximum concurrent processes reached ({self.max_processes})",
                limit=self.max_processes,
            )

        usage = self._memory_probe()
        if usage > self.memory_threshold:
            raise MemoryPressureError(
                f"Memory usage {usage:.1f}% exceeds threshold {self.memory_threshold:.1f}%",
                usage=usage,
                threshold=self.memory_threshold,
            )

        command = [self.ffmpeg_path, *args]
        info = ProcessInfo(
            session_id=sid,
            command=command,
            input_path=_argument_after(args, "-i"),
            output_path=args[-1] if args else None,
        )

        def handle_progress(progress: TranscodingProgress) -> None:
            info.progress = progress
            if on_progress:
                self._safe_call(on_progress, sid, progress)

        process = self._process_factory(
            command,
            timeout=self.process_timeout,
            progress_callback=handle_progress,
            duration=duration,
            kill_grace_period=self.kill_grace_period,
        )

        # Registered before the first await so concurrent callers see the slot taken
        self._processes[sid] = process
        self._info[sid] = info
        start = time.time()

        try:
            await process.start()
            info.pid = process.pid
            info.status = ProcessStatus.RUNNING
            logger.info(f"Started FFmpeg session {sid} (pid {info.pid})")

            await process.wait()

        except Exception as e:
            info.end_time = time.time()
            info.error = str(e)
            info.status = (
                ProcessStatus.KILLED if isinstance(e, ProcessCancelledError) else ProcessStatus.FAILED
            )
            self._unregister(sid)
            logger.warning(f"FFmpeg session {sid} {info.status.value}: {e}")
            if on_error:
                self._safe_call(on_error, sid, e)
            raise

        except asyncio.CancelledError:
            self._unregister(sid)
            raise

        info.end_time = time.time()
        info.status = ProcessStatus.COMPLETED
        self._unregister(sid)
        elapsed = info.end_time - start
        logger.info(f"FFmpeg session {sid} completed in {elapsed:.1f}s")

        if on_complete:
            self._safe_call(on_complete, sid, elapsed)

        return sid

    def _unregister(self, session_id: str) -> None:
        self._processes.pop(session_id, None)
        self._info.pop(session_id, None)

    @staticmethod
    def _safe_call(callback: Callable, *args) -> None:
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Process callback {getattr(callback, '__name__', callback)} failed: {e}")

    async def kill(self, session_id: str) -> bool:
        """
        Kill an active process.

        Sends SIGTERM, then SIGKILL once the grace period expires.

        Returns:
            True if a process was found and killed
        """
        process = self._processes.get(session_id)
        if process is None:
            return False

        logger.info(f"Killing FFmpeg session {session_id}")
        await process.kill()
        return True

    async def pause(self, session_id: str) -> bool:
        """Suspend an active process (POSIX only)."""
        process = self._processes.get(session_id)
        if process is None or not process.pause():
            return False

        self._info[session_id].status = ProcessStatus.PAUSED
        logger.info(f"Paused FFmpeg session {session_id}")
        return True

    async def resume(self, session_id: str) -> bool:
        """Continue a suspended process."""
        process = self._processes.get(session_id)
        if process is None or not process.resume():
            return False

        self._info[session_id].status = ProcessStatus.RUNNING
        logger.info(f"Resumed FFmpeg session {session_id}")
        return True

    def get_process_info(self, session_id: str) -> Optional[ProcessInfo]:
        """Get info for an active session."""
        return self._info.get(session_id)

    def get_active_processes(self) -> list[ProcessInfo]:
        """Get info for every active session."""
        return list(self._info.values())

    def is_active(self, session_id: str) -> bool:
        """Check if a session is active."""
        return session_id in self._processes

    @property
    def active_count(self) -> int:
        """Number of active sessions."""
        return len(self._processes)

    async def cleanup(self) -> None:
        """Kill every active process and remove temporary files."""
        session_ids = list(self._processes)
        if session_ids:
            logger.info(f"Killing {len(session_ids)} active FFmpeg process(es)")
            results = await asyncio.gather(
                *(self.kill(sid) for sid in session_ids), return_exceptions=True
            )
            for sid, result in zip(session_ids, results):
                if isinstance(result, Exception):
                    logger.error(f"Failed to kill session {sid}: {result}")

        self.remove_temp_files()

    def remove_temp_files(self) -> int:
        """
        Delete ``ffmpeg_*`` and ``temp_*`` files from the temp directory.

        Returns:
            Number of files removed
        """
        if self.temp_dir is None or not self.temp_dir.is_dir():
            return 0

        removed = 0
        for pattern in TEMP_FILE_PATTERNS:
            for path in self.temp_dir.glob(pattern):
                if not path.is_file():
                    continue
                try:
                    path.unlink()
                    removed += 1
                except OSError as e:
                    logger.warning(f"Failed to remove temp file {path}: {e}")

        if removed:
            logger.debug(f"Removed {removed} temp file(s) from {self.temp_dir}")
        return removed
