"""
Task scheduling for transcoding requests.

This module accepts transcoding requests, keeps pending tasks in priority
order, admits them into execution up to a concurrency bound, retries failures
and reports lifecycle events to registered listeners.
"""

import asyncio
import dataclasses
import shutil
import time
from pathlib import Path
from typing import Optional, Union

from ..config.models import TranscoderSettings, TranscodingConfig
from ..executor import ProcessOrchestrator
from ..inspector import VideoProber
from ..models import (
    TaskOptions,
    TaskStatus,
    TranscodingProgress,
    TranscodingResult,
    TranscodingStats,
    TranscodingTask,
    VideoMetadata,
)
from ..transcoder import TranscodeCommandBuilder
from ..utils import (
    ProcessCancelledError,
    SchedulerShutdownError,
    TaskNotFoundError,
    ensure_directory,
    get_file_size,
    get_logger,
)
from ..validator import ResultValidator
from .events import TranscodingListener
from .queue import PriorityTaskQueue

logger = get_logger(__name__)

CANCELLED_MESSAGE = "Task cancelled"


class TranscodingScheduler:
    """
    Queues transcoding tasks and runs them under a concurrency bound.

    All queue and accounting mutation happens under a single asyncio lock.
    A task occupies a slot while it is processing or paused. Failed attempts
    are re-queued immediately, without backoff, until the retry budget is
    spent.
    """

    def __init__(
        self,
        orchestrator: ProcessOrchestrator,
        prober: Optional[VideoProber] = None,
        validator: Optional[ResultValidator] = None,
        command_builder: Optional[TranscodeCommandBuilder] = None,
        settings: Optional[TranscoderSettings] = None,
        max_concurrent_tasks: Optional[int] = None,
        listeners: Optional[list[TranscodingListener]] = None,
    ):
        """
        Initialize scheduler.

        Args:
            orchestrator: Process orchestrator that runs FFmpeg
            prober: Prober for submitted inputs
            validator: Validator for finished outputs
            command_builder: Builds FFmpeg arguments for a task
            settings: Transcoder settings (defaults if None)
            max_concurrent_tasks: Concurrency bound (settings value if None)
            listeners: Initial event listeners
        """
        self.settings = settings or TranscoderSettings.create_default()
        self.orchestrator = orchestrator
        self.prober = prober or VideoProber(self.settings.execution.ffprobe_path)
        self.validator = validator or ResultValidator(self.prober)
        self.command_builder = command_builder or TranscodeCommandBuilder()
        self.max_concurrent_tasks = (
            max_concurrent_tasks or self.settings.execution.max_concurrent_tasks
        )

        if self.max_concurrent_tasks > orchestrator.max_processes:
            logger.warning(
                f"max_concurrent_tasks ({self.max_concurrent_tasks}) exceeds the orchestrator "
                f"process limit ({orchestrator.max_processes})"
            )

        self._listeners: list[TranscodingListener] = list(listeners or [])
        self._lock = asyncio.Lock()
        self._queue = PriorityTaskQueue()
        self._tasks: dict[str, TranscodingTask] = {}
        self._results: dict[str, TranscodingResult] = {}
        self._waiters: dict[str, asyncio.Future] = {}
        self._workers: dict[str, asyncio.Task] = {}
        self._cancel_requested: set[str] = set()
        self._copying: set[str] = set()
        self._stats = TranscodingStats()
        self._shutting_down = False

        logger.info(f"Initialized TranscodingScheduler with {self.max_concurrent_tasks} slot(s)")

    # Listeners

    def add_listener(self, listener: TranscodingListener) -> None:
        """Register an event listener."""
        self._listeners.append(listener)

    def remove_listener(self, listener: TranscodingListener) -> None:
        """Unregister an event listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, hook: str, *args) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, hook)(*args)
            except Exception as e:
                logger.error(f"Listener {type(listener).__name__}.{hook} failed: {e}")

    # Submission

    async def submit(
        self,
        input_path: Union[Path, str],
        output_path: Union[Path, str],
        config: Optional[TranscodingConfig] = None,
        options: Optional[TaskOptions] = None,
    ) -> str:
        """
        Submit a transcoding request.

        The input is validated and probed before anything is queued. Inputs
        that need no transcoding are copied to the output and complete
        immediately.

        Args:
            input_path: Source file
            output_path: Destination file
            config: Output configuration (settings defaults if None)
            options: Priority, retry budget and skip override

        Returns:
            Task id

        Raises:
            SchedulerShutdownError: If the scheduler has been shut down
            InvalidInputError: If the input is missing or empty
            InsufficientSpaceError: If the output directory lacks space
            ProbeError: If the input cannot be probed
        """
        if self._shutting_down:
            raise SchedulerShutdownError("Scheduler is shut down")

        input_path = Path(input_path)
        output_path = Path(output_path)
        options = options or TaskOptions()
        config = config or self.settings.defaults.to_transcoding_config()

        self.prober.validate_input(input_path)
        self.prober.check_disk_space(output_path.parent, input_path.stat().st_size)
        metadata = await self.prober.probe(input_path)

        task = TranscodingTask(
            input_path=input_path,
            output_path=output_path,
            config=config,
            priority=options.priority,
            max_retries=(
                options.max_retries
                if options.max_retries is not None
                else self.settings.execution.max_retries
            ),
            input_metadata=metadata,
        )

        async with self._lock:
            if self._shutting_down:
                raise SchedulerShutdownError("Scheduler is shut down")
            self._tasks[task.task_id] = task
            self._waiters[task.task_id] = asyncio.get_running_loop().create_future()

        if not metadata.needs_transcoding and not options.force_transcode:
            logger.info(f"{input_path.name} needs no transcoding, copying to {output_path}")
            await self._complete_skipped(task)
            return task.task_id

        async with self._lock:
            self._queue.push(task.task_id, task.priority)

        logger.info(f"Queued task {task.task_id} ({input_path.name}, priority {task.priority})")
        self._emit("on_task_queued", task.task_id)

        await self._admit()
        return task.task_id

    async def _complete_skipped(self, task: TranscodingTask) -> None:
        """
        Copy the input verbatim and finish the task.

        The copy runs outside the worker pool and does not hold a slot.
        """
        async with self._lock:
            task.transition_to(TaskStatus.PROCESSING)
            self._copying.add(task.task_id)

        try:
            await self._copy_and_finish(task)
        finally:
            self._copying.discard(task.task_id)
            await self._admit()

    async def _copy_and_finish(self, task: TranscodingTask) -> None:
        start = time.time()
        try:
            await asyncio.to_thread(_copy_file, task.input_path, task.output_path)
        except OSError as e:
            async with self._lock:
                task.error = f"Failed to copy input: {e}"
                task.transition_to(TaskStatus.FAILED)
                self._stats.record_failed()
                self._finalize(task, self._failure_result(task))
            logger.error(f"Task {task.task_id} failed: {task.error}")
            self._emit("on_task_failed", task.task_id, task.error)
            return

        size = get_file_size(task.output_path)
        result = TranscodingResult(
            task_id=task.task_id,
            success=True,
            output_path=task.output_path,
            original_size=task.input_metadata.file_size if task.input_metadata else size,
            output_size=size,
            compression_ratio=0.0,
            processing_time=time.time() - start,
            quality_score=100,
            skipped=True,
        )

        async with self._lock:
            task.output_metadata = task.input_metadata
            task.update_progress(100.0)
            task.transition_to(TaskStatus.COMPLETED)
            self._stats.record_completed(result)
            self._finalize(task, result)

        self._emit("on_task_completed", task.task_id, result)

    # Admission and execution

    def _occupied_slots(self) -> int:
        return sum(
            1
            for task in self._tasks.values()
            if task.status in (TaskStatus.PROCESSING, TaskStatus.PAUSED)
            and task.task_id not in self._copying
        )

    async def _admit(self) -> None:
        """Start queued tasks while slots are free."""
        async with self._lock:
            while (
                not self._shutting_down
                and self._queue
                and self._occupied_slots() < self.max_concurrent_tasks
            ):
                task_id = self._queue.pop()
                if task_id is None:
                    break
                task = self._tasks[task_id]
                task.transition_to(TaskStatus.PROCESSING)
                self._workers[task_id] = asyncio.create_task(
                    self._run_task(task), name=f"transcode-{task_id}"
                )

    async def _run_task(self, task: TranscodingTask) -> None:
        """Run one attempt of a task."""
        task_id = task.task_id
        self._emit("on_task_started", task_id)

        try:
            if self._shutting_down or task_id in self._cancel_requested:
                await self._finish_cancelled(task)
                return

            logger.info(
                f"Starting task {task_id} (attempt {task.retry_count + 1}/{task.max_retries + 1})"
            )
            args = self.command_builder.build(task)
            duration = task.input_metadata.duration if task.input_metadata else None

            try:
                ensure_directory(task.output_path.parent)
                await self.orchestrator.execute(
                    args,
                    session_id=task_id,
                    on_progress=self._handle_progress,
                    duration=duration,
                )
                if task_id in self._cancel_requested:
                    raise ProcessCancelledError("Task cancelled after process exit")

                output_meta = await self.validator.validate(
                    task.output_path, task.config.video_codec
                )
                if task_id in self._cancel_requested:
                    raise ProcessCancelledError("Task cancelled during validation")

            except ProcessCancelledError:
                await self._finish_cancelled(task)

            except Exception as e:
                if task_id in self._cancel_requested:
                    await self._finish_cancelled(task)
                else:
                    await self._finish_failed(task, e)

            else:
                await self._finish_completed(task, output_meta)

        finally:
            if self._workers.get(task_id) is asyncio.current_task():
                del self._workers[task_id]
            await self._admit()

    def _handle_progress(self, task_id: str, progress: TranscodingProgress) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.status != TaskStatus.PROCESSING:
            return

        task.latest_progress = progress
        if progress.percent is not None:
            task.update_progress(progress.percent)
        self._emit("on_progress", task_id, progress)

    async def _finish_completed(self, task: TranscodingTask, output_meta: VideoMetadata) -> None:
        original_size = (
            task.input_metadata.file_size if task.input_metadata else 0
        ) or get_file_size(task.input_path)
        output_size = output_meta.file_size or get_file_size(task.output_path)

        quality_score = (
            self.validator.compute_quality_score(task.input_metadata, output_meta)
            if task.input_metadata
            else None
        )

        result = TranscodingResult(
            task_id=task.task_id,
            success=True,
            output_path=task.output_path,
            original_size=original_size,
            output_size=output_size,
            compression_ratio=self.validator.compute_compression_ratio(original_size, output_size),
            processing_time=time.time() - (task.started_at or time.time()),
            quality_score=quality_score,
            retry_count=task.retry_count,
        )

        async with self._lock:
            task.output_metadata = output_meta
            task.update_progress(100.0)
            task.transition_to(TaskStatus.COMPLETED)
            self._stats.record_completed(result)
            self._finalize(task, result)

        logger.info(
            f"Task {task.task_id} completed in {result.processing_time:.1f}s "
            f"(compression {result.compression_ratio:.1%}, quality {quality_score})"
        )
        self._emit("on_task_completed", task.task_id, result)

    async def _finish_failed(self, task: TranscodingTask, error: Exception) -> None:
        async with self._lock:
            task.error = str(error)
            task.transition_to(TaskStatus.FAILED)

            retry = task.can_retry and not self._shutting_down
            if retry:
                task.reset_for_retry()
                self._queue.push(task.task_id, task.priority)
                self._stats.record_retry()
            else:
                self._stats.record_failed()
                self._finalize(task, self._failure_result(task))

        if retry:
            logger.warning(
                f"Task {task.task_id} failed, retrying ({task.retry_count}/{task.max_retries}): "
                f"{error}"
            )
            self._emit("on_task_retry", task.task_id)
        else:
            _discard_output(task.output_path)
            logger.error(f"Task {task.task_id} failed: {error}")
            self._emit("on_task_failed", task.task_id, str(error))

    async def _finish_cancelled(self, task: TranscodingTask) -> None:
        async with self._lock:
            if task.status == TaskStatus.PAUSED:
                task.transition_to(TaskStatus.PROCESSING)
            task.error = CANCELLED_MESSAGE
            task.transition_to(TaskStatus.CANCELLED)
            self._cancel_requested.discard(task.task_id)
            self._stats.record_cancelled()
            self._finalize(task, self._failure_result(task))

        _discard_output(task.output_path)
        logger.info(f"Task {task.task_id} cancelled")
        self._emit("on_task_cancelled", task.task_id)

    def _failure_result(self, task: TranscodingTask) -> TranscodingResult:
        return TranscodingResult(
            task_id=task.task_id,
            success=False,
            output_path=task.output_path,
            original_size=task.input_metadata.file_size if task.input_metadata else 0,
            processing_time=task.duration or 0.0,
            error=task.error,
            retry_count=task.retry_count,
        )

    def _finalize(self, task: TranscodingTask, result: TranscodingResult) -> None:
        """Store the terminal result and wake waiters. Caller holds the lock."""
        self._results[task.task_id] = result
        waiter = self._waiters.get(task.task_id)
        if waiter is not None and not waiter.done():
            waiter.set_result(result)

    # Control

    async def cancel(self, task_id: str) -> bool:
        """
        Cancel a task.

        A queued task is removed and cancelled at once. An active task has its
        process killed; the call returns once the task is cancelled.

        Returns:
            True if the task was cancelled, False if it already finished or
            is being copied

        Raises:
            TaskNotFoundError: If the task id is unknown
        """
        async with self._lock:
            task = self._get(task_id)

            if task_id in self._queue:
                self._queue.remove(task_id)
                task.error = CANCELLED_MESSAGE
                task.transition_to(TaskStatus.CANCELLED)
                self._stats.record_cancelled()
                self._finalize(task, self._failure_result(task))
                queued = True
            elif task_id in self._copying:
                return False
            elif task.status in (TaskStatus.PROCESSING, TaskStatus.PAUSED):
                self._cancel_requested.add(task_id)
                queued = False
            else:
                return False

        if queued:
            logger.info(f"Task {task_id} cancelled before start")
            self._emit("on_task_cancelled", task_id)
            return True

        await self.orchestrator.kill(task_id)

        worker = self._workers.get(task_id)
        if worker is not None and worker is not asyncio.current_task():
            await asyncio.wait({worker})

        return task.status == TaskStatus.CANCELLED

    async def pause(self, task_id: str) -> bool:
        """
        Suspend a processing task. The task keeps its slot.

        Returns:
            True if the task was paused
        """
        async with self._lock:
            task = self._get(task_id)
            if task.status != TaskStatus.PROCESSING or task_id in self._cancel_requested:
                return False
            if not await self.orchestrator.pause(task_id):
                return False
            task.transition_to(TaskStatus.PAUSED)

        logger.info(f"Task {task_id} paused")
        return True

    async def resume(self, task_id: str) -> bool:
        """
        Resume a paused task.

        Returns:
            True if the task was resumed
        """
        async with self._lock:
            task = self._get(task_id)
            if task.status != TaskStatus.PAUSED:
                return False
            if not await self.orchestrator.resume(task_id):
                return False
            task.transition_to(TaskStatus.PROCESSING)

        logger.info(f"Task {task_id} resumed")
        return True

    async def wait_for(self, task_id: str, timeout: Optional[float] = None) -> TranscodingResult:
        """
        Wait for a task to reach a terminal state.

        Raises:
            TaskNotFoundError: If the task id is unknown
            asyncio.TimeoutError: If the timeout expires first
        """
        if task_id in self._results:
            return self._results[task_id]

        waiter = self._waiters.get(task_id)
        if waiter is None:
            raise TaskNotFoundError(f"Unknown task: {task_id}")

        return await asyncio.wait_for(asyncio.shield(waiter), timeout=timeout)

    async def wait_all(self, timeout: Optional[float] = None) -> list[TranscodingResult]:
        """Wait for every known task to finish."""
        return list(
            await asyncio.wait_for(
                asyncio.gather(*(asyncio.shield(w) for w in self._waiters.values())),
                timeout=timeout,
            )
        )

    async def shutdown(self) -> None:
        """
        Stop the scheduler.

        Pending tasks are cancelled without per-task events, active processes
        are killed, and workers are awaited. Later submissions raise
        SchedulerShutdownError.
        """
        async with self._lock:
            if self._shutting_down:
                return
            self._shutting_down = True

            drained = self._queue.clear()
            for task_id in drained:
                task = self._tasks[task_id]
                task.error = CANCELLED_MESSAGE
                task.transition_to(TaskStatus.CANCELLED)
                self._stats.record_cancelled()
                self._finalize(task, self._failure_result(task))

        logger.info(f"Shutting down scheduler ({len(drained)} queued task(s) discarded)")

        await self.orchestrator.cleanup()

        workers = list(self._workers.values())
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)

        async with self._lock:
            self._workers.clear()
            self._cancel_requested.clear()

        self._emit("on_shutdown")

    # Introspection

    def _get(self, task_id: str) -> TranscodingTask:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(f"Unknown task: {task_id}")
        return task

    def get_task(self, task_id: str) -> Optional[TranscodingTask]:
        """Get a task by id."""
        return self._tasks.get(task_id)

    def get_result(self, task_id: str) -> Optional[TranscodingResult]:
        """Get the terminal result of a task, if it has one."""
        return self._results.get(task_id)

    def list_tasks(self, status: Optional[TaskStatus] = None) -> list[TranscodingTask]:
        """List tasks, optionally filtered by status."""
        return [t for t in self._tasks.values() if status is None or t.status == status]

    def get_stats(self) -> TranscodingStats:
        """Get a copy of the running statistics."""
        return dataclasses.replace(self._stats)

    def reset_stats(self) -> None:
        """Reset running statistics."""
        self._stats = TranscodingStats()

    @property
    def queued_count(self) -> int:
        """Number of queued tasks."""
        return len(self._queue)

    @property
    def active_count(self) -> int:
        """Number of tasks holding a slot."""
        return self._occupied_slots()

    @property
    def is_shut_down(self) -> bool:
        """Check if shutdown has started."""
        return self._shutting_down


def _copy_file(source: Path, destination: Path) -> None:
    if source.resolve() == destination.resolve():
        return
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)


def _discard_output(path: Path) -> None:
    """Delete a partial output, logging failures."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to delete partial output {path}: {e}")
