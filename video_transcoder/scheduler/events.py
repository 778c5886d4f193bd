"""
Lifecycle events emitted by the scheduler.

Applications subclass ``TranscodingListener`` and override the hooks they care
about. ``EventRecorder`` keeps every event as a value, which is convenient for
callers that poll and for tests.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..models import TranscodingProgress, TranscodingResult


class EventType(Enum):
    """Kind of scheduler event."""

    TASK_QUEUED = "task_queued"
    TASK_STARTED = "task_started"
    PROGRESS = "progress"
    TASK_COMPLETED = "task_completed"
    TASK_FAILED = "task_failed"
    TASK_RETRY = "task_retry"
    TASK_CANCELLED = "task_cancelled"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True)
class TranscodingEvent:
    """A recorded scheduler event."""

    type: EventType
    task_id: Optional[str] = None
    payload: Any = None
    timestamp: float = field(default_factory=time.time)


class TranscodingListener:
    """Observer for scheduler events. Every hook is a no-op by default."""

    def on_task_queued(self, task_id: str) -> None:
        pass

    def on_task_started(self, task_id: str) -> None:
        pass

    def on_progress(self, task_id: str, progress: TranscodingProgress) -> None:
        pass

    def on_task_completed(self, task_id: str, result: TranscodingResult) -> None:
        pass

    def on_task_failed(self, task_id: str, error: str) -> None:
        pass

    def on_task_retry(self, task_id: str) -> None:
        pass

    def on_task_cancelled(self, task_id: str) -> None:
        pass

    def on_shutdown(self) -> None:
        pass


class EventRecorder(TranscodingListener):
    """Listener that records every event in order."""

    def __init__(self):
        self.events: list[TranscodingEvent] = []

    def _record(self, type: EventType, task_id: Optional[str] = None, payload: Any = None) -> None:
        self.events.append(TranscodingEvent(type=type, task_id=task_id, payload=payload))

    def on_task_queued(self, task_id: str) -> None:
        self._record(EventType.TASK_QUEUED, task_id)

    def on_task_started(self, task_id: str) -> None:
        self._record(EventType.TASK_STARTED, task_id)

    def on_progress(self, task_id: str, progress: TranscodingProgress) -> None:
        self._record(EventType.PROGRESS, task_id, progress)

    def on_task_completed(self, task_id: str, result: TranscodingResult) -> None:
        self._record(EventType.TASK_COMPLETED, task_id, result)

    def on_task_failed(self, task_id: str, error: str) -> None:
        self._record(EventType.TASK_FAILED, task_id, error)

    def on_task_retry(self, task_id: str) -> None:
        self._record(EventType.TASK_RETRY, task_id)

    def on_task_cancelled(self, task_id: str) -> None:
        self._record(EventType.TASK_CANCELLED, task_id)

    def on_shutdown(self) -> None:
        self._record(EventType.SHUTDOWN)

    def of_type(self, type: EventType, task_id: Optional[str] = None) -> list[TranscodingEvent]:
        """Events of one type, optionally for one task."""
        return [
            e for e in self.events if e.type == type and (task_id is None or e.task_id == task_id)
        ]

    def types_for(self, task_id: str) -> list[EventType]:
        """Event types for one task, in order."""
        return [e.type for e in self.events if e.task_id == task_id]

    def clear(self) -> None:
        self.events.clear()
