"""Task queueing, scheduling and lifecycle events."""

from video_transcoder.scheduler.events import (
    EventRecorder,
    EventType,
    TranscodingEvent,
    TranscodingListener,
)
from video_transcoder.scheduler.queue import PriorityTaskQueue
from video_transcoder.scheduler.scheduler import TranscodingScheduler

__all__ = [
    "EventRecorder",
    "EventType",
    "PriorityTaskQueue",
    "TranscodingEvent",
    "TranscodingListener",
    "TranscodingScheduler",
]
