"""
Priority queue of pending task ids.

Higher priority is served first; equal priorities are served in arrival
order. Every push takes a fresh sequence number, so a re-queued task goes
behind tasks of the same priority that are already waiting.
"""

import heapq
import itertools
from typing import Iterator, Optional


class PriorityTaskQueue:
    """Heap of ``(-priority, sequence, task_id)`` entries with lazy removal."""

    def __init__(self):
        self._heap: list[tuple[int, int, str]] = []
        self._entries: dict[str, tuple[int, int, str]] = {}
        self._counter = itertools.count()

    def push(self, task_id: str, priority: int = 0) -> None:
        """
        Add a task.

        Raises:
            ValueError: If the task is already queued
        """
        if task_id in self._entries:
            raise ValueError(f"Task already queued: {task_id}")

        entry = (-priority, next(self._counter), task_id)
        self._entries[task_id] = entry
        heapq.heappush(self._heap, entry)

    def pop(self) -> Optional[str]:
        """Remove and return the next task id, or None if empty."""
        while self._heap:
            entry = heapq.heappop(self._heap)
            if self._entries.get(entry[2]) is entry:
                del self._entries[entry[2]]
                return entry[2]
        return None

    def peek(self) -> Optional[str]:
        """Return the next task id without removing it."""
        while self._heap:
            entry = self._heap[0]
            if self._entries.get(entry[2]) is entry:
                return entry[2]
            heapq.heappop(self._heap)
        return None

    def remove(self, task_id: str) -> bool:
        """
        Remove a queued task.

        Returns:
            True if the task was queued
        """
        return self._entries.pop(task_id, None) is not None

    def clear(self) -> list[str]:
        """
        Empty the queue.

        Returns:
            The removed task ids in dequeue order
        """
        drained = self.snapshot()
        self._heap.clear()
        self._entries.clear()
        return drained

    def snapshot(self) -> list[str]:
        """Task ids in dequeue order."""
        return [entry[2] for entry in sorted(self._entries.values())]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __bool__(self) -> bool:
        return bool(self._entries)
