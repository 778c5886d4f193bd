"""
Tests for the pending task queue.
"""

import pytest

from video_transcoder.scheduler import PriorityTaskQueue


@pytest.fixture
def queue():
    """Create an empty queue."""
    return PriorityTaskQueue()


class TestPriorityTaskQueue:
    """Test PriorityTaskQueue class."""

    def test_empty(self, queue):
        assert len(queue) == 0
        assert not queue
        assert queue.pop() is None
        assert queue.peek() is None

    def test_priority_then_arrival(self, queue):
        for task_id, priority in [("a", 5), ("b", 9), ("c", 5), ("d", 1)]:
            queue.push(task_id, priority)

        assert queue.snapshot() == ["b", "a", "c", "d"]
        assert [queue.pop() for _ in range(4)] == ["b", "a", "c", "d"]
        assert queue.pop() is None

    def test_negative_priority(self, queue):
        queue.push("low", -1)
        queue.push("default")
        assert queue.pop() == "default"

    def test_duplicate_push(self, queue):
        queue.push("a")
        with pytest.raises(ValueError, match="already queued"):
            queue.push("a")

    def test_remove(self, queue):
        queue.push("a", 1)
        queue.push("b", 2)

        assert queue.remove("b")
        assert not queue.remove("b")
        assert "b" not in queue
        assert len(queue) == 1
        assert queue.peek() == "a"
        assert queue.pop() == "a"

    def test_requeue_goes_behind_equal_priority(self, queue):
        queue.push("a")
        queue.push("b")
        queue.remove("a")
        queue.push("a")

        assert list(queue) == ["b", "a"]
        assert queue.pop() == "b"
        assert queue.pop() == "a"
        assert queue.pop() is None

    def test_clear(self, queue):
        queue.push("a", 1)
        queue.push("b", 3)

        assert queue.clear() == ["b", "a"]
        assert len(queue) == 0
        assert queue.pop() is None

    def test_peek_does_not_remove(self, queue):
        queue.push("a")
        assert queue.peek() == "a"
        assert queue.peek() == "a"
        assert len(queue) == 1
