"""
Unit tests for the asyncio task queue.
"""

import asyncio

import pytest

from drainqueue.observability.metrics import QueueMetrics
from drainqueue.types import Task
from drainqueue.worker.async_queue import AsyncTaskQueue


class TestAsyncTaskQueue:
    """Tests for AsyncTaskQueue."""

    def test_process_fn_must_be_callable(self):
        """Test construction fails fast without a processing function."""
        with pytest.raises(TypeError):
            AsyncTaskQueue("not callable")  # type: ignore[arg-type]

    def test_add_without_loop_when_not_starting(self, make_options, metrics: QueueMetrics):
        """Test tasks can be queued outside an event loop."""

        async def process(task: Task) -> None:
            pass

        queue = AsyncTaskQueue(process, make_options(), metrics)
        queue.add([{"id": 1}, {"id": 1}, {"id": 2}])

        assert len(queue) == 2
        assert queue.draining is False

    @pytest.mark.asyncio
    async def test_drains_in_order(self, make_options, metrics: QueueMetrics):
        """Test tasks are awaited one after another in insertion order."""
        events: list[str] = []

        async def process(task: Task) -> None:
            events.append(f"start-{task['id']}")
            await asyncio.sleep(0)
            events.append(f"end-{task['id']}")

        queue = AsyncTaskQueue(process, make_options(), metrics)
        queue.add([{"id": 1}, {"id": 2}, {"id": 3}], True)
        await queue.join()

        assert events == ["start-1", "end-1", "start-2", "end-2", "start-3", "end-3"]
        assert queue.is_empty() is True
        assert queue.stats().processed == 3

    @pytest.mark.asyncio
    async def test_head_present_during_processing(self, make_options, metrics: QueueMetrics):
        """Test the head stays queued while awaited unless shifted."""
        observed: list[bool] = []

        for shift in (False, True):
            async def process(task: Task) -> None:
                observed.append(task["id"] in queue.indexes)

            queue = AsyncTaskQueue(process, make_options(shift_on_process=shift), metrics)
            queue.add({"id": 1}, True)
            await queue.join()

        assert observed == [True, False]

    @pytest.mark.asyncio
    async def test_tasks_added_while_draining_are_picked_up(self, make_options, metrics: QueueMetrics):
        """Test a running drain continues with late tasks."""
        processed: list[int] = []
        gate = asyncio.Event()

        async def process(task: Task) -> None:
            await gate.wait()
            processed.append(task["id"])

        queue = AsyncTaskQueue(process, make_options(shift_on_process=True), metrics)
        queue.add({"id": 1}, True)
        await asyncio.sleep(0)

        assert queue.in_flight is True
        queue.add({"id": 2}, True)
        gate.set()
        await queue.join()

        assert processed == [1, 2]

    @pytest.mark.asyncio
    async def test_failing_task_does_not_stop_drain(self, make_options, registry, metrics: QueueMetrics):
        """Test a raising processor is logged and skipped."""
        processed: list[int] = []

        async def process(task: Task) -> None:
            if task["id"] == 2:
                raise RuntimeError("boom")
            processed.append(task["id"])

        queue = AsyncTaskQueue(process, make_options(), metrics)
        queue.add([{"id": 1}, {"id": 2}, {"id": 3}], True)
        await queue.join()

        assert processed == [1, 3]
        assert queue.is_empty() is True
        assert queue.stats().failed == 1
        assert registry.get_sample_value(
            "tasks_processed_total", {"queue": "test", "status": "failed"}
        ) == 1

    @pytest.mark.asyncio
    async def test_process_on_empty_queue_is_noop(self, make_options, metrics: QueueMetrics):
        """Test process does not start a drain with nothing to do."""

        async def process(task: Task) -> None:
            pass

        queue = AsyncTaskQueue(process, make_options(), metrics)
        queue.process()
        await queue.join()

        assert queue.draining is False

    @pytest.mark.asyncio
    async def test_stop_keeps_in_flight_task(self, make_options, metrics: QueueMetrics):
        """Test cancelling the drain leaves the unfinished head queued."""
        started = asyncio.Event()

        async def process(task: Task) -> None:
            started.set()
            await asyncio.Event().wait()

        queue = AsyncTaskQueue(process, make_options(), metrics)
        queue.add([{"id": 1}, {"id": 2}], True)
        await started.wait()

        await queue.stop()

        assert queue.draining is False
        assert queue.in_flight is False
        assert [task["id"] for task in queue.tasks] == [1, 2]

    @pytest.mark.asyncio
    async def test_clear_while_draining(self, make_options, metrics: QueueMetrics):
        """Test the drain stops after the in-flight task once cleared."""
        processed: list[int] = []
        gate = asyncio.Event()

        async def process(task: Task) -> None:
            await gate.wait()
            processed.append(task["id"])

        queue = AsyncTaskQueue(process, make_options(), metrics)
        queue.add([{"id": 1}, {"id": 2}, {"id": 3}], True)
        await asyncio.sleep(0)

        queue.clear()
        gate.set()
        await queue.join()

        assert processed == [1]
        assert queue.is_empty() is True
