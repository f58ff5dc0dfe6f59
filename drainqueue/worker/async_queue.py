"""
Task queue for coroutine processing functions.

The drain runs as a single asyncio task: each task is awaited to completion
before the next one is handed over, so at most one task is ever in flight.
"""

import asyncio
import logging
import time

from drainqueue.constants import TaskOutcome
from drainqueue.observability.logging import queue_context
from drainqueue.observability.metrics import QueueMetrics
from drainqueue.queue import BaseTaskQueue
from drainqueue.types import AsyncProcessFn, QueueOptions

logger = logging.getLogger(__name__)


class AsyncTaskQueue(BaseTaskQueue):
    """
    Task queue driven by an ``async def process_fn(task)``.

    Returning from the processing function completes the task. A processing
    function that raises is logged and counted as failed, and draining
    moves on to the next task.

    Must be used from a single running event loop.
    """

    def __init__(
        self,
        process_fn: AsyncProcessFn,
        options: QueueOptions | None = None,
        metrics: QueueMetrics | None = None,
    ):
        """
        Initialize the queue.

        Args:
            process_fn: Coroutine function awaited for each task.
            options: Queue options. Built from settings when omitted.
            metrics: Metrics collector override.

        Raises:
            TypeError: If process_fn is not callable.
        """
        if not callable(process_fn):
            raise TypeError(f"process_fn must be callable, got {type(process_fn).__name__}")

        super().__init__(options, metrics)

        self._process_fn = process_fn
        self._drain_task: asyncio.Task | None = None
        self._busy = False

    @property
    def process_fn(self) -> AsyncProcessFn:
        return self._process_fn

    @property
    def in_flight(self) -> bool:
        return self._busy

    @property
    def draining(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def process(self) -> None:
        """
        Start draining on the running event loop.

        Does nothing when the queue is empty or a drain is already running;
        a running drain picks up tasks added while it works.

        Raises:
            RuntimeError: If called without a running event loop.
        """
        if self.draining:
            logger.debug("Drain already running", extra={"queue": self.name})
            return

        if self.is_empty():
            logger.debug("Process called on empty queue", extra={"queue": self.name})
            return

        loop = asyncio.get_running_loop()
        self._drain_task = loop.create_task(self._drain(), name=f"drainqueue:{self.name}")

    async def join(self) -> None:
        """Wait until the current drain finishes or is cancelled."""
        task = self._drain_task
        if task is None or task.done():
            return
        await asyncio.wait({task})

    async def stop(self) -> None:
        """
        Cancel the current drain and wait for it to unwind.

        The task in flight stays at the head of the queue unless it was
        removed before processing.
        """
        task = self._drain_task
        if task is None or task.done():
            return

        logger.info("Stopping drain", extra={"queue": self.name})
        task.cancel()
        await asyncio.wait({task})

    async def _drain(self) -> None:
        while self._tasks:
            task = self._shift() if self.shift_on_process else self._tasks[0]
            span = self._start_span(task)
            started = time.monotonic()
            outcome = TaskOutcome.COMPLETED

            self._busy = True
            with queue_context(self.name, self._key(task)):
                logger.debug("Processing task")
                try:
                    await self._process_fn(task)
                except asyncio.CancelledError:
                    if span is not None:
                        span.end()
                    raise
                except Exception as e:
                    outcome = TaskOutcome.FAILED
                    logger.exception(f"Processing function raised: {e}")
                finally:
                    self._busy = False

            # failed tasks are dequeued too; retries belong to process_fn
            self._release_head(task)
            self._record_outcome(task, outcome, started, span)

        logger.debug("Queue drained", extra={"queue": self.name})
