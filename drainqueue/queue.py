"""
Sequential task queue with duplicate suppression.

Tasks are drained one at a time: the processing function receives the head
task together with a continuation and the next task is only handed over
once that continuation has been called.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Hashable, Mapping
from types import MappingProxyType
from typing import Any

from opentelemetry.trace import Span, Status, StatusCode

from drainqueue.config import get_settings
from drainqueue.constants import SPAN_PROCESS_TASK, TaskOutcome
from drainqueue.exceptions import ContinuationError
from drainqueue.observability.logging import queue_context
from drainqueue.observability.metrics import QueueMetrics, get_metrics
from drainqueue.observability.tracing import start_span
from drainqueue.types import ProcessFn, QueueOptions, QueueStats, Task

logger = logging.getLogger(__name__)


class BaseTaskQueue(ABC):
    """
    Ordered task storage shared by the queue flavours.

    Holds the FIFO sequence of pending tasks and an index from task key to
    insertion position. The index is only used as a membership test; the
    stored positions are not corrected when tasks are removed.

    Subclasses may set ``default_index_name`` / ``default_shift_on_process``
    and override ``_is_duplicate`` to change what counts as the same task.
    Class defaults apply only when no explicit options are passed.
    """

    default_index_name: str | None = None
    default_shift_on_process: bool | None = None

    def __init__(
        self,
        options: QueueOptions | None = None,
        metrics: QueueMetrics | None = None,
    ):
        """
        Initialize an empty queue.

        Args:
            options: Queue options. Built from settings when omitted.
            metrics: Metrics collector. Defaults to the process-wide one
                unless metrics are disabled in settings.
        """
        settings = get_settings()

        self._options = options or QueueOptions.from_settings(
            index_name=self.default_index_name,
            shift_on_process=self.default_shift_on_process,
        )
        if metrics is None and settings.metrics_enabled:
            metrics = get_metrics()
        self._metrics = metrics
        self._tracing = settings.tracing_enabled

        self._tasks: deque[Task] = deque()
        self._indexes: dict[Hashable, int] = {}

        self._added = 0
        self._duplicates = 0
        self._processed = 0
        self._failed = 0
        self._cleared = 0

    @property
    def name(self) -> str:
        return self._options.name

    @property
    def index_name(self) -> str:
        return self._options.index_name

    @property
    def shift_on_process(self) -> bool:
        return self._options.shift_on_process

    @property
    def options(self) -> QueueOptions:
        return self._options

    @property
    def tasks(self) -> tuple[Task, ...]:
        """Snapshot of the pending tasks, head first."""
        return tuple(self._tasks)

    @property
    def indexes(self) -> Mapping[Hashable, int]:
        """Read-only view of the key index."""
        return MappingProxyType(self._indexes)

    @property
    @abstractmethod
    def in_flight(self) -> bool:
        """Whether a task has been handed over and not finished yet."""

    def __len__(self) -> int:
        return len(self._tasks)

    def add(self, tasks: Task | list[Task] | tuple[Task, ...], start_processing: bool = False) -> Any:
        """
        Add a task, or a list of tasks, to the tail of the queue.

        Tasks whose key is already queued are skipped silently. Processing
        starts only if the queue was empty before this call.

        Args:
            tasks: A single task, or a list/tuple of tasks.
            start_processing: Begin draining if the queue was empty.

        Returns:
            The task, or a list with every input task (duplicates included).
        """
        was_empty = self.is_empty()

        if isinstance(tasks, (list, tuple)):
            result: Any = [self._add_task(task) for task in tasks]
        else:
            result = self._add_task(tasks)

        self._update_depth()

        if was_empty and start_processing:
            self.process()

        return result

    def is_empty(self) -> bool:
        """Check whether no tasks are pending."""
        return not self._tasks

    @abstractmethod
    def process(self) -> None:
        """Start draining from the head task."""

    def clear(self) -> None:
        """
        Drop every pending task.

        A task already handed to the processing function is not affected;
        its completion finds the emptied queue and stops draining.
        """
        dropped = len(self._tasks)
        for task in self._tasks:
            key = self._key(task)
            if key is not None:
                self._indexes.pop(key, None)
        self._tasks.clear()

        self._cleared += dropped
        if self._metrics is not None:
            self._metrics.record_clear(self.name)
        self._update_depth()

        logger.info("Queue cleared", extra={"queue": self.name, "dropped": dropped})

    def stats(self) -> QueueStats:
        """Get a snapshot of the queue counters."""
        return QueueStats(
            name=self.name,
            queued=len(self._tasks),
            added=self._added,
            duplicates=self._duplicates,
            processed=self._processed,
            failed=self._failed,
            cleared=self._cleared,
            in_flight=self.in_flight,
        )

    def _key(self, task: Task) -> Hashable | None:
        return self._options.key_fn(task, self.index_name)

    def _add_task(self, task: Task) -> Task:
        if self._is_duplicate(task):
            self._duplicates += 1
            if self._metrics is not None:
                self._metrics.record_duplicate(self.name)
            logger.debug(
                "Duplicate task skipped",
                extra={"queue": self.name, "task_key": self._key(task)},
            )
        else:
            self._push(task)
        return task

    def _is_duplicate(self, task: Task) -> bool:
        """
        Check if a task is already queued.

        By default a task is a duplicate when its key is in the index. Tasks
        without a key are never duplicates.
        """
        if self._options.is_duplicate is not None:
            return self._options.is_duplicate(task, self.indexes)
        key = self._key(task)
        return key is not None and key in self._indexes

    def _push(self, task: Task) -> None:
        self._tasks.append(task)
        key = self._key(task)
        if key is not None:
            self._indexes[key] = len(self._tasks) - 1

        self._added += 1
        if self._metrics is not None:
            self._metrics.record_task_added(self.name)

    def _shift(self) -> Task:
        task = self._tasks.popleft()
        key = self._key(task)
        if key is not None:
            self._indexes.pop(key, None)
        self._update_depth()
        return task

    def _release_head(self, task: Task) -> None:
        """Dequeue ``task`` after processing unless it was removed already."""
        if not self.shift_on_process and self._tasks and self._tasks[0] is task:
            self._shift()

    def _update_depth(self) -> None:
        if self._metrics is not None:
            self._metrics.update_queue_depth(self.name, len(self._tasks))

    def _start_span(self, task: Task) -> Span | None:
        if not self._tracing:
            return None
        return start_span(SPAN_PROCESS_TASK, queue=self.name, task_key=self._key(task))

    def _record_outcome(
        self,
        task: Task,
        outcome: TaskOutcome,
        started: float,
        span: Span | None,
    ) -> None:
        duration = time.monotonic() - started

        if outcome == TaskOutcome.COMPLETED:
            self._processed += 1
        else:
            self._failed += 1

        if self._metrics is not None:
            self._metrics.record_task_processed(self.name, outcome.value, duration)

        if span is not None:
            if outcome == TaskOutcome.FAILED:
                span.set_status(Status(StatusCode.ERROR))
            span.end()

        logger.debug(
            "Task finished",
            extra={
                "queue": self.name,
                "task_key": self._key(task),
                "outcome": outcome.value,
                "duration": duration,
            },
        )


class Continuation:
    """
    Completion signal for one task.

    Calling it tells the queue the task is finished. It must be called
    exactly once, from anywhere and at any time.
    """

    __slots__ = ("_queue", "task", "started", "span", "called", "stale")

    def __init__(self, queue: "TaskQueue", task: Task, span: Span | None):
        self._queue = queue
        self.task = task
        self.started = time.monotonic()
        self.span = span
        self.called = False
        self.stale = False

    def __call__(self) -> None:
        self._queue._complete(self)


class TaskQueue(BaseTaskQueue):
    """
    Task queue driven by a callback-style processing function.

    Example:
        queue = TaskQueue(lambda task, done: task["fn"](task["opts"], done))
        queue.add({"id": 1, "fn": send, "opts": {}}, True)

    Continuations called synchronously from inside the processing function
    are picked up by the running drain loop, so long chains of synchronous
    tasks run iteratively.
    """

    def __init__(
        self,
        process_fn: ProcessFn,
        options: QueueOptions | None = None,
        metrics: QueueMetrics | None = None,
    ):
        """
        Initialize the queue.

        Args:
            process_fn: Called as ``process_fn(task, done)`` for each task.
            options: Queue options. Built from settings when omitted.
            metrics: Metrics collector override.

        Raises:
            TypeError: If process_fn is not callable.
        """
        if not callable(process_fn):
            raise TypeError(f"process_fn must be callable, got {type(process_fn).__name__}")

        super().__init__(options, metrics)

        self._process_fn = process_fn
        self._current: Continuation | None = None
        self._draining = False

    @property
    def process_fn(self) -> ProcessFn:
        return self._process_fn

    @property
    def in_flight(self) -> bool:
        return self._current is not None

    def process(self) -> None:
        """
        Hand the head task to the processing function.

        Does nothing when the queue is empty or a task is still in flight;
        in the latter case the pending continuation resumes draining.
        """
        if self._current is not None or self._draining:
            logger.debug("Drain already running", extra={"queue": self.name})
            return

        if self.is_empty():
            logger.debug("Process called on empty queue", extra={"queue": self.name})
            return

        self._drain()

    def _drain(self) -> None:
        self._draining = True
        try:
            while self._tasks:
                task = self._shift() if self.shift_on_process else self._tasks[0]
                done = Continuation(self, task, self._start_span(task))
                self._current = done

                with queue_context(self.name, self._key(task)):
                    logger.debug("Processing task")

                    try:
                        self._process_fn(task, done)
                    except Exception:
                        self._abort(done)
                        raise

                if not done.called:
                    # completes later; the continuation restarts the loop
                    return
        finally:
            self._draining = False

        logger.debug("Queue drained", extra={"queue": self.name})

    def _complete(self, done: Continuation) -> None:
        if done.stale:
            raise ContinuationError(
                "Continuation called after its processing function raised",
                task_key=self._key(done.task),
            )
        if done.called:
            raise ContinuationError(
                "Continuation called more than once",
                task_key=self._key(done.task),
            )

        done.called = True
        if self._current is done:
            self._current = None

        self._release_head(done.task)
        self._record_outcome(done.task, TaskOutcome.COMPLETED, done.started, done.span)

        if self._draining:
            return

        if self._tasks:
            self._drain()
        else:
            logger.debug("Queue drained", extra={"queue": self.name})

    def _abort(self, done: Continuation) -> None:
        if done.called:
            return

        done.stale = True
        if self._current is done:
            self._current = None

        self._record_outcome(done.task, TaskOutcome.FAILED, done.started, done.span)

        logger.warning(
            "Processing function raised",
            extra={"queue": self.name, "task_key": self._key(done.task)},
        )
