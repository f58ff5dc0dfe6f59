"""
Sequential Task Queue

A single-consumer task queue with duplicate suppression that drains tasks one
at a time, letting each processed task decide when the next may begin.
"""

__version__ = "1.0.0"

from drainqueue.exceptions import ContinuationError, TaskQueueError
from drainqueue.queue import BaseTaskQueue, Continuation, TaskQueue
from drainqueue.types import QueueOptions, QueueStats
from drainqueue.worker import AsyncTaskQueue

__all__ = [
    "AsyncTaskQueue",
    "BaseTaskQueue",
    "Continuation",
    "ContinuationError",
    "QueueOptions",
    "QueueStats",
    "TaskQueue",
    "TaskQueueError",
]
