"""
Type definitions for the task queue.
"""

from drainqueue.types.stats import QueueStats
from drainqueue.types.task import (
    AsyncProcessFn,
    Done,
    DuplicatePredicate,
    KeyFn,
    ProcessFn,
    QueueOptions,
    Task,
    get_task_key,
)

__all__ = [
    # Task types
    "Task",
    "Done",
    "ProcessFn",
    "AsyncProcessFn",
    "KeyFn",
    "DuplicatePredicate",
    "QueueOptions",
    "get_task_key",
    # Stats types
    "QueueStats",
]
