"""
Worker module.
Contains the asyncio queue and the task handler registry.
"""

from drainqueue.worker.async_queue import AsyncTaskQueue
from drainqueue.worker.handlers import (
    call_task_fn,
    dispatch_task,
    get_handler,
    list_handlers,
    register_handler,
    unregister_handler,
)

__all__ = [
    "AsyncTaskQueue",
    "call_task_fn",
    "dispatch_task",
    "get_handler",
    "list_handlers",
    "register_handler",
    "unregister_handler",
]
