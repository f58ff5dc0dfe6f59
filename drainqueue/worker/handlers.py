"""
Task handlers registry and implementations.

``dispatch_task`` is a ready-made processing function for ``TaskQueue``: it
routes each task to the handler registered for the task's ``type`` field.
Handlers receive the task and its continuation and must call the
continuation exactly once.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from drainqueue.constants import DEFAULT_TYPE_FIELD
from drainqueue.types import Done, Task

logger = logging.getLogger(__name__)

# Type alias for task handler functions
TaskHandler = Callable[[Task, Done], None]

# Handler registry
_handlers: dict[str, TaskHandler] = {}


def _field(task: Task, name: str, default: Any = None) -> Any:
    if isinstance(task, Mapping):
        return task.get(name, default)
    return getattr(task, name, default)


def register_handler(task_type: str) -> Callable[[TaskHandler], TaskHandler]:
    """
    Decorator to register a task handler.

    Args:
        task_type: The task type this handler processes.

    Returns:
        Decorator function.

    Example:
        @register_handler("send_email")
        def handle_send_email(task, done):
            ...
    """
    def decorator(handler: TaskHandler) -> TaskHandler:
        _handlers[task_type] = handler
        logger.debug(f"Registered handler for task type: {task_type}")
        return handler
    return decorator


def get_handler(task_type: str) -> TaskHandler | None:
    """
    Get the handler for a task type.

    Args:
        task_type: The task type.

    Returns:
        The handler function or None if not found.
    """
    return _handlers.get(task_type)


def unregister_handler(task_type: str) -> TaskHandler | None:
    """Remove and return the handler for a task type."""
    return _handlers.pop(task_type, None)


def list_handlers() -> list[str]:
    """List all registered task types."""
    return list(_handlers.keys())


def call_task_fn(task: Task, done: Done) -> None:
    """
    Processing function for tasks that carry their own work.

    Calls ``task["fn"](task["opts"], done)``.

    Raises:
        TypeError: If the task has no callable ``fn`` field.
    """
    fn = _field(task, "fn")
    if not callable(fn):
        raise TypeError("Task has no callable 'fn' field")
    fn(_field(task, "opts"), done)


# ============================================================================
# Built-in task handlers
# ============================================================================


@register_handler("noop")
def handle_noop(task: Task, done: Done) -> None:
    """Complete immediately."""
    done()


@register_handler("call")
def handle_call(task: Task, done: Done) -> None:
    """Run the function carried by the task."""
    call_task_fn(task, done)


@register_handler("defer")
def handle_defer(task: Task, done: Done) -> None:
    """
    Complete on a later turn of the running event loop.

    Task opts may contain:
    - delay: Seconds to wait before completing (default 0)
    """
    opts = _field(task, "opts") or {}
    delay = opts.get("delay", 0)

    loop = asyncio.get_running_loop()
    if delay:
        loop.call_later(delay, done)
    else:
        loop.call_soon(done)


def dispatch_task(task: Task, done: Done) -> None:
    """
    Process a task using the handler registered for its type.

    Unknown types and handlers that raise before completing are logged and
    the task is completed, so the queue keeps draining. A completion the
    failed handler scheduled for later is then ignored.

    Args:
        task: The task.
        done: The task's continuation.
    """
    task_type = _field(task, DEFAULT_TYPE_FIELD)
    handler = get_handler(task_type) if task_type is not None else None

    if handler is None:
        logger.error(
            f"No handler for task type: {task_type}",
            extra={"task_type": task_type},
        )
        done()
        return

    completed = False
    abandoned = False

    def finish() -> None:
        nonlocal completed
        if abandoned:
            logger.debug(
                "Ignoring completion after handler failure",
                extra={"task_type": task_type},
            )
            return
        completed = True
        done()

    try:
        handler(task, finish)
    except Exception as e:
        logger.exception(
            "Handler raised exception",
            extra={"task_type": task_type, "error": str(e)},
        )
        if not completed:
            abandoned = True
            done()
