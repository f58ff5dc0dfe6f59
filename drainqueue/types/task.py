"""
Task-related type definitions.
"""

from collections.abc import Awaitable, Callable, Hashable, Mapping
from dataclasses import dataclass
from typing import Any

from drainqueue.config import get_settings

# Tasks are caller-defined records: mappings or plain objects.
Task = Any

# Zero-argument completion signal handed to the processing function
Done = Callable[[], None]

ProcessFn = Callable[[Task, Done], None]
AsyncProcessFn = Callable[[Task], Awaitable[None]]

KeyFn = Callable[[Task, str], Hashable | None]
DuplicatePredicate = Callable[[Task, Mapping[Hashable, int]], bool]


def get_task_key(task: Task, index_name: str) -> Hashable | None:
    """
    Read the index key of a task.

    Mappings are read by item, anything else by attribute. A key field that
    is present but set to None reads the same as a missing one, so such a
    task is never indexed or deduplicated.

    Args:
        task: The task record.
        index_name: Name of the key field.

    Returns:
        The key value, or None if the task does not carry one.
    """
    if isinstance(task, Mapping):
        return task.get(index_name)
    return getattr(task, index_name, None)


@dataclass(frozen=True)
class QueueOptions:
    """
    Construction-time options of a queue.

    ``key_fn`` decides what identifies a task and ``is_duplicate`` decides
    whether an incoming task is already queued. When ``is_duplicate`` is
    None the queue checks key membership in its index.
    """

    name: str
    index_name: str
    shift_on_process: bool = False
    key_fn: KeyFn = get_task_key
    is_duplicate: DuplicatePredicate | None = None

    @classmethod
    def from_settings(cls, **overrides: Any) -> "QueueOptions":
        """
        Build options from settings, applying any non-None overrides.

        Args:
            **overrides: Field values that take precedence over settings.

        Returns:
            QueueOptions: The resolved options.
        """
        settings = get_settings()
        values: dict[str, Any] = {
            "name": settings.queue_name,
            "index_name": settings.index_name,
            "shift_on_process": settings.shift_on_process,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
