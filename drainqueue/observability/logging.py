"""
Structured logging for queue events using structlog.

The queue logs through the standard library under the ``drainqueue`` logger
name, passing its fields (``queue``, ``task_key``, ``outcome``, ``duration``,
``dropped``) as ``extra``. ``setup_logging`` renders those records through
structlog; ``queue_context`` binds the draining queue and task so records
emitted by processing functions carry them too.
"""

import logging
import sys
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from typing import Any, TextIO

import structlog
from opentelemetry import trace

from drainqueue.config import get_settings

PACKAGE_LOGGER = "drainqueue"

_SCALAR_TYPES = (str, int, float, bool)


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add OpenTelemetry trace context to log records.

    Args:
        logger: The logger instance.
        method_name: The method name being called.
        event_dict: The event dictionary.

    Returns:
        The event dictionary with trace context added.
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def format_task_fields(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Normalize the task fields the queue attaches to its records.

    Task keys can be any hashable, so non-scalar keys are rendered with
    ``repr``. Durations arrive in seconds and are emitted as ``duration_ms``.
    """
    key = event_dict.get("task_key")
    if key is not None and not isinstance(key, _SCALAR_TYPES):
        event_dict["task_key"] = repr(key)

    duration = event_dict.pop("duration", None)
    if duration is not None:
        event_dict["duration_ms"] = round(duration * 1000, 3)

    return event_dict


@contextmanager
def queue_context(queue: str, task_key: Hashable | None = None) -> Iterator[None]:
    """
    Bind the queue name, and the task key if any, for the enclosed block.

    Args:
        queue: Queue name.
        task_key: Key of the task being processed.
    """
    fields: dict[str, Any] = {"queue": queue}
    if task_key is not None:
        fields["task_key"] = task_key
    with structlog.contextvars.bound_contextvars(**fields):
        yield


def setup_logging(stream: TextIO | None = None) -> logging.Handler:
    """
    Render the package's log records through structlog.

    Only the ``drainqueue`` logger is configured; the host application's
    root logger is left alone. Calling it again replaces the handler.

    Args:
        stream: Output stream. Defaults to stdout.

    Returns:
        The installed handler.
    """
    settings = get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
        format_task_fields,
    ]

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers = [handler]
    package_logger.setLevel(log_level)
    package_logger.propagate = False

    return handler
