"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from drainqueue.observability.logging import queue_context, setup_logging
from drainqueue.observability.metrics import (
    QueueMetrics,
    get_metrics,
    setup_metrics,
)
from drainqueue.observability.tracing import get_tracer, setup_tracing, start_span

__all__ = [
    "setup_logging",
    "queue_context",
    "setup_metrics",
    "get_metrics",
    "QueueMetrics",
    "setup_tracing",
    "get_tracer",
    "start_span",
]
