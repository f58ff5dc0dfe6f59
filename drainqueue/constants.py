"""
Package constants.
Centralized location for default values, metric names and span names.
"""

from enum import StrEnum


class TaskOutcome(StrEnum):
    """How a task left the queue after being handed to the processing function."""

    COMPLETED = "completed"
    FAILED = "failed"


# Default values
DEFAULT_INDEX_NAME = "id"
DEFAULT_QUEUE_NAME = "default"
DEFAULT_TYPE_FIELD = "type"

# Metrics names
METRIC_QUEUE_DEPTH = "task_queue_depth"
METRIC_TASKS_ADDED = "tasks_added_total"
METRIC_TASKS_DUPLICATE = "tasks_duplicate_total"
METRIC_TASKS_PROCESSED = "tasks_processed_total"
METRIC_TASK_DURATION = "task_processing_seconds"
METRIC_QUEUE_CLEARS = "queue_clears_total"

# Trace span names
SPAN_PROCESS_TASK = "process_task"
