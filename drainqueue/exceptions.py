"""
Exceptions raised by the queue.
"""


class TaskQueueError(Exception):
    """Base class for queue errors."""


class ContinuationError(TaskQueueError):
    """
    A completion callback was misused.

    Raised when a continuation is called more than once, or after the
    processing function it was handed to raised instead of finishing.
    """

    def __init__(self, message: str, task_key: object = None):
        super().__init__(message)
        self.task_key = task_key
