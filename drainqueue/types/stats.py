"""
Queue statistics types.
"""

from pydantic import BaseModel


class QueueStats(BaseModel):
    """
    Point-in-time counters of a queue.
    Used for observability and reporting.
    """

    name: str
    queued: int
    added: int
    duplicates: int
    processed: int
    failed: int
    cleared: int
    in_flight: bool
