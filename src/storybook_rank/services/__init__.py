# src/storybook_rank/services/__init__.py
"""Business logic services for read-count ranking."""

from .popularity import PopularityService
from .read_count import IncrementOutcome, IncrementResult, ReadCountIncrementer
from .task_queue import ReadCountQueue, ReadCountWorker

__all__ = [
    "PopularityService",
    "IncrementOutcome",
    "IncrementResult",
    "ReadCountIncrementer",
    "ReadCountQueue",
    "ReadCountWorker",
]
