"""Watched-interval progress tracking module.

Provides:
- Canonical interval merge and watch percentage
- Server-side authoritative merge-and-persist of watched intervals
- Resume position resolution
"""

from .calculator import progress_percentage, unique_seconds
from .exceptions import InvalidIntervalError, ProgressError, VideoNotFoundError
from .intervals import Interval, clamp_interval, merge_intervals, partition_valid
from .models import PROGRESS_TABLES_CQL, WatchedState
from .resume import resolve_resume_position


__all__ = [
    "PROGRESS_TABLES_CQL",
    "Interval",
    "InvalidIntervalError",
    "ProgressError",
    "VideoNotFoundError",
    "WatchedState",
    "clamp_interval",
    "merge_intervals",
    "partition_valid",
    "progress_percentage",
    "resolve_resume_position",
    "unique_seconds",
]
