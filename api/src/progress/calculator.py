"""Watch progress computed from canonical intervals."""

from collections.abc import Iterable

from .intervals import Interval


def unique_seconds(intervals: Iterable[Interval]) -> int:
    """Total seconds covered by a merged interval list."""
    return sum(interval.length for interval in intervals)


def progress_percentage(intervals: Iterable[Interval], duration: int | None) -> float:
    """Percentage of the video watched, clamped to ``[0, 100]``.

    A missing or non-positive duration yields 0 instead of dividing by zero.

    Args:
        intervals: Merged (non-overlapping) intervals
        duration: Video duration in seconds

    Returns:
        Percentage between 0.0 and 100.0
    """
    if not duration or duration <= 0:
        return 0.0
    percentage = unique_seconds(intervals) / duration * 100
    return max(0.0, min(100.0, percentage))
