"""Watched interval type and canonical merge.

An interval is an inclusive ``[start, end]`` range of whole seconds that was
actually played. A canonical interval list is sorted by ``start`` and no two
consecutive entries overlap or touch: ``next.start > current.end + 1``.

Merging is pure, idempotent, order independent and associative under union,
so repeated client and server merges of the same data are always safe.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .exceptions import InvalidIntervalError


@dataclass(frozen=True, order=True)
class Interval:
    """Inclusive range of watched seconds.

    Attributes:
        start: First watched second (>= 0)
        end: Last watched second (>= start)
    """

    start: int
    end: int

    @property
    def length(self) -> int:
        """Number of seconds covered (inclusive on both ends)."""
        return self.end - self.start + 1

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary."""
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_pair(cls, pair: Sequence[Any]) -> "Interval":
        """Create Interval from a ``(start, end)`` pair (Cassandra tuple)."""
        return cls(start=int(pair[0]), end=int(pair[1]))

    def __repr__(self) -> str:
        return f"<Interval [{self.start}, {self.end}]>"


def validate_interval(interval: Interval) -> Interval:
    """Reject intervals that cannot be merged.

    Raises:
        InvalidIntervalError: If start > end or start is negative
    """
    if interval.start > interval.end:
        raise InvalidIntervalError(
            f"Interval start {interval.start} is after end {interval.end}"
        )
    if interval.start < 0:
        raise InvalidIntervalError(f"Interval start {interval.start} is negative")
    return interval


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Collapse intervals into the canonical minimal list.

    Intervals that overlap or are separated by at most one second
    (``cur.start <= last.end + 1``) are joined.

    Args:
        intervals: Any number of intervals, in any order

    Returns:
        Sorted, non-overlapping, non-adjacent intervals

    Raises:
        InvalidIntervalError: If any interval has start > end
    """
    ordered = sorted(validate_interval(interval) for interval in intervals)
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end + 1:
            if current.end > last.end:
                merged[-1] = Interval(last.start, current.end)
        else:
            merged.append(current)
    return merged


# ==============================================================================
# Clamping (done by callers before merging)
# ==============================================================================


def clamp_interval(interval: Interval, duration: int | None) -> Interval:
    """Clamp interval bounds into ``[0, duration - 1]``.

    Args:
        interval: Interval to clamp (start <= end expected)
        duration: Video duration in seconds

    Returns:
        Clamped interval

    Raises:
        InvalidIntervalError: If start > end, duration is missing or not
            positive, or the interval lies entirely outside the video
    """
    if interval.start > interval.end:
        raise InvalidIntervalError(
            f"Interval start {interval.start} is after end {interval.end}"
        )
    if duration is None or duration <= 0:
        raise InvalidIntervalError(
            f"Cannot clamp interval without a positive duration (got {duration})"
        )

    last_second = duration - 1
    if interval.end < 0 or interval.start > last_second:
        raise InvalidIntervalError(
            f"Interval [{interval.start}, {interval.end}] is outside "
            f"[0, {last_second}]"
        )
    return Interval(max(0, interval.start), min(last_second, interval.end))


def partition_valid(
    intervals: Iterable[Interval],
    duration: int | None,
) -> tuple[list[Interval], list[tuple[Interval, InvalidIntervalError]]]:
    """Clamp a batch, separating the intervals that must be rejected.

    A bad interval never fails the whole batch.

    Returns:
        Tuple of (accepted clamped intervals, rejected intervals with reason)
    """
    accepted: list[Interval] = []
    rejected: list[tuple[Interval, InvalidIntervalError]] = []
    for interval in intervals:
        try:
            accepted.append(clamp_interval(interval, duration))
        except InvalidIntervalError as e:
            rejected.append((interval, e))
    return accepted, rejected


def interval_from_positions(start: float, end: float) -> Interval:
    """Build an interval from two playback positions in fractional seconds.

    Positions are floored to the second they fall in, so an interval closed
    at the same instant it was opened covers exactly one second.
    """
    return Interval(math.floor(start), math.floor(end))
