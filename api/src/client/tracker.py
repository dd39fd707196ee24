"""Playback event tracker.

Turns raw player events into watched intervals. Two states:

- ``IDLE``: nothing is being recorded
- ``TRACKING``: one open interval anchored where playback (re)started

Closing an interval (pause, seek, ended, teardown) emits it into the pending
set, which holds everything not yet acknowledged by the server, and merges
it into the local watched list for immediate feedback. The local list is
advisory: after each successful sync it is replaced by the server's
canonical list (plus whatever is still pending).
"""

from collections.abc import Iterable
from enum import Enum

import structlog

from src.progress.calculator import progress_percentage, unique_seconds
from src.progress.exceptions import InvalidIntervalError
from src.progress.intervals import (
    Interval,
    clamp_interval,
    interval_from_positions,
    merge_intervals,
)

from .events import (
    EndedEvent,
    PauseEvent,
    PlaybackEvent,
    PlayEvent,
    SeekEvent,
    TickEvent,
)


logger = structlog.get_logger(__name__)


class TrackerState(str, Enum):
    """Tracker states."""

    IDLE = "idle"
    TRACKING = "tracking"


class PlaybackEventTracker:
    """State machine from playback events to watched intervals."""

    def __init__(self, duration: int | None = None, max_tick_jump: float = 10.0):
        """Initialize an idle tracker.

        Args:
            duration: Video duration in seconds (intervals are clamped to it)
            max_tick_jump: Largest forward step between two ticks still
                counted as continuous playback
        """
        self.duration = duration
        self.max_tick_jump = max_tick_jump
        self.state = TrackerState.IDLE
        self.position = 0.0

        self._anchor: float | None = None
        self._pending: list[Interval] = []
        self._watched: list[Interval] = []

    # ==========================================================================
    # Player events
    # ==========================================================================

    def on_play(self, position: float) -> None:
        """Open an interval at ``position`` (ignored while already tracking)."""
        self.position = position
        if self.state is TrackerState.TRACKING:
            return
        self._anchor = position
        self.state = TrackerState.TRACKING

    def on_pause(self, position: float) -> Interval | None:
        """Close the open interval at ``position``."""
        return self._stop(position)

    def on_ended(self, position: float) -> Interval | None:
        """Close the open interval at the final position."""
        return self._stop(position)

    def on_seek(
        self, target: float, from_position: float | None = None
    ) -> Interval | None:
        """Close at the pre-seek time and reopen at ``target``.

        Seeking while idle only moves the position; tracking resumes on the
        next play.
        """
        if self.state is TrackerState.IDLE:
            self.position = target
            return None

        end = self.position if from_position is None else from_position
        emitted = self._close(end)
        self._anchor = target
        self.position = target
        return emitted

    def on_tick(self, position: float) -> Interval | None:
        """Extend the open interval's provisional end.

        A tick that goes backwards, or jumps forward further than
        ``max_tick_jump``, means the player moved without reporting a seek;
        it is handled as one so the skipped range is not credited.
        """
        if self.state is TrackerState.IDLE:
            self.position = position
            return None

        step = position - self.position
        if step < 0 or step > self.max_tick_jump:
            logger.debug(
                "playback_implicit_seek",
                from_position=self.position,
                to_position=position,
            )
            return self.on_seek(position)

        self.position = position
        return None

    def teardown(self, position: float | None = None) -> Interval | None:
        """Close any open interval when the player goes away."""
        return self._stop(self.position if position is None else position)

    def handle(self, event: PlaybackEvent) -> Interval | None:
        """Apply a typed playback event.

        Returns:
            The interval closed by the event, if any
        """
        if isinstance(event, PlayEvent):
            self.on_play(event.position)
            return None
        if isinstance(event, PauseEvent):
            return self.on_pause(event.position)
        if isinstance(event, SeekEvent):
            return self.on_seek(event.target, event.from_position)
        if isinstance(event, TickEvent):
            return self.on_tick(event.position)
        if isinstance(event, EndedEvent):
            return self.on_ended(event.position)
        msg = f"Unsupported playback event: {event!r}"
        raise TypeError(msg)

    # ==========================================================================
    # Interval bookkeeping
    # ==========================================================================

    def _stop(self, position: float) -> Interval | None:
        if self.state is TrackerState.IDLE:
            self.position = position
            return None
        emitted = self._close(position)
        self.position = position
        self._anchor = None
        self.state = TrackerState.IDLE
        return emitted

    def _close(self, end: float) -> Interval | None:
        interval = self._open_interval(end)
        if interval is None:
            return None
        self._pending = merge_intervals([*self._pending, interval])
        self._watched = merge_intervals([*self._watched, interval])
        return interval

    def _open_interval(self, end: float) -> Interval | None:
        """Interval from the anchor to ``end``, clamped to the video."""
        if self._anchor is None:
            return None

        # Never shorter than the anchor second itself
        start = max(0.0, self._anchor)
        interval = interval_from_positions(start, max(start, end))
        if not self.duration or self.duration <= 0:
            return interval
        try:
            return clamp_interval(interval, self.duration)
        except InvalidIntervalError as e:
            logger.debug(
                "playback_interval_discarded",
                start=interval.start,
                end=interval.end,
                reason=e.message,
            )
            return None

    def _provisional(self) -> list[Interval]:
        if self.state is not TrackerState.TRACKING:
            return []
        interval = self._open_interval(self.position)
        return [interval] if interval else []

    def pending_snapshot(self) -> list[Interval]:
        """Everything the server has not acknowledged yet.

        Includes the still-open interval up to the last observed position,
        so a crash loses at most one tick of playback.
        """
        return merge_intervals([*self._pending, *self._provisional()])

    def acknowledge(self, sent: Iterable[Interval]) -> None:
        """Drop pending intervals covered by an acknowledged request."""
        sent = list(sent)
        self._pending = [
            interval
            for interval in self._pending
            if not any(
                covering.start <= interval.start and interval.end <= covering.end
                for covering in sent
            )
        ]

    def reconcile(self, server_intervals: Iterable[Interval]) -> None:
        """Adopt the server's canonical list, keeping unacknowledged data."""
        self._watched = merge_intervals([*server_intervals, *self._pending])

    def seed(self, intervals: Iterable[Interval], last_position: float) -> None:
        """Start from previously stored progress."""
        self._watched = merge_intervals(intervals)
        self.position = last_position

    def reset(self) -> None:
        """Forget all progress; an open interval restarts at the current time."""
        self._pending = []
        self._watched = []
        if self.state is TrackerState.TRACKING:
            self._anchor = self.position

    # ==========================================================================
    # Local feedback
    # ==========================================================================

    @property
    def pending(self) -> list[Interval]:
        """Closed intervals not yet acknowledged."""
        return list(self._pending)

    @property
    def watched_intervals(self) -> list[Interval]:
        """Local merged view, including the open interval."""
        return merge_intervals([*self._watched, *self._provisional()])

    @property
    def unique_seconds(self) -> int:
        return unique_seconds(self.watched_intervals)

    @property
    def progress(self) -> float:
        """Locally computed watch percentage."""
        return progress_percentage(self.watched_intervals, self.duration)

    def __repr__(self) -> str:
        return (
            f"<PlaybackEventTracker {self.state.value} position={self.position} "
            f"pending={len(self._pending)}>"
        )
