"""Typed playback events and the player capability the client relies on.

Player integrations translate their own callbacks into these events (or
call the matching ``PlaybackSession`` methods directly), so nothing in the
tracker depends on a particular player library.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class PlayEvent:
    """Playback started or resumed at ``position``."""

    position: float


@dataclass(frozen=True)
class PauseEvent:
    """Playback paused at ``position``."""

    position: float


@dataclass(frozen=True)
class SeekEvent:
    """User jumped to ``target``.

    ``from_position`` is the pre-seek time when the player reports it;
    otherwise the last observed position is used.
    """

    target: float
    from_position: float | None = None


@dataclass(frozen=True)
class TickEvent:
    """Periodic position report during continuous playback."""

    position: float


@dataclass(frozen=True)
class EndedEvent:
    """Playback reached the end of the video."""

    position: float


PlaybackEvent = PlayEvent | PauseEvent | SeekEvent | TickEvent | EndedEvent


@runtime_checkable
class PlayerAdapter(Protocol):
    """What a playback session needs from the embedding player."""

    @property
    def current_time(self) -> float:
        """Current playback position in seconds."""
        ...

    @property
    def duration(self) -> float | None:
        """Media duration in seconds, when the player knows it."""
        ...

    def seek_to(self, seconds: float) -> None:
        """Move the playhead."""
        ...
