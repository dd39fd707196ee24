"""Database models for watched-interval progress.

Cassandra table definitions for:
- Watched progress: canonical merged intervals and resume position per
  (user, video)

The row is always written as a whole (intervals + percentage + position),
never patched column by column, so a reader never sees a percentage that
disagrees with its intervals.
"""

import math
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from .calculator import progress_percentage, unique_seconds
from .intervals import Interval


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Watched progress per user and video
# Partition key: (user_id, video_id) - every update reads and writes one row
WATCHED_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.watched_progress (
    user_id UUID,
    video_id UUID,
    intervals LIST<FROZEN<TUPLE<INT, INT>>>,
    unique_seconds INT,
    duration_seconds INT,
    progress_percentage DOUBLE,
    last_position DOUBLE,
    position_updated_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id, video_id))
)
"""

# All CQL statements for table setup
PROGRESS_TABLES_CQL = [
    WATCHED_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


def _stored_position(value: float | None) -> float:
    """Rows written before positions were bounded may hold NaN or infinity."""
    if value is None or not math.isfinite(value):
        return 0.0
    return value


class WatchedState:
    """Watched progress of one user on one video.

    ``progress_percentage`` and ``unique_seconds`` are derived from
    ``intervals`` and ``duration_seconds``; they are recomputed whenever
    the intervals change and cannot be set independently.

    Attributes:
        user_id: User UUID
        video_id: Video UUID
        intervals: Canonical merged intervals
        duration_seconds: Video duration used for the percentage
        last_position: Resume position in seconds
        position_updated_at: Timestamp of the request that set last_position
        created_at: First update timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        user_id: UUID,
        video_id: UUID,
        intervals: Iterable[Interval] = (),
        duration_seconds: int | None = None,
        last_position: float = 0.0,
        position_updated_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.video_id = video_id
        self.intervals = list(intervals)
        self.duration_seconds = duration_seconds
        self.last_position = last_position
        self.position_updated_at = ensure_utc_aware(position_updated_at)
        self.created_at = ensure_utc_aware(created_at)
        self.updated_at = ensure_utc_aware(updated_at) or datetime.now(UTC)

    @classmethod
    def empty(
        cls,
        user_id: UUID,
        video_id: UUID,
        duration_seconds: int | None = None,
    ) -> "WatchedState":
        """Initial state: no intervals, position 0, 0%."""
        return cls(
            user_id=user_id,
            video_id=video_id,
            duration_seconds=duration_seconds,
        )

    @property
    def unique_seconds(self) -> int:
        """Seconds watched at least once."""
        return unique_seconds(self.intervals)

    @property
    def progress_percentage(self) -> float:
        """Percentage watched (0-100)."""
        return progress_percentage(self.intervals, self.duration_seconds)

    @classmethod
    def from_row(cls, row: Any) -> "WatchedState":
        """Create WatchedState instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            video_id=row.video_id,
            intervals=[Interval.from_pair(pair) for pair in row.intervals or []],
            duration_seconds=row.duration_seconds,
            last_position=_stored_position(row.last_position),
            position_updated_at=row.position_updated_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_row_params(self) -> list[Any]:
        """Bind parameters for the upsert statement (column order)."""
        return [
            self.user_id,
            self.video_id,
            [(interval.start, interval.end) for interval in self.intervals],
            self.unique_seconds,
            self.duration_seconds,
            self.progress_percentage,
            self.last_position,
            self.position_updated_at,
            self.created_at,
            self.updated_at,
        ]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "video_id": self.video_id,
            "intervals": [interval.to_dict() for interval in self.intervals],
            "unique_seconds": self.unique_seconds,
            "duration_seconds": self.duration_seconds,
            "progress_percentage": self.progress_percentage,
            "last_position": self.last_position,
            "position_updated_at": self.position_updated_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<WatchedState user={self.user_id} video={self.video_id} "
            f"{len(self.intervals)} intervals {self.progress_percentage:.1f}%>"
        )
