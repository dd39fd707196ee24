"""Watched progress service layer.

Business logic for:
- Authoritative merge of newly watched intervals into the stored record
- Resume position updates (last writer wins in server receive order)
- Progress reset

Every read-merge-write for a (user, video) pair runs under a per-key lock,
so concurrent syncs from two tabs compose instead of losing each other's
intervals.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, NamedTuple
from uuid import UUID

import structlog

from src.video.service import VideoCatalog

from .exceptions import VideoNotFoundError
from .intervals import Interval, merge_intervals, partition_valid
from .locks import KeyedLock
from .models import WatchedState, ensure_utc_aware


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class UpdateResult(NamedTuple):
    """Outcome of ``ProgressStore.apply_update``."""

    state: WatchedState
    rejected: list[Interval]


def _client_lag(reported_at: datetime | None, received_at: datetime) -> float | None:
    """Seconds between the client's report and the server applying it."""
    reported_at = ensure_utc_aware(reported_at)
    if reported_at is None:
        return None
    return round((received_at - reported_at).total_seconds(), 3)


# ==============================================================================
# Progress Store
# ==============================================================================


class ProgressStore:
    """Server-side authority for watched intervals."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        video_catalog: VideoCatalog,
        lock: KeyedLock | None = None,
    ):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra session with aexecute()
            keyspace: Keyspace name
            video_catalog: Source of video durations
            lock: Per-key lock (in-process only when omitted)
        """
        self.session = session
        self.keyspace = keyspace
        self.video_catalog = video_catalog
        self.lock = lock or KeyedLock()
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_state = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.watched_progress
            WHERE user_id = ? AND video_id = ?
        """)

        self._upsert_state = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.watched_progress
            (user_id, video_id, intervals, unique_seconds, duration_seconds,
             progress_percentage, last_position, position_updated_at,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def _load(self, user_id: UUID, video_id: UUID) -> WatchedState | None:
        result = await self.session.aexecute(self._get_state, [user_id, video_id])
        row = result.one()
        return WatchedState.from_row(row) if row else None

    async def _save(self, state: WatchedState) -> None:
        await self.session.aexecute(self._upsert_state, state.to_row_params())

    async def _get_duration(self, video_id: UUID) -> int | None:
        """Get video duration from the catalog.

        Raises:
            VideoNotFoundError: If the video does not exist
        """
        video = await self.video_catalog.get_video(video_id)
        if video is None:
            raise VideoNotFoundError
        return video.duration_seconds

    async def get_progress(self, user_id: UUID, video_id: UUID) -> WatchedState:
        """Get stored progress, or the empty state if none exists.

        Raises:
            VideoNotFoundError: If the video does not exist
        """
        duration = await self._get_duration(video_id)
        state = await self._load(user_id, video_id)
        if state is None:
            return WatchedState.empty(user_id, video_id, duration_seconds=duration)

        # Percentage always follows the catalog's current duration
        state.duration_seconds = duration
        return state

    # ==========================================================================
    # Updates
    # ==========================================================================

    async def apply_update(
        self,
        user_id: UUID,
        video_id: UUID,
        new_intervals: Iterable[Interval],
        reported_position: float,
        reported_at: datetime | None = None,
    ) -> UpdateResult:
        """Merge newly watched intervals into the stored record.

        Invalid intervals (start > end, outside the video, unknown duration)
        are logged and skipped; the rest of the batch is still applied.
        Redelivered intervals are harmless because merging is idempotent.

        Args:
            user_id: User UUID
            video_id: Video UUID
            new_intervals: Intervals watched since the client's last sync
            reported_position: Current playback position
            reported_at: When the client observed the position. Only logged:
                positions are ordered by the server clock, never compared
                with client clocks

        Returns:
            UpdateResult with the canonical state and rejected intervals

        Raises:
            VideoNotFoundError: If the video does not exist
            ProgressLockTimeoutError: If the key stays locked too long
        """
        duration = await self._get_duration(video_id)

        accepted, rejected = partition_valid(new_intervals, duration)
        for interval, error in rejected:
            logger.warning(
                "progress_interval_rejected",
                user_id=str(user_id),
                video_id=str(video_id),
                start=interval.start,
                end=interval.end,
                reason=error.message,
            )

        async with self.lock.hold(f"{user_id}:{video_id}"):
            # Taken under the lock so stamps follow the order updates apply
            now = datetime.now(UTC)
            existing = await self._load(user_id, video_id)
            if existing is None:
                existing = WatchedState.empty(user_id, video_id)
                existing.created_at = now

            kept = existing.intervals
            if duration and duration > 0:
                # Re-clamp in case the catalog duration changed
                kept, _ = partition_valid(existing.intervals, duration)

            state = WatchedState(
                user_id=user_id,
                video_id=video_id,
                intervals=merge_intervals([*kept, *accepted]),
                duration_seconds=duration,
                last_position=reported_position,
                position_updated_at=now,
                created_at=existing.created_at or now,
                updated_at=now,
            )
            await self._save(state)

        logger.info(
            "progress_updated",
            user_id=str(user_id),
            video_id=str(video_id),
            accepted=len(accepted),
            rejected=len(rejected),
            intervals=len(state.intervals),
            percentage=round(state.progress_percentage, 2),
            client_lag_s=_client_lag(reported_at, state.position_updated_at),
        )

        return UpdateResult(state=state, rejected=[i for i, _ in rejected])

    async def reset_progress(self, user_id: UUID, video_id: UUID) -> WatchedState:
        """Replace stored progress with the empty initial state.

        Raises:
            VideoNotFoundError: If the video does not exist
        """
        duration = await self._get_duration(video_id)

        async with self.lock.hold(f"{user_id}:{video_id}"):
            now = datetime.now(UTC)
            state = WatchedState.empty(user_id, video_id, duration_seconds=duration)
            state.position_updated_at = now
            state.created_at = now
            state.updated_at = now
            await self._save(state)

        logger.info(
            "progress_reset",
            user_id=str(user_id),
            video_id=str(video_id),
        )

        return state
