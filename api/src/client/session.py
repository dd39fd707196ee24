"""Playback session: progress tracking for one video in one player.

A session is created by whatever owns the player, receives its callbacks
and is closed with it. Nothing is shared between sessions.

Usage:
    async with PlaybackSession(api, video_id, player) as session:
        await session.load()
        session.on_ready()
        ...
        session.on_play()
"""

from uuid import UUID, uuid4

import structlog

from src.progress.intervals import Interval
from src.progress.resume import resolve_resume_position
from src.progress.schemas import WatchedStateResponse

from .api import ProgressApi
from .config import SyncSettings, get_sync_settings
from .events import (
    EndedEvent,
    PauseEvent,
    PlaybackEvent,
    PlayerAdapter,
    PlayEvent,
    SeekEvent,
    TickEvent,
)
from .exceptions import SyncError
from .sync import ProgressSyncClient
from .tracker import PlaybackEventTracker


logger = structlog.get_logger(__name__)


class PlaybackSession:
    """Owns the tracker and sync client for one (video, player) pair."""

    def __init__(
        self,
        api: ProgressApi,
        video_id: UUID,
        player: PlayerAdapter,
        settings: SyncSettings | None = None,
    ) -> None:
        self.api = api
        self.video_id = video_id
        self.player = player
        self.settings = settings or get_sync_settings()

        duration = player.duration
        self.tracker = PlaybackEventTracker(
            duration=int(duration) if duration else None,
            max_tick_jump=self.settings.max_tick_jump,
        )
        self.sync = ProgressSyncClient(api, self.tracker, video_id, self.settings)
        self.resume_position: float | None = None

        self._logger = logger.bind(
            video_id=str(video_id),
            playback_session=uuid4().hex[:8],
        )

    # ==========================================================================
    # Loading
    # ==========================================================================

    async def load(self) -> float | None:
        """Fetch the video and stored progress, and resolve the resume point.

        Failures are logged and playback starts from scratch.

        Returns:
            Resume position, or None for anonymous viewers
        """
        try:
            detail = await self.api.fetch_video(self.video_id)
        except SyncError as e:
            self._logger.warning("playback_load_failed", error=e.message)
            self.resume_position = 0.0 if self.api.authenticated else None
            return self.resume_position

        if detail.data.duration_seconds:
            self.tracker.duration = detail.data.duration_seconds

        progress = detail.progress
        if progress is not None:
            self.tracker.seed(
                (i.to_interval() for i in progress.intervals),
                progress.last_position,
            )
            self.sync.last_state = progress

        self.resume_position = resolve_resume_position(
            progress,
            self.tracker.duration,
            authenticated=progress is not None,
        )
        self._logger.info(
            "playback_loaded",
            authenticated=progress is not None,
            resume_position=self.resume_position,
            percentage=round(self.tracker.progress, 2),
        )
        return self.resume_position

    def on_ready(self) -> float | None:
        """Seek to the resume position once the player is ready."""
        if self.resume_position:
            self.player.seek_to(self.resume_position)
            self.tracker.on_seek(self.resume_position)
        return self.resume_position

    # ==========================================================================
    # Player callbacks
    # ==========================================================================

    def on_play(self) -> None:
        self.tracker.on_play(self.player.current_time)
        self.sync.start_heartbeat()

    def on_pause(self) -> None:
        self.tracker.on_pause(self.player.current_time)
        self.sync.stop_heartbeat()
        self.sync.request_sync("pause")

    def on_seek(self, target: float, from_position: float | None = None) -> None:
        self.tracker.on_seek(target, from_position)
        self.sync.request_sync("seek")

    def on_tick(self, current_time: float | None = None) -> None:
        position = self.player.current_time if current_time is None else current_time
        self.tracker.on_tick(position)

    def on_ended(self) -> None:
        self.tracker.on_ended(self.player.current_time)
        self.sync.stop_heartbeat()
        self.sync.request_sync("ended")

    def handle(self, event: PlaybackEvent) -> None:
        """Dispatch a typed event, with the same sync triggers as the callbacks."""
        self.tracker.handle(event)
        if isinstance(event, PlayEvent):
            self.sync.start_heartbeat()
        elif isinstance(event, PauseEvent | EndedEvent):
            self.sync.stop_heartbeat()
            self.sync.request_sync("pause" if isinstance(event, PauseEvent) else "ended")
        elif isinstance(event, SeekEvent):
            self.sync.request_sync("seek")
        elif not isinstance(event, TickEvent):
            msg = f"Unsupported playback event: {event!r}"
            raise TypeError(msg)

    # ==========================================================================
    # State
    # ==========================================================================

    @property
    def progress(self) -> float:
        """Local watch percentage (advisory until the next sync)."""
        return self.tracker.progress

    @property
    def watched_intervals(self) -> list[Interval]:
        return self.tracker.watched_intervals

    async def reset(self) -> WatchedStateResponse | None:
        """Reset progress on the server and locally.

        Failures are logged; the local state is cleared either way.

        Returns:
            The empty state, or None for anonymous viewers and failed resets
        """
        await self.sync.cancel()
        self.tracker.reset()
        if not self.sync.enabled:
            return None
        try:
            state = await self.api.reset_progress(self.video_id)
        except SyncError as e:
            self._logger.warning("playback_reset_failed", error=e.message)
            return None
        self.tracker.reconcile(i.to_interval() for i in state.intervals)
        self.sync.last_state = state
        self.resume_position = 0.0
        self._logger.info("playback_progress_reset")
        return state

    async def aclose(self) -> None:
        """Close the open interval, stop timers and send a final sync."""
        self.tracker.teardown(self.player.current_time)
        await self.sync.aclose()
        self._logger.info(
            "playback_closed",
            percentage=round(self.tracker.progress, 2),
            pending=len(self.tracker.pending),
        )

    async def __aenter__(self) -> "PlaybackSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
