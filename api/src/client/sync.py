"""Progress sync scheduling.

Decides when pending intervals and the current position are pushed to the
server, and adopts the server's canonical state afterwards.

Key behaviour:
- Triggers (pause, seek, ended) are debounced; triggers inside the window
  coalesce into one request
- At most one request is in flight; a trigger arriving meanwhile marks the
  client dirty and a single follow-up request is sent when it completes
- A heartbeat syncs periodically while playing
- Failed requests are retried with exponential backoff; pending intervals
  stay buffered until a request covering them is acknowledged
- Anonymous sessions never sync
"""

import asyncio
import contextlib
from datetime import UTC, datetime
from uuid import UUID

import structlog

from src.progress.schemas import WatchedStateResponse

from .api import ProgressApi
from .config import SyncSettings, get_sync_settings
from .exceptions import (
    SyncError,
    SyncRejectedError,
    SyncTransportError,
    SyncUnauthorizedError,
)
from .tracker import PlaybackEventTracker


logger = structlog.get_logger(__name__)


async def _cancel(task: asyncio.Task | None) -> None:
    """Cancel a task and wait for it to finish."""
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


class ProgressSyncClient:
    """Pushes tracker state to the progress API."""

    def __init__(
        self,
        api: ProgressApi,
        tracker: PlaybackEventTracker,
        video_id: UUID,
        settings: SyncSettings | None = None,
    ) -> None:
        """Initialize sync client.

        Args:
            api: Progress API client
            tracker: Tracker whose pending intervals are synced
            video_id: Video being watched
            settings: Timing settings (environment defaults when omitted)
        """
        self.api = api
        self.tracker = tracker
        self.video_id = video_id
        self.settings = settings or get_sync_settings()

        self.last_state: WatchedStateResponse | None = None

        self._debounce_task: asyncio.Task | None = None
        self._heartbeat_task: asyncio.Task | None = None
        self._sync_task: asyncio.Task | None = None
        self._dirty = False
        self._failures = 0
        self._unauthorized = False
        self._closed = False
        self._logger = logger.bind(video_id=str(video_id))

    @property
    def enabled(self) -> bool:
        """Whether syncs are sent at all."""
        return self.api.authenticated and not self._unauthorized

    @property
    def in_flight(self) -> bool:
        return self._sync_task is not None and not self._sync_task.done()

    @property
    def failures(self) -> int:
        """Consecutive failed attempts of the current sync."""
        return self._failures

    # ==========================================================================
    # Triggers
    # ==========================================================================

    def request_sync(self, reason: str = "trigger") -> None:
        """Schedule a debounced sync (no-op when anonymous or closed)."""
        if not self.enabled or self._closed:
            return
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.create_task(
            self._debounced(reason),
            name=f"progress_sync_debounce:{self.video_id}",
        )

    async def _debounced(self, reason: str) -> None:
        await asyncio.sleep(self.settings.debounce_seconds)
        self._schedule(reason)

    def _schedule(self, reason: str) -> None:
        if self.in_flight:
            self._dirty = True
            return
        self._sync_task = asyncio.create_task(
            self._sync_loop(reason),
            name=f"progress_sync:{self.video_id}",
        )

    def start_heartbeat(self) -> None:
        """Sync periodically until ``stop_heartbeat``."""
        if not self.enabled or self._closed:
            return
        if self._heartbeat_task is not None and not self._heartbeat_task.done():
            return
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(),
            name=f"progress_sync_heartbeat:{self.video_id}",
        )

    def stop_heartbeat(self) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            self._heartbeat_task = None

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.heartbeat_seconds)
            self._schedule("heartbeat")

    # ==========================================================================
    # Sending
    # ==========================================================================

    def retry_delay(self) -> float:
        """Backoff before the next attempt."""
        delay = self.settings.retry_base_delay * 2 ** max(0, self._failures - 1)
        return min(delay, self.settings.retry_max_delay)

    async def _sync_loop(self, reason: str) -> None:
        """Send until nothing new arrived while the last request ran."""
        while True:
            self._dirty = False
            try:
                await self.flush()
            except SyncUnauthorizedError:
                self._unauthorized = True
                self.stop_heartbeat()
                self._logger.warning("progress_sync_unauthorized", reason=reason)
                return
            except SyncRejectedError as e:
                self._logger.error(
                    "progress_sync_rejected",
                    reason=reason,
                    status_code=e.status_code,
                    error=e.message,
                )
                return
            except SyncTransportError as e:
                self._failures += 1
                delay = self.retry_delay()
                self._logger.warning(
                    "progress_sync_failed",
                    reason=reason,
                    error=e.message,
                    attempt=self._failures,
                    retry_in=delay,
                    pending=len(self.tracker.pending),
                )
                await asyncio.sleep(delay)
                reason = "retry"
                continue
            except Exception:
                self._logger.exception("progress_sync_error", reason=reason)
                return

            self._failures = 0
            if not self._dirty:
                return
            reason = "coalesced"

    async def flush(self) -> WatchedStateResponse | None:
        """Send pending intervals now and adopt the server state.

        Returns:
            The canonical state, or None for anonymous sessions

        Raises:
            SyncError: If the request fails
        """
        if not self.enabled:
            return None

        sent = self.tracker.pending_snapshot()
        position = self.tracker.position
        envelope = await self.api.update_progress(
            self.video_id,
            sent,
            last_position=position,
            reported_at=datetime.now(UTC),
        )

        self.tracker.acknowledge(sent)
        state = envelope.data
        self.tracker.reconcile(i.to_interval() for i in state.intervals)
        self.last_state = state

        self._logger.debug(
            "progress_synced",
            sent=len(sent),
            rejected=envelope.rejected_intervals,
            percentage=round(state.progress_percentage, 2),
        )
        return state

    async def wait_idle(self) -> None:
        """Wait until no debounce or request is outstanding."""
        while True:
            tasks = [
                task
                for task in (self._debounce_task, self._sync_task)
                if task is not None and not task.done()
            ]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    # ==========================================================================
    # Teardown
    # ==========================================================================

    async def cancel(self) -> None:
        """Drop any scheduled or in-flight sync (the request may still land)."""
        await _cancel(self._debounce_task)
        await _cancel(self._sync_task)
        self._dirty = False

    async def aclose(self) -> WatchedStateResponse | None:
        """Cancel timers and make one bounded, best-effort final sync."""
        if self._closed:
            return None
        self._closed = True

        self.stop_heartbeat()
        await self.cancel()

        if not self.enabled:
            return None

        try:
            return await asyncio.wait_for(
                self.flush(), timeout=self.settings.teardown_timeout
            )
        except TimeoutError:
            self._logger.warning(
                "progress_sync_teardown_timeout",
                timeout=self.settings.teardown_timeout,
                pending=len(self.tracker.pending),
            )
        except SyncError as e:
            self._logger.warning(
                "progress_sync_teardown_failed",
                error=e.message,
                pending=len(self.tracker.pending),
            )
        return None
