"""Tests for the playback session (player wiring, resume, teardown)."""

import pytest

from src.client.api import ProgressApi
from src.client.config import SyncSettings
from src.client.events import PauseEvent, PlayerAdapter, PlayEvent, SeekEvent, TickEvent
from src.client.session import PlaybackSession
from src.progress.intervals import Interval


class FakePlayer:
    """Player whose clock is moved by the test."""

    def __init__(self, duration: float | None = 300.0) -> None:
        self.current_time = 0.0
        self.duration = duration
        self.seeks: list[float] = []

    def seek_to(self, seconds: float) -> None:
        self.seeks.append(seconds)
        self.current_time = seconds


@pytest.fixture
def player() -> FakePlayer:
    return FakePlayer()


def test_fake_player_satisfies_adapter(player: FakePlayer) -> None:
    assert isinstance(player, PlayerAdapter)


class TestLoad:
    """Loading stored progress and resuming."""

    @pytest.mark.asyncio
    async def test_resumes_at_stored_position(
        self, api: ProgressApi, server, player: FakePlayer, sync_settings: SyncSettings
    ) -> None:
        server.intervals = [Interval(0, 42)]
        server.last_position = 42.0
        session = PlaybackSession(api, server.video_id, player, sync_settings)

        assert await session.load() == 42.0
        assert session.on_ready() == 42.0

        assert player.seeks == [42.0]
        assert session.watched_intervals == [Interval(0, 42)]
        assert session.progress == pytest.approx(43 / 300 * 100)

    @pytest.mark.asyncio
    async def test_position_at_end_restarts(
        self, api: ProgressApi, server, player: FakePlayer, sync_settings: SyncSettings
    ) -> None:
        server.last_position = 300.0
        session = PlaybackSession(api, server.video_id, player, sync_settings)

        assert await session.load() == 0.0
        session.on_ready()
        assert player.seeks == []

    @pytest.mark.asyncio
    async def test_anonymous_has_no_resume(
        self,
        anonymous_api: ProgressApi,
        server,
        player: FakePlayer,
        sync_settings: SyncSettings,
    ) -> None:
        server.last_position = 42.0
        session = PlaybackSession(anonymous_api, server.video_id, player, sync_settings)

        assert await session.load() is None
        assert session.on_ready() is None
        assert player.seeks == []

    @pytest.mark.asyncio
    async def test_load_failure_starts_from_zero(
        self, api: ProgressApi, server, player: FakePlayer, sync_settings: SyncSettings
    ) -> None:
        server.fail_next = 1
        session = PlaybackSession(api, server.video_id, player, sync_settings)

        assert await session.load() == 0.0

    @pytest.mark.asyncio
    async def test_malformed_progress_starts_from_zero(
        self, api: ProgressApi, server, player: FakePlayer, sync_settings: SyncSettings
    ) -> None:
        server.last_position = None
        session = PlaybackSession(api, server.video_id, player, sync_settings)

        assert await session.load() == 0.0
        assert session.on_ready() == 0.0
        assert player.seeks == []

    @pytest.mark.asyncio
    async def test_duration_comes_from_catalog(
        self, api: ProgressApi, server, sync_settings: SyncSettings
    ) -> None:
        session = PlaybackSession(
            api, server.video_id, FakePlayer(duration=None), sync_settings
        )
        await session.load()
        assert session.tracker.duration == 300


class TestPlayback:
    """Player callbacks drive tracking and sync."""

    @pytest.mark.asyncio
    async def test_watch_pause_syncs(
        self, api: ProgressApi, server, player: FakePlayer, sync_settings: SyncSettings
    ) -> None:
        session = PlaybackSession(api, server.video_id, player, sync_settings)
        await session.load()

        session.on_play()
        for second in range(1, 11):
            player.current_time = float(second)
            session.on_tick()
        session.on_pause()
        await session.sync.wait_idle()

        assert server.intervals == [Interval(0, 10)]
        assert server.last_position == 10.0
        assert session.tracker.pending == []

    @pytest.mark.asyncio
    async def test_seek_skips_gap(
        self, api: ProgressApi, server, player: FakePlayer, sync_settings: SyncSettings
    ) -> None:
        session = PlaybackSession(api, server.video_id, player, sync_settings)
        await session.load()

        session.on_play()
        player.current_time = 5.0
        session.on_tick()
        player.current_time = 120.0
        session.on_seek(120.0)
        player.current_time = 125.0
        session.on_tick()
        session.on_pause()
        await session.sync.wait_idle()

        assert server.intervals == [Interval(0, 5), Interval(120, 125)]

    @pytest.mark.asyncio
    async def test_typed_events(
        self, api: ProgressApi, server, player: FakePlayer, sync_settings: SyncSettings
    ) -> None:
        session = PlaybackSession(api, server.video_id, player, sync_settings)
        await session.load()

        for event in (
            PlayEvent(0.0),
            TickEvent(3.0),
            SeekEvent(60.0),
            TickEvent(62.0),
            PauseEvent(62.0),
        ):
            session.handle(event)
        await session.sync.wait_idle()

        assert server.intervals == [Interval(0, 3), Interval(60, 62)]

    @pytest.mark.asyncio
    async def test_anonymous_playback_tracks_locally_only(
        self,
        anonymous_api: ProgressApi,
        server,
        player: FakePlayer,
        sync_settings: SyncSettings,
    ) -> None:
        session = PlaybackSession(anonymous_api, server.video_id, player, sync_settings)
        await session.load()
        requests = len(server.requests)

        session.on_play()
        player.current_time = 8.0
        session.on_pause()
        await session.sync.wait_idle()
        await session.aclose()

        assert len(server.requests) == requests
        assert session.watched_intervals == [Interval(0, 8)]


class TestResetAndTeardown:
    """reset() and aclose()."""

    @pytest.mark.asyncio
    async def test_reset_clears_local_and_server(
        self, api: ProgressApi, server, player: FakePlayer, sync_settings: SyncSettings
    ) -> None:
        server.intervals = [Interval(0, 99)]
        server.last_position = 99.0
        session = PlaybackSession(api, server.video_id, player, sync_settings)
        await session.load()

        state = await session.reset()

        assert state is not None
        assert state.intervals == []
        assert server.intervals == []
        assert session.watched_intervals == []
        assert session.resume_position == 0.0

    @pytest.mark.asyncio
    async def test_failed_reset_returns_none(
        self, api: ProgressApi, server, player: FakePlayer, sync_settings: SyncSettings
    ) -> None:
        server.intervals = [Interval(0, 99)]
        server.last_position = 99.0
        session = PlaybackSession(api, server.video_id, player, sync_settings)
        await session.load()
        server.fail_next = 1

        assert await session.reset() is None

        assert server.requests[-1].method == "DELETE"
        assert server.intervals == [Interval(0, 99)]
        assert session.watched_intervals == []

    @pytest.mark.asyncio
    async def test_aclose_flushes_open_interval(
        self, api: ProgressApi, server, player: FakePlayer
    ) -> None:
        settings = SyncSettings(debounce_seconds=30.0, heartbeat_seconds=30.0)
        async with PlaybackSession(api, server.video_id, player, settings) as session:
            await session.load()
            session.on_play()
            player.current_time = 6.0
            session.on_tick()

        assert server.intervals == [Interval(0, 6)]
        assert server.last_position == 6.0
        assert session.tracker.pending == []
