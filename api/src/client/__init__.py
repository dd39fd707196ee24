"""Player-side progress tracking.

Provides:
- Playback event tracker (events -> watched intervals)
- Sync client (debounced pushes to the progress API, retry, reconcile)
- Playback session tying both to one player
"""

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
from .exceptions import (
    SyncError,
    SyncRejectedError,
    SyncTransportError,
    SyncUnauthorizedError,
)
from .session import PlaybackSession
from .sync import ProgressSyncClient
from .tracker import PlaybackEventTracker, TrackerState


__all__ = [
    "EndedEvent",
    "PauseEvent",
    "PlayEvent",
    "PlaybackEvent",
    "PlaybackEventTracker",
    "PlaybackSession",
    "PlayerAdapter",
    "ProgressApi",
    "ProgressSyncClient",
    "SeekEvent",
    "SyncError",
    "SyncRejectedError",
    "SyncSettings",
    "SyncTransportError",
    "SyncUnauthorizedError",
    "TickEvent",
    "TrackerState",
    "get_sync_settings",
]
