"""Read-only access to the video catalog."""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import Video


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class VideoCatalog:
    """Looks up videos and their durations."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_video = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.videos
            WHERE video_id = ?
        """)

        self._list_videos = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.videos
        """)

    async def get_video(self, video_id: UUID) -> Video | None:
        """Get video by id."""
        result = await self.session.aexecute(self._get_video, [video_id])
        row = result.one()
        return Video.from_row(row) if row else None

    async def list_videos(self, limit: int = 100) -> list[Video]:
        """List the newest ``limit`` videos.

        Cassandra does not order rows across partitions, so the whole catalog
        is read and sorted here.
        """
        rows = await self.session.aexecute(self._list_videos)
        videos = [Video.from_row(row) for row in rows]
        videos.sort(
            key=lambda v: v.created_at.timestamp() if v.created_at else 0.0,
            reverse=True,
        )
        return videos[:limit]
