"""Database models for the read-only video catalog.

Videos are managed by an external catalog; this service only reads the
fields progress tracking needs (id and duration) plus what the player shows.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID


VIDEOS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.videos (
    video_id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    url TEXT,
    duration_seconds INT,
    created_at TIMESTAMP
)
"""

VIDEOS_TABLES_CQL = [
    VIDEOS_TABLE_CQL,
]


class Video:
    """Catalog entry for a lecture video.

    Attributes:
        video_id: Video UUID
        title: Display title
        description: Display description
        url: Playback URL
        duration_seconds: Total duration (None when unknown)
        created_at: Catalog insertion timestamp
    """

    def __init__(
        self,
        video_id: UUID,
        title: str = "",
        description: str | None = None,
        url: str | None = None,
        duration_seconds: int | None = None,
        created_at: datetime | None = None,
    ):
        self.video_id = video_id
        self.title = title
        self.description = description
        self.url = url
        self.duration_seconds = duration_seconds
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        self.created_at = created_at

    @classmethod
    def from_row(cls, row: Any) -> "Video":
        """Create Video instance from Cassandra row."""
        return cls(
            video_id=row.video_id,
            title=row.title or "",
            description=row.description,
            url=row.url,
            duration_seconds=row.duration_seconds,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Video {self.video_id} {self.title!r} {self.duration_seconds}s>"
