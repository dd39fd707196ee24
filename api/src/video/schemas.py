"""Pydantic schemas for the video catalog endpoints."""

from uuid import UUID

from pydantic import Field

from src.progress.schemas import CamelModel, WatchedStateResponse

from .models import Video


class VideoResponse(CamelModel):
    """Video as shown to the player."""

    video_id: UUID
    title: str
    description: str | None = None
    url: str | None = None
    duration_seconds: int | None = None

    @classmethod
    def from_entity(cls, entity: Video) -> "VideoResponse":
        """Create response from entity."""
        return cls(
            video_id=entity.video_id,
            title=entity.title,
            description=entity.description,
            url=entity.url,
            duration_seconds=entity.duration_seconds,
        )


class VideoListEnvelope(CamelModel):
    """List of catalog videos."""

    success: bool = True
    data: list[VideoResponse]


class VideoDetailEnvelope(CamelModel):
    """Single video with the caller's progress, when signed in."""

    success: bool = True
    data: VideoResponse
    progress: WatchedStateResponse | None = None
    resume_position: float | None = Field(
        None, description="Where the player should seek once ready"
    )
