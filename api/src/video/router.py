"""Video catalog API endpoints.

Provides routes for:
- Listing catalog videos
- Loading one video together with the caller's progress and resume point
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from src.auth.dependencies import OptionalUser
from src.progress.dependencies import ProgressStoreDep
from src.progress.resume import resolve_resume_position
from src.progress.schemas import WatchedStateResponse

from .dependencies import VideoCatalogDep
from .schemas import VideoDetailEnvelope, VideoListEnvelope, VideoResponse


router = APIRouter(prefix="/v1/videos", tags=["videos"])


@router.get(
    "",
    response_model=VideoListEnvelope,
    summary="List videos",
)
async def list_videos(
    video_catalog: VideoCatalogDep,
    limit: int = Query(100, ge=1, le=500, description="Maximum videos returned"),
) -> VideoListEnvelope:
    """List catalog videos (public)."""
    videos = await video_catalog.list_videos(limit=limit)
    return VideoListEnvelope(data=[VideoResponse.from_entity(v) for v in videos])


@router.get(
    "/{video_id}",
    response_model=VideoDetailEnvelope,
    summary="Get video",
)
async def get_video(
    video_id: UUID,
    video_catalog: VideoCatalogDep,
    progress_store: ProgressStoreDep,
    user: OptionalUser,
) -> VideoDetailEnvelope:
    """Get a video for playback.

    Signed-in callers also get their progress and the position the player
    should resume from. Anonymous viewers get neither (nothing is tracked).
    """
    video = await video_catalog.get_video(video_id)
    if video is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found",
        )

    response = VideoDetailEnvelope(data=VideoResponse.from_entity(video))
    if user is None:
        return response

    state = await progress_store.get_progress(user.id, video_id)
    response.progress = WatchedStateResponse.from_entity(state)
    response.resume_position = resolve_resume_position(
        state, video.duration_seconds, authenticated=True
    )
    return response
