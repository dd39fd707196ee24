"""Watched progress API endpoints.

Provides routes for:
- Fetching the caller's canonical progress for a video
- Merging newly watched intervals (sent by the player's sync client)
- Resetting progress
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from src.auth.dependencies import CurrentUser

from .dependencies import (
    ProgressStoreDep,
    bind_video_context,
    handle_progress_error,
)
from .exceptions import ProgressError
from .schemas import (
    ProgressEnvelope,
    UpdateProgressEnvelope,
    UpdateProgressRequest,
    WatchedStateResponse,
)


router = APIRouter(
    prefix="/v1/progress",
    tags=["progress"],
    dependencies=[Depends(bind_video_context)],
)


@router.get(
    "/{video_id}",
    response_model=ProgressEnvelope,
    summary="Get video progress",
)
async def get_progress(
    video_id: UUID,
    progress_store: ProgressStoreDep,
    user: CurrentUser,
) -> ProgressEnvelope:
    """Get watched intervals and resume position.

    Returns the empty state when the user never watched the video.
    """
    try:
        state = await progress_store.get_progress(user.id, video_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return ProgressEnvelope(data=WatchedStateResponse.from_entity(state))


@router.post(
    "/{video_id}",
    response_model=UpdateProgressEnvelope,
    summary="Merge watched intervals",
)
async def update_progress(
    video_id: UUID,
    data: UpdateProgressRequest,
    progress_store: ProgressStoreDep,
    user: CurrentUser,
) -> UpdateProgressEnvelope:
    """Merge newly watched intervals and update the resume position.

    Safe to retry: intervals already merged have no further effect.
    Returns the post-merge canonical state, which the client adopts.
    """
    try:
        result = await progress_store.apply_update(
            user_id=user.id,
            video_id=video_id,
            new_intervals=[interval.to_interval() for interval in data.intervals],
            reported_position=data.last_position,
            reported_at=data.reported_at,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return UpdateProgressEnvelope(
        data=WatchedStateResponse.from_entity(result.state),
        rejected_intervals=len(result.rejected),
    )


@router.delete(
    "/{video_id}",
    response_model=ProgressEnvelope,
    summary="Reset video progress",
)
async def reset_progress(
    video_id: UUID,
    progress_store: ProgressStoreDep,
    user: CurrentUser,
) -> ProgressEnvelope:
    """Replace progress with the empty state (no intervals, position 0)."""
    try:
        state = await progress_store.reset_progress(user.id, video_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return ProgressEnvelope(data=WatchedStateResponse.from_entity(state))
