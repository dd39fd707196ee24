"""Progress route dependencies and error mapping."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from src.core.context import set_video_id

from .exceptions import ProgressError
from .service import ProgressStore


_ERROR_STATUS = {
    "video_not_found": status.HTTP_404_NOT_FOUND,
    "invalid_interval": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "progress_busy": status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Seconds a client should wait before retrying a busy update
_BUSY_RETRY_AFTER = "1"


async def get_progress_store(request: Request) -> ProgressStore:
    """Store wired by the lifespan; 503 when Cassandra was unreachable."""
    store = getattr(request.app.state, "progress_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return store


ProgressStoreDep = Annotated[ProgressStore, Depends(get_progress_store)]


async def bind_video_context(video_id: UUID) -> None:
    """Tag the request's log events with the tracked video."""
    set_video_id(video_id)


def handle_progress_error(error: ProgressError) -> HTTPException:
    """Map a progress error code to an HTTP error."""
    status_code = _ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    headers = (
        {"Retry-After": _BUSY_RETRY_AFTER} if error.code == "progress_busy" else None
    )
    return HTTPException(status_code=status_code, detail=error.message, headers=headers)
