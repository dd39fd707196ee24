"""FastAPI dependencies for the video catalog."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import VideoCatalog


async def get_video_catalog(request: Request) -> VideoCatalog:
    """Get video catalog from app state."""
    app_state = request.app.state
    if not hasattr(app_state, "video_catalog") or not app_state.video_catalog:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Video catalog not available",
        )
    return app_state.video_catalog


VideoCatalogDep = Annotated[VideoCatalog, Depends(get_video_catalog)]
