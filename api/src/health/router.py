"""Health check endpoints for the progress API."""

from fastapi import APIRouter, Request, status
from fastapi.responses import ORJSONResponse

from src.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


def _dependencies(request: Request) -> dict[str, bool]:
    """Which collaborators the lifespan managed to wire up."""
    state = request.app.state
    progress_store = getattr(state, "progress_store", None)
    return {
        "progress_store": progress_store is not None,
        "video_catalog": getattr(state, "video_catalog", None) is not None,
        "shared_locks": progress_store is not None and progress_store.lock.shared,
    }


@router.get("/live")
async def liveness() -> dict[str, str]:
    """The process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> ORJSONResponse:
    """Ready once progress can be stored.

    Shared (Redis) locks are reported but not required: without them each
    worker serialises its own updates.
    """
    settings = get_settings()
    checks = _dependencies(request)
    ready = checks["progress_store"] and checks["video_catalog"]
    return ORJSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "degraded",
            "environment": settings.environment,
            "checks": checks,
        },
    )


@router.get("")
async def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
