"""Watchtrack API: watched-interval progress and resume positions."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import redis.asyncio as redis
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.config import Settings, get_settings
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.health import router as health_router
from src.progress.locks import KeyedLock
from src.progress.router import router as progress_router
from src.progress.service import ProgressStore
from src.video.router import router as video_router
from src.video.service import VideoCatalog


settings = get_settings()
configure_structlog(
    settings,
    log_dir=Path(settings.log_dir),
    log_to_files=not settings.is_testing,
)

logger = get_logger(__name__)


# ==============================================================================
# Lifespan
# ==============================================================================


async def _connect_redis(settings: Settings) -> redis.Redis | None:
    """Redis for shared progress locks, or None to lock per worker."""
    if not settings.redis_enabled:
        return None
    try:
        return await init_redis()
    except Exception as e:
        logger.warning("redis_init_skipped", error=str(e), lock_scope="worker")
        return None


def build_services(
    app: FastAPI, session: Any, settings: Settings, redis_client: redis.Redis | None
) -> None:
    """Attach the catalog and progress store to ``app.state``."""
    app.state.video_catalog = VideoCatalog(
        session=session, keyspace=settings.cassandra_keyspace
    )
    app.state.progress_store = ProgressStore(
        session=session,
        keyspace=settings.cassandra_keyspace,
        video_catalog=app.state.video_catalog,
        lock=KeyedLock(
            redis=redis_client,
            timeout=settings.progress_lock_timeout,
            blocking_timeout=settings.progress_lock_blocking_timeout,
        ),
    )
    logger.info(
        "progress_store_ready",
        lock_scope="cluster" if redis_client is not None else "worker",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    redis_client = await _connect_redis(settings)
    try:
        session = await init_async_cassandra()
        build_services(app, session, settings, redis_client)
    except Exception as e:
        # /health/ready reports degraded until a restart reaches Cassandra
        logger.error("database_init_failed", error=str(e))

    yield

    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


# ==============================================================================
# Error envelopes
# ==============================================================================


def _error_body(request: Request, status_code: int, message: str) -> dict[str, Any]:
    return {
        "error": True,
        "message": message,
        "status_code": status_code,
        "request_id": getattr(request.state, "request_id", None) or get_request_id(),
    }


def register_exception_handlers(app: FastAPI) -> None:
    """Return every error as ``{error, message, status_code, request_id}``."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
        )
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        logger.warning("validation_error", errors=exc.errors(), path=request.url.path)
        content = _error_body(
            request, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error"
        )
        content["details"] = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=content
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Log unhandled errors; the caller only sees a generic message."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An unexpected error occurred. Please try again later.",
            ),
        )


# ==============================================================================
# Application factory
# ==============================================================================


def create_app() -> FastAPI:
    settings = get_settings()
    docs = settings.docs_enabled

    # debug=False keeps ServerErrorMiddleware from rendering tracebacks
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Watched-interval tracking and resume API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
    )

    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=["X-Request-ID"],
        max_age=settings.cors_max_age,
    )
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(video_router)
    app.include_router(progress_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        return {
            "message": "Watchtrack API",
            "version": settings.app_version,
            "progress": "/v1/progress/{video_id}",
        }

    return app


app = create_app()
