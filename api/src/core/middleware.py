"""Request ID and access logging for the progress API."""

import re
import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.context import clear_context, set_request_id


logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time-Ms"

# Caller-supplied IDs are only reused when they look like an ID
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request ID for logging and logs each request.

    Players retrying a progress sync may send their own ``X-Request-ID``;
    it is kept when well-formed so client and server logs can be joined.
    The ID (new or reused) is echoed on the response.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = set(exclude_paths or ())

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        request_id = set_request_id(incoming_request_id(request))
        request.state.request_id = request_id
        log = logger.bind(method=request.method, path=request.url.path)
        should_log = self.log_requests and request.url.path not in self.exclude_paths

        if should_log:
            log.info("request_started", client_ip=client_ip(request))

        try:
            response = await call_next(request)
            duration_ms = _elapsed_ms(started)
            if should_log:
                level = "warning" if response.status_code >= 400 else "info"
                getattr(log, level)(
                    "request_completed",
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )
        except Exception as e:
            log.exception(
                "request_failed",
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(started),
            )
            raise
        finally:
            clear_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[RESPONSE_TIME_HEADER] = str(duration_ms)
        return response


def incoming_request_id(request: Request) -> str | None:
    """Return the caller's request ID if it is safe to log."""
    value = request.headers.get(REQUEST_ID_HEADER)
    if value and _REQUEST_ID_PATTERN.match(value):
        return value
    return None


def client_ip(request: Request) -> str | None:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


__all__ = ["RequestContextMiddleware", "client_ip", "incoming_request_id"]
