"""Per-request log context held in contextvars.

The middleware sets ``request_id``; auth sets ``user_id`` and progress routes
set ``video_id``. ``src.core.logging`` merges whatever is set into every log
event emitted while the request runs.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
video_id_var: ContextVar[str | None] = ContextVar("video_id", default=None)

_LOG_FIELDS: dict[str, ContextVar] = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "video_id": video_id_var,
}


def _as_str(value: str | UUID | None) -> str | None:
    return str(value) if value is not None else None


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Use the given request ID, or a fresh UUID when none is supplied.

    Returns:
        The request ID now in context
    """
    rid = request_id or str(uuid4())
    request_id_var.set(rid)
    return rid


def set_user_id(user_id: str | UUID | None) -> None:
    user_id_var.set(_as_str(user_id))


def set_video_id(video_id: str | UUID | None) -> None:
    video_id_var.set(_as_str(video_id))


def get_context() -> dict[str, Any]:
    """Return the context fields that are currently set."""
    return {name: var.get() for name, var in _LOG_FIELDS.items() if var.get()}


def clear_context() -> None:
    """Reset every field; called when a request finishes."""
    request_id_var.set("")
    user_id_var.set(None)
    video_id_var.set(None)
