"""Resume position for a video being (re)loaded."""

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from .models import WatchedState


def resolve_resume_position(
    state: "WatchedState | None",
    duration: float | None,
    authenticated: bool = True,
) -> float | None:
    """Where the player should seek once it signals readiness.

    Args:
        state: Stored watched state, if any
        duration: Video duration in seconds
        authenticated: Whether the viewer is signed in

    Returns:
        None for anonymous viewers (nothing is tracked), the stored
        last position when it lies within ``[0, duration)``, otherwise 0.
    """
    if not authenticated:
        return None
    if state is None or not duration or duration <= 0:
        return 0.0

    position = state.last_position
    if 0 <= position < duration:
        return float(position)
    return 0.0
