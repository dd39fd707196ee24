"""HTTP client for the progress and video endpoints."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

import httpx
from pydantic import BaseModel, ValidationError

from src.progress.intervals import Interval
from src.progress.schemas import (
    MAX_POSITION_SECONDS,
    IntervalSchema,
    ProgressEnvelope,
    UpdateProgressEnvelope,
    UpdateProgressRequest,
    WatchedStateResponse,
)
from src.video.schemas import VideoDetailEnvelope

from .config import SyncSettings
from .exceptions import SyncRejectedError, SyncTransportError, SyncUnauthorizedError


ModelT = TypeVar("ModelT", bound=BaseModel)


class ProgressApi:
    """Bearer-token client for ``/v1/progress`` and ``/v1/videos``."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API root, e.g. ``https://api.example.com``
            token: Access token; anonymous when omitted
            timeout: Request timeout in seconds
            client: Pre-built httpx client (closed by its owner)
        """
        self.token = token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @classmethod
    def from_settings(
        cls, settings: SyncSettings, token: str | None = None
    ) -> "ProgressApi":
        """Build a client for ``settings.api_base_url``."""
        return cls(
            settings.api_base_url, token=token, timeout=settings.request_timeout
        )

    @property
    def authenticated(self) -> bool:
        """Whether requests carry a token."""
        return bool(self.token)

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(
        self,
        model: type[ModelT],
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> ModelT:
        """Send a request and validate the JSON body as ``model``.

        Raises:
            SyncTransportError: Network failure, 5xx response or a body
                that is not valid JSON for ``model``
            SyncUnauthorizedError: 401 response
            SyncRejectedError: Any other 4xx response
        """
        try:
            response = await self._client.request(
                method, path, json=json, headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise SyncTransportError(f"{method} {path} failed: {e}") from e

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise SyncUnauthorizedError
        if response.is_server_error:
            raise SyncTransportError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        if response.is_client_error:
            raise SyncRejectedError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return model.model_validate(response.json())
        except ValidationError as e:
            raise SyncTransportError(
                f"{method} {path} returned an unexpected body: {e.error_count()} errors"
            ) from e
        except ValueError as e:
            raise SyncTransportError(f"{method} {path} returned invalid JSON") from e

    # ==========================================================================
    # Progress
    # ==========================================================================

    async def fetch_progress(self, video_id: UUID) -> WatchedStateResponse:
        """Get the caller's canonical progress (empty state if none)."""
        envelope = await self._request(
            ProgressEnvelope, "GET", f"/v1/progress/{video_id}"
        )
        return envelope.data

    async def update_progress(
        self,
        video_id: UUID,
        intervals: Iterable[Interval],
        last_position: float,
        reported_at: datetime | None = None,
    ) -> UpdateProgressEnvelope:
        """Send newly watched intervals and the current position."""
        request = UpdateProgressRequest(
            intervals=[IntervalSchema.from_interval(i) for i in intervals],
            last_position=min(max(0.0, last_position), MAX_POSITION_SECONDS),
            reported_at=reported_at,
        )
        return await self._request(
            UpdateProgressEnvelope,
            "POST",
            f"/v1/progress/{video_id}",
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    async def reset_progress(self, video_id: UUID) -> WatchedStateResponse:
        """Reset the caller's progress to the empty state."""
        envelope = await self._request(
            ProgressEnvelope, "DELETE", f"/v1/progress/{video_id}"
        )
        return envelope.data

    # ==========================================================================
    # Videos
    # ==========================================================================

    async def fetch_video(self, video_id: UUID) -> VideoDetailEnvelope:
        """Get a video, with progress and resume position when signed in."""
        return await self._request(
            VideoDetailEnvelope, "GET", f"/v1/videos/{video_id}"
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
