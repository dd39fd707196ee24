"""Fixtures for the player-side client: an in-memory progress API."""

import asyncio
import json
from datetime import UTC, datetime
from uuid import UUID, uuid4

import httpx
import pytest

from src.client.api import ProgressApi
from src.client.config import SyncSettings
from src.progress.calculator import progress_percentage, unique_seconds
from src.progress.intervals import Interval, merge_intervals, partition_valid


BASE_URL = "http://progress.test"


class FakeProgressServer:
    """Serves the progress and video endpoints for one user and video.

    Attributes:
        fail_next: Number of upcoming requests answered with 503
        gate: When set, POST requests wait for it before answering
        reject_auth: Answer every request with 401
    """

    def __init__(self, video_id: UUID, duration: int = 300) -> None:
        self.video_id = video_id
        self.user_id = uuid4()
        self.duration = duration
        self.intervals: list[Interval] = []
        self.last_position = 0.0
        self.requests: list[httpx.Request] = []
        self.posted: list[dict] = []
        self.fail_next = 0
        self.reject_auth = False
        self.gate: asyncio.Event | None = None
        self.in_flight = 0
        self.max_in_flight = 0

    def _state(self) -> dict:
        return {
            "videoId": str(self.video_id),
            "userId": str(self.user_id),
            "intervals": [i.to_dict() for i in self.intervals],
            "lastPosition": self.last_position,
            "progressPercentage": progress_percentage(self.intervals, self.duration),
            "uniqueSeconds": unique_seconds(self.intervals),
            "durationSeconds": self.duration,
            "updatedAt": datetime.now(UTC).isoformat(),
        }

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        authenticated = "Authorization" in request.headers and not self.reject_auth

        if self.fail_next:
            self.fail_next -= 1
            return httpx.Response(503, json={"error": True, "message": "busy"})

        path = request.url.path
        if path == f"/v1/videos/{self.video_id}":
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "videoId": str(self.video_id),
                        "title": "Lecture",
                        "durationSeconds": self.duration,
                    },
                    "progress": self._state() if authenticated else None,
                    "resumePosition": self.last_position if authenticated else None,
                },
            )

        if path != f"/v1/progress/{self.video_id}":
            return httpx.Response(404, json={"error": True})
        if not authenticated:
            return httpx.Response(401, json={"error": True})

        if request.method == "POST":
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                if self.gate is not None:
                    await self.gate.wait()
                body = json.loads(request.content)
                self.posted.append(body)
                accepted, rejected = partition_valid(
                    [Interval(i["start"], i["end"]) for i in body["intervals"]],
                    self.duration,
                )
                self.intervals = merge_intervals([*self.intervals, *accepted])
                self.last_position = body["lastPosition"]
                return httpx.Response(
                    200,
                    json={
                        "success": True,
                        "data": self._state(),
                        "rejectedIntervals": len(rejected),
                    },
                )
            finally:
                self.in_flight -= 1

        if request.method == "DELETE":
            self.intervals = []
            self.last_position = 0.0

        return httpx.Response(200, json={"success": True, "data": self._state()})


@pytest.fixture
def server() -> FakeProgressServer:
    return FakeProgressServer(video_id=uuid4())


@pytest.fixture
def sync_settings() -> SyncSettings:
    """Short timings so tests run in milliseconds."""
    return SyncSettings(
        debounce_seconds=0.01,
        heartbeat_seconds=0.05,
        retry_base_delay=0.01,
        retry_max_delay=0.04,
        teardown_timeout=0.5,
        max_tick_jump=10.0,
    )


def make_api(server: FakeProgressServer, token: str | None = "token") -> ProgressApi:
    client = httpx.AsyncClient(
        base_url=BASE_URL, transport=httpx.MockTransport(server.handler)
    )
    return ProgressApi(BASE_URL, token=token, client=client)


@pytest.fixture
def api(server: FakeProgressServer) -> ProgressApi:
    """Authenticated API client bound to the fake server."""
    return make_api(server)


@pytest.fixture
def anonymous_api(server: FakeProgressServer) -> ProgressApi:
    return make_api(server, token=None)
