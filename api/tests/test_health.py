"""Tests for health endpoints."""

from unittest.mock import AsyncMock, Mock

from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from src.progress.locks import KeyedLock


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness(client: TestClient) -> None:
    """Ready when the progress store and catalog are wired."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {
        "progress_store": True,
        "video_catalog": True,
        "shared_locks": False,
    }


def test_readiness_without_database() -> None:
    """Degraded (503) when the lifespan could not reach Cassandra."""
    from src.main import app

    response = TestClient(app).get("/health/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "watchtrack"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert "Watchtrack" in data["message"]
    assert "version" in data


def test_request_id_is_echoed(client: TestClient) -> None:
    """A caller-supplied request ID comes back on the response."""
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_request_id_is_generated(client: TestClient) -> None:
    """Requests without an ID get a generated one."""
    response = client.get("/health")
    assert response.headers["X-Request-ID"]


def test_malformed_request_id_is_replaced(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Request-ID": "not/a valid id"})
    assert response.headers["X-Request-ID"] != "not/a valid id"


def test_response_time_header(client: TestClient) -> None:
    response = client.get("/health/live")
    assert float(response.headers["X-Response-Time-Ms"]) >= 0


def test_readiness_reports_lost_shared_locks(
    client: TestClient, progress_store, auth_headers, video_id
) -> None:
    """Updates fail as busy while Redis is down, and readiness shows it."""
    redis_lock = Mock()
    redis_lock.acquire = AsyncMock(side_effect=RedisConnectionError())
    progress_store.lock = KeyedLock(redis=Mock(lock=Mock(return_value=redis_lock)))

    response = client.post(
        f"/v1/progress/{video_id}",
        headers=auth_headers,
        json={"intervals": [{"start": 0, "end": 9}], "lastPosition": 9},
    )
    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"

    ready = client.get("/health/ready").json()
    assert ready["status"] == "ready"
    assert ready["checks"]["shared_locks"] is False
