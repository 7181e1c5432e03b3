from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

from fastapi import status
from fastapi.testclient import TestClient
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from app import main


class FakeEngine:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    @asynccontextmanager
    async def connect(self):
        if self.error is not None:
            raise self.error
        connection = MagicMock()
        connection.execute = AsyncMock()
        yield connection


@pytest.fixture
def client() -> TestClient:
    # No context manager: the lifespan would connect to Redis
    return TestClient(main.app)


def test_cors_preflight_admin_login(client: TestClient) -> None:
    response = client.options(
        "/admin/login",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_cors_preflight_with_disallowed_origin(client: TestClient) -> None:
    response = client.options(
        "/admin/login",
        headers={
            "Origin": "http://evil.example.com",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert "access-control-allow-origin" not in response.headers


def test_healthcheck_ok(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    redis_client = MagicMock()
    redis_client.ping = AsyncMock(return_value=True)
    monkeypatch.setattr(main, "get_engine", lambda: FakeEngine())
    monkeypatch.setattr(main, "get_redis", lambda: redis_client)

    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_healthcheck_database_down(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    error = OperationalError("SELECT 1", {}, Exception("connection refused"))
    monkeypatch.setattr(main, "get_engine", lambda: FakeEngine(error))

    response = client.get("/health")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json() == {"status": "error"}


def test_healthcheck_redis_down(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    redis_client = MagicMock()
    redis_client.ping = AsyncMock(side_effect=RedisConnectionError("connection refused"))
    monkeypatch.setattr(main, "get_engine", lambda: FakeEngine())
    monkeypatch.setattr(main, "get_redis", lambda: redis_client)

    response = client.get("/health")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


def test_unknown_route_uses_error_envelope(client: TestClient) -> None:
    response = client.get("/admin/does-not-exist")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "NOT_FOUND"
