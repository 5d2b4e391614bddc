"""Shared fixtures: a migrated app on a temp SQLite file, and a client for it."""

from collections.abc import AsyncIterator
from typing import Any

import pytest

from cineverse.app import App, create_app
from cineverse.config import AppConfig
from cineverse.http.request import Request
from cineverse.testing import TestClient


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        debug=True,
        env="testing",
        secret_key="test-secret-key-0123456789abcdef",
        jwt_secret="j" * 40,
        database_url=f"sqlite:///{tmp_path}/test.db",
        cache_driver="memory",
        session_driver="memory",
        storage_path=str(tmp_path / "uploads"),
    )


@pytest.fixture
def app(config: AppConfig) -> App:
    return create_app(config)


@pytest.fixture
async def client(app: App) -> AsyncIterator[TestClient]:
    async with TestClient(app) as c:
        yield c


def make_request(
    method: str = "GET",
    path: str = "/",
    headers: dict[str, str] | None = None,
    query: str = "",
    body: bytes = b"",
) -> Request:
    """Build a Request without going through the ASGI app."""
    scope: dict[str, Any] = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query.encode(),
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": ("127.0.0.1", 5000),
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": body, "more_body": False}

    return Request.from_asgi(scope, receive)


async def register(client: TestClient, username: str = "alice", **extra: str) -> dict[str, Any]:
    payload = {
        "username": username,
        "email": f"{username}@example.com",
        "password": "secret123",
        **extra,
    }
    response = await client.post("/api/v1/auth/register", json=payload)
    assert response.status == 201, response.body_text
    return response.json_body()["data"]["user"]


async def login(client: TestClient, username: str = "alice", password: str = "secret123") -> str:
    response = await client.post("/api/v1/auth/login", json={"login": username, "password": password})
    assert response.status == 200, response.body_text
    return response.json_body()["data"]["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
