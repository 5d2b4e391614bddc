"""Test client for CineVerse applications.

Uses the same Request and Response types as production and talks to
the app through its ASGI interface. No HTTP involved.
"""

from __future__ import annotations

import json as json_module
from typing import Any
from urllib.parse import unquote, urlencode

from cineverse.app import App
from cineverse.http.cookies import SetCookie
from cineverse.http.response import Response


def _parse_set_cookie(value: str) -> SetCookie:
    first, *attrs = [part.strip() for part in value.split(";")]
    name, _, raw = first.partition("=")
    max_age: int | None = None
    path = "/"
    for attr in attrs:
        key, _, val = attr.partition("=")
        match key.lower():
            case "max-age":
                max_age = int(val)
            case "path":
                path = val or "/"
    return SetCookie(name, unquote(raw), max_age=max_age, path=path)


class TestClient:
    """Async test client with lifespan and a cookie jar.

    Usage::

        async with TestClient(app) as client:
            response = await client.post("/api/v1/auth/login", json={...})
            assert response.status == 200
    """

    __test__ = False  # not a pytest test class
    __slots__ = ("app", "cookies")

    def __init__(self, app: App) -> None:
        self.app = app
        self.cookies: dict[str, str] = {}

    async def __aenter__(self) -> TestClient:
        # the same startup and shutdown the ASGI lifespan protocol runs
        await self.app.startup()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.app.shutdown()

    # -- Verbs --

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        return await self.request("GET", path, headers=headers)

    async def post(self, path: str, **kwargs: Any) -> Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Response:
        return await self.request("DELETE", path, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json: Any = None,
        data: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        """Send one request through the ASGI app and return the captured Response."""
        path_part, _, query_string = path.partition("?")

        request_headers: dict[str, str] = {}
        request_body = body or b""
        if json is not None:
            request_body = json_module.dumps(json).encode("utf-8")
            request_headers["content-type"] = "application/json"
        elif data is not None:
            request_body = urlencode(data).encode("utf-8")
            request_headers["content-type"] = "application/x-www-form-urlencoded"
        if self.cookies:
            request_headers["cookie"] = "; ".join(f"{k}={v}" for k, v in self.cookies.items())
        request_headers.update({k.lower(): v for k, v in (headers or {}).items()})

        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "path": path_part,
            "raw_path": path_part.encode("latin-1"),
            "query_string": query_string.encode("latin-1"),
            "root_path": "",
            "headers": [(k.encode("latin-1"), v.encode("latin-1")) for k, v in request_headers.items()],
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 0),
        }

        body_sent = False

        async def receive() -> dict[str, Any]:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": request_body, "more_body": False}
            return {"type": "http.disconnect"}

        status = 200
        raw_headers: list[tuple[bytes, bytes]] = []
        parts: list[bytes] = []

        async def send(message: dict[str, Any]) -> None:
            nonlocal status, raw_headers
            if message["type"] == "http.response.start":
                status = message["status"]
                raw_headers = list(message.get("headers", []))
            elif message["type"] == "http.response.body":
                parts.append(message.get("body", b""))

        await self.app(scope, receive, send)

        content_type = "text/html; charset=utf-8"
        headers_out: list[tuple[str, str]] = []
        cookies: list[SetCookie] = []
        for name_b, value_b in raw_headers:
            name = name_b.decode("latin-1")
            value = value_b.decode("latin-1")
            if name == "content-type":
                content_type = value
            elif name == "set-cookie":
                cookies.append(_parse_set_cookie(value))
            elif name != "content-length":
                headers_out.append((name, value))

        for cookie in cookies:
            if cookie.max_age is not None and cookie.max_age <= 0:
                self.cookies.pop(cookie.name, None)
            else:
                self.cookies[cookie.name] = cookie.value

        return Response(
            body=b"".join(parts),
            status=status,
            content_type=content_type,
            headers=tuple(headers_out),
            cookies=tuple(cookies),
        )
