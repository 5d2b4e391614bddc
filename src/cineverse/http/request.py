"""Immutable HTTP request.

Frozen metadata with async body access. Derived accessors (does the
caller expect JSON, which IP is the client) are computed from the
snapshot, never stored separately.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from cineverse._internal.asgi import Receive
from cineverse.errors import ValidationError
from cineverse.http.cookies import parse_cookies
from cineverse.http.headers import Headers
from cineverse.http.query import QueryParams

if TYPE_CHECKING:
    from cineverse.http.forms import FormData, UploadFile
    from cineverse.sessions.session import Session

# Checked in order; the first present header wins.
_CLIENT_IP_HEADERS = (
    "cf-connecting-ip",
    "client-ip",
    "x-forwarded-for",
    "x-forwarded",
    "x-cluster-client-ip",
    "forwarded-for",
    "forwarded",
)

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``state`` carries per-request collaborators attached by middleware
    (the session, the resolved user). The dict is mutable; the
    reference is not.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str]
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    cookies: Mapping[str, str]

    _receive: Receive

    state: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Derived accessors --

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def expects_json(self) -> bool:
        """True for API paths, XHR calls, and clients that accept JSON."""
        if self.path.startswith("/api/"):
            return True
        if self.headers.get("x-requested-with", "").lower() == "xmlhttprequest":
            return True
        return "application/json" in self.headers.get("accept", "")

    @property
    def client_ip(self) -> str:
        """Best-effort client address, honoring proxy headers."""
        for name in _CLIENT_IP_HEADERS:
            value = self.headers.get(name)
            if not value:
                continue
            candidate = value.split(",")[0].strip()
            if name == "forwarded" and "for=" in candidate:
                candidate = candidate.split("for=", 1)[1].split(";")[0].strip('"')
            if candidate:
                return candidate
        if self.client:
            return self.client[0]
        return "127.0.0.1"

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def referrer(self) -> str | None:
        return self.headers.get("referer")

    @property
    def is_secure(self) -> bool:
        if self.headers.get("x-forwarded-proto", "").lower() == "https":
            return True
        return self.server is not None and self.server[1] == 443

    @property
    def bearer_token(self) -> str | None:
        """Token from ``Authorization: Bearer <token>``, if any."""
        auth = self.headers.get("authorization", "")
        scheme, _, token = auth.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    @property
    def session(self) -> Session:
        """The session attached by ``SessionMiddleware``.

        Raises ``LookupError`` when the middleware is not installed.
        """
        try:
            return self.state["session"]
        except KeyError:
            msg = "No session on this request. Is SessionMiddleware installed?"
            raise LookupError(msg) from None

    @property
    def url(self) -> str:
        qs = self.query.raw
        return f"{self.path}?{qs.decode('latin-1')}" if qs else self.path

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full body once; later calls return the cached bytes."""
        if "body" not in self._cache:
            self._cache["body"] = b"".join([chunk async for chunk in self.stream()])
        return self._cache["body"]

    async def stream(self) -> AsyncGenerator[bytes]:
        while True:
            message = await self._receive()
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        """Parse the body as JSON.

        Raises:
            ValidationError: When the body is not valid JSON.
        """
        raw = await self.body()
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            raise ValidationError.single("body", "Malformed JSON body") from None

    async def form(self) -> FormData:
        if "form" not in self._cache:
            from cineverse.http.forms import parse_form_data

            ct = self.content_type or "application/x-www-form-urlencoded"
            self._cache["form"] = await parse_form_data(await self.body(), ct)
        return self._cache["form"]

    async def input(self) -> dict[str, Any]:
        """Query parameters merged with the JSON or form body.

        Body values win over query values with the same name.
        """
        data: dict[str, Any] = self.query.to_dict()
        if self.method not in _BODY_METHODS:
            return data
        ct = (self.content_type or "").lower()
        if "json" in ct:
            payload = await self.json()
            if isinstance(payload, dict):
                data.update(payload)
        elif "form" in ct:
            data.update(await self.form())
        return data

    async def files(self) -> Mapping[str, UploadFile]:
        if "multipart/form-data" not in (self.content_type or ""):
            return {}
        return (await self.form()).files

    # -- Copies --

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Copy carrying matched route parameters; body cache and state are shared."""
        return replace(self, path_params=path_params)

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Mapping[str, Any], receive: Receive) -> Request:
        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            path_params={},
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            _receive=receive,
        )
