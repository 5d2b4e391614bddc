"""HTTP response with chainable ``.with_*()`` transformations.

Each transformation returns a new Response, so a response is never
mutated after a handler hands it back; the sender serializes it once.

The class-level constructors produce the platform's wire envelopes::

    {"success": true, "message": ..., "data": ...}
    {"error": true, "message": ..., "status_code": ...}
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from cineverse.http.cookies import SetCookie

JSON_CONTENT_TYPE = "application/json"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"


def _dumps(data: Any) -> str:
    return json.dumps(data, default=str, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations."""

    body: str | bytes = ""
    status: int = 200
    content_type: str = HTML_CONTENT_TYPE
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[SetCookie, ...] = ()

    # -- Constructors --

    @classmethod
    def json(cls, data: Any, status: int = 200) -> Response:
        return cls(body=_dumps(data), status=status, content_type=JSON_CONTENT_TYPE)

    @classmethod
    def html(cls, body: str, status: int = 200) -> Response:
        return cls(body=body, status=status)

    @classmethod
    def text(cls, body: str, status: int = 200, content_type: str = "text/plain") -> Response:
        return cls(body=body, status=status, content_type=f"{content_type}; charset=utf-8")

    @classmethod
    def redirect(cls, url: str, status: int = 302) -> Response:
        return cls(status=status, headers=(("Location", url),))

    @classmethod
    def success(cls, data: Any = None, message: str = "Success", status: int = 200) -> Response:
        payload: dict[str, Any] = {"success": True, "message": message}
        if data is not None:
            payload["data"] = data
        return cls.json(payload, status)

    @classmethod
    def error(
        cls,
        message: str,
        status: int = 400,
        errors: Mapping[str, list[str]] | None = None,
    ) -> Response:
        payload: dict[str, Any] = {"error": True, "message": message, "status_code": status}
        if errors:
            payload["errors"] = dict(errors)
        return cls.json(payload, status)

    @classmethod
    def validation_error(
        cls, errors: Mapping[str, list[str]], message: str = "The given data was invalid."
    ) -> Response:
        return cls.error(message, 422, errors)

    @classmethod
    def unauthorized(cls, message: str = "Unauthorized") -> Response:
        return cls.error(message, 401)

    @classmethod
    def forbidden(cls, message: str = "Forbidden") -> Response:
        return cls.error(message, 403)

    @classmethod
    def not_found(cls, message: str = "Not Found") -> Response:
        return cls.error(message, 404)

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "lax",
    ) -> Response:
        cookie = SetCookie(name, value, max_age, path, domain, secure, httponly, samesite)
        return replace(self, cookies=(*self.cookies, cookie))

    def without_cookie(self, name: str, path: str = "/") -> Response:
        """Expire a cookie on the client (``Max-Age=0``)."""
        return replace(self, cookies=(*self.cookies, SetCookie(name, "", max_age=0, path=path)))

    # -- Inspection --

    def header(self, name: str) -> str | None:
        """First header value set under *name* (case-insensitive)."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    @property
    def location(self) -> str | None:
        return self.header("location")

    @property
    def body_bytes(self) -> bytes:
        return self.body.encode("utf-8") if isinstance(self.body, str) else self.body

    @property
    def body_text(self) -> str:
        return self.body.decode("utf-8") if isinstance(self.body, bytes) else self.body

    def json_body(self) -> Any:
        """Decode a JSON body (tests and middleware)."""
        return json.loads(self.body_text)
