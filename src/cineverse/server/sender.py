"""Translate a Response into ASGI ``send()`` calls."""

from cineverse._internal.asgi import Send
from cineverse.http.response import Response


def _body_allowed(status: int) -> bool:
    # 1xx, 204 and 304 responses carry no message body.
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(response: Response, send: Send) -> None:
    body = response.body_bytes if _body_allowed(response.status) else b""
    raw_headers: list[tuple[bytes, bytes]] = []
    if body or response.status not in (204, 304):
        raw_headers.append((b"content-type", response.content_type.encode("latin-1")))
    raw_headers.extend(
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in response.headers
    )
    raw_headers.extend(
        (b"set-cookie", cookie.to_header_value().encode("latin-1"))
        for cookie in response.cookies
    )
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send({"type": "http.response.start", "status": response.status, "headers": raw_headers})
    await send({"type": "http.response.body", "body": body})
