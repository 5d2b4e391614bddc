"""Map handler return values to Response objects.

isinstance dispatch, no magic:

1. ``Response``          -> pass through
2. ``dict`` / ``list``   -> 200, application/json
3. ``str``               -> 200, text/html
4. ``bytes``             -> 200, application/octet-stream
5. ``None``              -> 204, empty body
6. ``(value, int)``      -> negotiate value, override status
"""

from typing import Any

from cineverse.errors import ConfigurationError
from cineverse.http.response import Response


def negotiate(value: Any) -> Response:
    match value:
        case Response():
            return value
        case dict() | list():
            return Response.json(value)
        case str():
            return Response.html(value)
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case None:
            return Response(status=204)
        case (inner, int() as status):
            return negotiate(inner).with_status(status)
        case _:
            msg = (
                f"Handler returned {type(value).__name__}; expected Response, "
                "dict, list, str, bytes, None, or (value, status)."
            )
            raise ConfigurationError(msg)
