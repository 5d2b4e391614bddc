"""Cookie parsing (request side) and ``Set-Cookie`` serialization (response side)."""

from dataclasses import dataclass
from urllib.parse import quote, unquote


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header into ``{name: value}``.

    Malformed pairs (no ``=``) are skipped; values are percent-decoded.
    """
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        name, sep, value = pair.strip().partition("=")
        if sep and name:
            cookies[name.strip()] = unquote(value.strip().strip('"'))
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive attached to a Response."""

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"

    def to_header_value(self) -> str:
        parts = [f"{self.name}={quote(self.value, safe='')}"]
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite.capitalize()}")
        return "; ".join(parts)
