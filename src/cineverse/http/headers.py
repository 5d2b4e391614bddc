"""Immutable, case-insensitive request headers.

Stores the raw byte pairs from the ASGI scope and decodes on access,
so repeated headers (``X-Forwarded-For`` chains, multiple ``Cookie``
lines) keep their order.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Case-insensitive header mapping.

    ``headers["accept"]`` returns the first value; ``get_list`` returns
    every value sent under that name.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", raw)

    @classmethod
    def from_dict(cls, headers: Mapping[str, str]) -> Headers:
        """Build from a plain ``{name: value}`` mapping (tests, tooling)."""
        return cls(
            tuple(
                (name.lower().encode("latin-1"), value.encode("latin-1"))
                for name, value in headers.items()
            )
        )

    def _matching(self, key: str) -> Iterator[bytes]:
        wanted = key.lower().encode("latin-1")
        return (value for name, value in self._raw if name.lower() == wanted)

    def __getitem__(self, key: str) -> str:
        for value in self._matching(key):
            return value.decode("latin-1")
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and next(self._matching(key), None) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name.decode("latin-1").lower() for name, _ in self._raw))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default*."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return every value sent for *key*."""
        return [value.decode("latin-1") for value in self._matching(key)]

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        return self._raw
