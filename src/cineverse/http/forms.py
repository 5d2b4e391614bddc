"""Form body parsing: URL-encoded and multipart.

URL-encoded bodies use ``urllib.parse``; multipart bodies (avatar
uploads, translation imports) go through ``python-multipart``'s
callback parser.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

from python_multipart.multipart import MultipartParser, parse_options_header


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file held in memory."""

    filename: str
    content_type: str
    size: int
    content: bytes

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    def save(self, path: Path) -> None:
        """Write the content to *path*, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.content)


class FormData(Mapping[str, str]):
    """Parsed form fields plus uploaded files.

    ``form["name"]`` returns the first value for a field;
    ``form.files["avatar"]`` returns an ``UploadFile``.
    """

    __slots__ = ("_data", "_files")

    def __init__(
        self,
        data: dict[str, list[str]] | None = None,
        files: dict[str, UploadFile] | None = None,
    ) -> None:
        self._data = data or {}
        self._files = files or {}

    @property
    def files(self) -> Mapping[str, UploadFile]:
        return self._files

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"FormData({dict(self)!r}, files={list(self._files)!r})"

    def get_list(self, key: str) -> list[str]:
        return list(self._data.get(key, []))


async def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse a form body according to its Content-Type.

    Raises:
        ValueError: For a non-form content type or a multipart body
            without a boundary.
    """
    media_type = content_type.split(";")[0].strip().lower()
    if media_type == "application/x-www-form-urlencoded":
        return FormData(parse_qs(body.decode("utf-8"), keep_blank_values=True))
    if media_type == "multipart/form-data":
        return _parse_multipart(body, content_type)
    msg = f"Unsupported form content type: {content_type!r}"
    raise ValueError(msg)


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if boundary is None:
        msg = "Multipart form data missing boundary parameter"
        raise ValueError(msg)

    data: dict[str, list[str]] = {}
    files: dict[str, UploadFile] = {}
    part: dict[str, Any] = {}
    header_name = ""

    def on_part_begin() -> None:
        part.clear()
        part.update(headers={}, buffer=bytearray(), name=None, filename=None)

    def on_part_data(chunk: bytes, start: int, end: int) -> None:
        part["buffer"].extend(chunk[start:end])

    def on_header_field(chunk: bytes, start: int, end: int) -> None:
        nonlocal header_name
        header_name = chunk[start:end].decode("latin-1").lower()

    def on_header_value(chunk: bytes, start: int, end: int) -> None:
        value = chunk[start:end].decode("latin-1")
        part["headers"][header_name] = value
        if header_name == "content-disposition":
            _, params = parse_options_header(value.encode("latin-1"))
            if b"name" in params:
                part["name"] = params[b"name"].decode("utf-8")
            if b"filename" in params:
                part["filename"] = params[b"filename"].decode("utf-8")

    def on_part_end() -> None:
        name = part.get("name")
        if name is None:
            return
        content = bytes(part["buffer"])
        if part["filename"] is not None:
            files[name] = UploadFile(
                filename=part["filename"],
                content_type=part["headers"].get("content-type", "application/octet-stream"),
                size=len(content),
                content=content,
            )
        else:
            data.setdefault(name, []).append(content.decode("utf-8", errors="replace"))

    parser = MultipartParser(
        boundary,
        {
            "on_part_begin": on_part_begin,
            "on_part_data": on_part_data,
            "on_part_end": on_part_end,
            "on_header_field": on_header_field,
            "on_header_value": on_header_value,
        },
    )
    parser.write(body)
    parser.finalize()
    return FormData(data, files)
