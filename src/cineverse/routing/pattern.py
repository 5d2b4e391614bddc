"""Route template compilation.

A template is a literal path with ``{name}`` placeholders. Literal
pieces are escaped one by one, so escaping never reaches the braces;
constraint fragments are inserted verbatim, so ``.*`` keeps its regex
meaning and can span segments.

Each placeholder becomes a named group ``p0``, ``p1``, ... in
declaration order. Constraint fragments may contain groups of their
own without shifting parameter extraction.
"""

import re
from collections.abc import Mapping

DEFAULT_SEGMENT = r"[^/]+"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def compile_template(
    template: str,
    constraints: Mapping[str, str] | None = None,
) -> tuple[re.Pattern[str], tuple[str, ...]]:
    """Compile a route template into a full-match pattern.

    Returns:
        ``(pattern, param_names)``. Match with ``pattern.fullmatch()``.

    Raises:
        ValueError: If a parameter name repeats or a constraint is not
            a valid regex.
    """
    constraints = constraints or {}
    pieces: list[str] = []
    names: list[str] = []
    cursor = 0
    for placeholder in _PLACEHOLDER.finditer(template):
        name = placeholder.group(1)
        if name in names:
            msg = f"Duplicate parameter {{{name}}} in route template {template!r}"
            raise ValueError(msg)
        pieces.append(re.escape(template[cursor : placeholder.start()]))
        pieces.append(f"(?P<p{len(names)}>{constraints.get(name, DEFAULT_SEGMENT)})")
        names.append(name)
        cursor = placeholder.end()
    pieces.append(re.escape(template[cursor:]))

    try:
        pattern = re.compile("".join(pieces))
    except re.error as exc:
        msg = f"Invalid constraint in route template {template!r}: {exc}"
        raise ValueError(msg) from exc
    return pattern, tuple(names)


def join_paths(prefix: str, path: str) -> str:
    """Join a group prefix and a route path.

    Trailing slashes are dropped (``/movies`` + ``/`` is ``/movies``);
    the bare root stays ``/``.
    """
    joined = f"{prefix.rstrip('/')}/{path.lstrip('/')}" if prefix else path
    if not joined.startswith("/"):
        joined = f"/{joined}"
    return joined.rstrip("/") or "/"
