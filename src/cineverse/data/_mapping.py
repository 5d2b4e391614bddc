"""Map database rows onto dataclasses.

SQLite hands back ints for booleans and strings for some numeric
columns; fields annotated ``int``, ``float``, ``bool`` or ``str`` are
coerced so models see the types they declare. Annotations are resolved
with ``typing.get_type_hints`` so modules using postponed evaluation
map the same way.
"""

import dataclasses
import types
from functools import cache
from typing import Any, TypeVar, get_args, get_origin, get_type_hints

T = TypeVar("T")

_COERCIBLE: dict[type, Any] = {
    int: lambda v: int(v) if v != "" else 0,
    float: lambda v: float(v) if v != "" else 0.0,
    bool: lambda v: v.lower() in ("1", "true", "yes") if isinstance(v, str) else bool(v),
    str: str,
}


@cache
def _coercion_map(cls: type) -> dict[str, type | None]:
    hints = get_type_hints(cls)
    result: dict[str, type | None] = {}
    for f in dataclasses.fields(cls):
        annotation = hints.get(f.name, f.type)
        # X | None coerces to X
        if get_origin(annotation) is types.UnionType:
            args = [a for a in get_args(annotation) if a is not type(None)]
            annotation = args[0] if len(args) == 1 else None
        result[f.name] = annotation if annotation in _COERCIBLE else None
    return result


def _coerce(value: Any, target: type | None) -> Any:
    if target is None or value is None or isinstance(value, target):
        return value
    return _COERCIBLE[target](value)


def _check(cls: type) -> None:
    if not dataclasses.is_dataclass(cls):
        msg = f"{cls.__name__} is not a dataclass; rows map onto dataclasses only"
        raise TypeError(msg)


def map_row(cls: type[T], row: dict[str, Any]) -> T:
    """Build one *cls* from *row*, ignoring columns the class does not declare.

    Raises ``TypeError`` if a required field is missing from the row.
    """
    _check(cls)
    coercion = _coercion_map(cls)
    return cls(**{k: _coerce(v, coercion[k]) for k, v in row.items() if k in coercion})


def map_rows(cls: type[T], rows: list[dict[str, Any]]) -> list[T]:
    _check(cls)
    coercion = _coercion_map(cls)
    return [
        cls(**{k: _coerce(v, coercion[k]) for k, v in row.items() if k in coercion})
        for row in rows
    ]
