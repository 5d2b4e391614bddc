"""Fluent query builder bound to one connection and one table.

Accumulates clauses through chaining methods and compiles them to SQL
with named ``:param`` placeholders. Values are always bound, never
spliced into the statement text.

Usage::

    movies = await (
        db.table("movies")
        .select("id", "title", "release_year")
        .where("status", "published")
        .where("release_year", ">=", 2020)
        .where_in("id", [1, 2, 3])
        .order_by("release_year", "DESC")
        .limit(20)
        .get()
    )

    page = await db.table("movies").where("status", "published").paginate(page=2)

Unlike ``Response``, the builder is mutable: every method edits the
builder in place and returns it. Use ``clone()`` to branch a query.

Transparency: ``to_sql()`` and ``bindings`` show exactly what will run.
"""

from __future__ import annotations

import copy
import math
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from cineverse.data.database import quote_identifier
from cineverse.data.errors import PreconditionError

if TYPE_CHECKING:
    from cineverse.data.database import Database

OPERATORS = frozenset({"=", "!=", "<>", "<", "<=", ">", ">=", "LIKE", "NOT LIKE"})

_MISSING: Any = object()
_NON_WORD = re.compile(r"\W")


@dataclass(frozen=True, slots=True)
class Page:
    """One page of rows plus the numbers a paginator needs."""

    rows: list[dict[str, Any]]
    total: int
    per_page: int
    current_page: int
    last_page: int
    range_from: int
    range_to: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.rows,
            "total": self.total,
            "per_page": self.per_page,
            "current_page": self.current_page,
            "last_page": self.last_page,
            "from": self.range_from,
            "to": self.range_to,
        }


@dataclass(slots=True)
class _Where:
    boolean: str
    sql: str


@dataclass(slots=True)
class QueryBuilder:
    """Mutable SELECT/UPDATE/DELETE builder for one table."""

    db: Database
    table_name: str
    _columns: list[str] = field(default_factory=lambda: ["*"])
    _joins: list[str] = field(default_factory=list)
    _wheres: list[_Where] = field(default_factory=list)
    _group_by: list[str] = field(default_factory=list)
    _having: list[str] = field(default_factory=list)
    _order_by: list[str] = field(default_factory=list)
    _limit: int | None = None
    _offset: int | None = None
    _bindings: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        quote_identifier(self.table_name)

    # -- Building --

    def select(self, *columns: str) -> QueryBuilder:
        self._columns = list(columns) or ["*"]
        return self

    def where(self, column: str, operator: Any = _MISSING, value: Any = _MISSING) -> QueryBuilder:
        """Add an AND condition.

        ``where("status", "published")`` means ``status = :status``;
        ``where("year", ">=", 2020)`` takes an explicit operator.
        """
        return self._add_where("AND", column, operator, value)

    def or_where(self, column: str, operator: Any = _MISSING, value: Any = _MISSING) -> QueryBuilder:
        return self._add_where("OR", column, operator, value)

    def where_any(self, columns: tuple[str, ...] | list[str], operator: str, value: Any) -> QueryBuilder:
        """One parenthesized condition true when any of *columns* matches.

        ``where_any(("title", "overview"), "LIKE", "%dune%")`` compiles to
        ``(title LIKE :title OR overview LIKE :overview)``.
        """
        op = str(operator).upper()
        if op not in OPERATORS:
            msg = f"Invalid operator: {operator!r}"
            raise ValueError(msg)
        parts = [f"{quote_identifier(col)} {op} {self._placeholder(col, value)}" for col in columns]
        self._wheres.append(_Where("AND", f"({' OR '.join(parts)})"))
        return self

    def where_in(self, column: str, values: list[Any] | tuple[Any, ...]) -> QueryBuilder:
        return self._add_in("IN", column, values)

    def where_not_in(self, column: str, values: list[Any] | tuple[Any, ...]) -> QueryBuilder:
        return self._add_in("NOT IN", column, values)

    def where_like(self, column: str, pattern: str) -> QueryBuilder:
        return self.where(column, "LIKE", pattern)

    def where_null(self, column: str) -> QueryBuilder:
        self._wheres.append(_Where("AND", f"{quote_identifier(column)} IS NULL"))
        return self

    def where_not_null(self, column: str) -> QueryBuilder:
        self._wheres.append(_Where("AND", f"{quote_identifier(column)} IS NOT NULL"))
        return self

    def join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        return self._add_join("INNER JOIN", table, first, operator, second)

    def left_join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        return self._add_join("LEFT JOIN", table, first, operator, second)

    def order_by(self, column: str, direction: str = "ASC") -> QueryBuilder:
        direction = direction.upper()
        if direction not in ("ASC", "DESC"):
            msg = f"Invalid sort direction: {direction!r}"
            raise ValueError(msg)
        self._order_by.append(f"{quote_identifier(column)} {direction}")
        return self

    def group_by(self, *columns: str) -> QueryBuilder:
        self._group_by.extend(quote_identifier(col) for col in columns)
        return self

    def having(self, clause: str) -> QueryBuilder:
        """Raw HAVING fragment, ANDed with earlier ones. Never pass user input here."""
        self._having.append(clause)
        return self

    def limit(self, n: int) -> QueryBuilder:
        self._limit = int(n)
        return self

    def offset(self, n: int) -> QueryBuilder:
        self._offset = int(n)
        return self

    def clone(self) -> QueryBuilder:
        """Independent copy sharing only the connection."""
        twin = copy.copy(self)
        twin._columns = list(self._columns)
        twin._joins = list(self._joins)
        twin._wheres = [_Where(w.boolean, w.sql) for w in self._wheres]
        twin._group_by = list(self._group_by)
        twin._having = list(self._having)
        twin._order_by = list(self._order_by)
        twin._bindings = dict(self._bindings)
        return twin

    # -- Compilation --

    def to_sql(self) -> str:
        """The SELECT statement this builder runs."""
        parts = [f"SELECT {', '.join(self._columns)} FROM {self.table_name}"]
        parts.extend(self._joins)
        if self._wheres:
            parts.append(f"WHERE {self._compile_wheres()}")
        if self._group_by:
            parts.append(f"GROUP BY {', '.join(self._group_by)}")
        if self._having:
            parts.append(f"HAVING {' AND '.join(self._having)}")
        if self._order_by:
            parts.append(f"ORDER BY {', '.join(self._order_by)}")
        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        if self._offset is not None:
            parts.append(f"OFFSET {self._offset}")
        return " ".join(parts)

    @property
    def bindings(self) -> dict[str, Any]:
        return dict(self._bindings)

    # -- Reads --

    async def get(self) -> list[dict[str, Any]]:
        return await self.db.fetch_all(self.to_sql(), self._bindings)

    async def first(self) -> dict[str, Any] | None:
        rows = await self.clone().limit(1).get()
        return rows[0] if rows else None

    async def count(self) -> int:
        """``COUNT(*)`` over the current conditions; order and paging are ignored.

        A grouped query counts its result rows (the groups), not the
        rows inside the first group.
        """
        saved = (self._columns, self._order_by, self._limit, self._offset)
        self._order_by, self._limit, self._offset = [], None, None
        if not self._group_by:
            self._columns = ["COUNT(*) AS count"]
        try:
            sql = self.to_sql()
            if self._group_by:
                sql = f"SELECT COUNT(*) AS count FROM ({sql}) AS grouped"
            value = await self.db.fetch_val(sql, self._bindings)
        finally:
            self._columns, self._order_by, self._limit, self._offset = saved
        return int(value or 0)

    async def exists(self) -> bool:
        return await self.count() > 0

    async def pluck(self, column: str) -> list[Any]:
        rows = await self.clone().select(column).get()
        key = column.rsplit(".", 1)[-1]
        return [row[key] for row in rows]

    async def paginate(self, page: int = 1, per_page: int = 15) -> Page:
        page = max(1, int(page))
        per_page = max(1, int(per_page))
        total = await self.clone().count()
        offset = (page - 1) * per_page
        rows = await self.limit(per_page).offset(offset).get()
        return Page(
            rows=rows,
            total=total,
            per_page=per_page,
            current_page=page,
            last_page=max(1, math.ceil(total / per_page)),
            range_from=offset + 1 if total else 0,
            range_to=min(offset + per_page, total),
        )

    # -- Writes --

    async def insert(self, data: dict[str, Any]) -> int | None:
        return await self.db.insert(self.table_name, data)

    async def update(self, data: dict[str, Any]) -> int:
        """Update every row matching the conditions; returns affected rows.

        Raises:
            PreconditionError: When no condition has been added.
        """
        self._require_where("update")
        sets = ", ".join(f"{quote_identifier(col)} = :set_{col}" for col in data)
        params = {**self._bindings, **{f"set_{col}": value for col, value in data.items()}}
        sql = f"UPDATE {self.table_name} SET {sets} WHERE {self._compile_wheres()}"
        return (await self.db.query(sql, params)).rowcount

    async def delete(self) -> int:
        self._require_where("delete")
        sql = f"DELETE FROM {self.table_name} WHERE {self._compile_wheres()}"
        return (await self.db.query(sql, self._bindings)).rowcount

    async def increment(self, column: str, amount: int | float = 1) -> int:
        self._require_where("increment")
        col = quote_identifier(column)
        params = {**self._bindings, "increment_amount": amount}
        sql = (
            f"UPDATE {self.table_name} SET {col} = {col} + :increment_amount "
            f"WHERE {self._compile_wheres()}"
        )
        return (await self.db.query(sql, params)).rowcount

    # -- Internals --

    def _placeholder(self, column: str, value: Any) -> str:
        """Bind *value* under a name derived from *column*.

        ``users.id`` binds as ``:users_id``; a second use of the same
        column gets ``:users_id1``, then ``:users_id2``.
        """
        base = _NON_WORD.sub("_", column)
        name = base
        suffix = 0
        while name in self._bindings:
            suffix += 1
            name = f"{base}{suffix}"
        self._bindings[name] = value
        return f":{name}"

    def _add_where(self, boolean: str, column: str, operator: Any, value: Any) -> QueryBuilder:
        if value is _MISSING:
            operator, value = "=", operator
        if value is _MISSING:
            msg = f"where({column!r}) needs a value"
            raise ValueError(msg)
        op = str(operator).upper()
        if op not in OPERATORS:
            msg = f"Invalid operator: {operator!r}"
            raise ValueError(msg)
        col = quote_identifier(column)
        self._wheres.append(_Where(boolean, f"{col} {op} {self._placeholder(column, value)}"))
        return self

    def _add_in(self, keyword: str, column: str, values: list[Any] | tuple[Any, ...]) -> QueryBuilder:
        col = quote_identifier(column)
        if not values:
            # IN () matches nothing; NOT IN () matches everything
            self._wheres.append(_Where("AND", "1 = 0" if keyword == "IN" else "1 = 1"))
            return self
        placeholders = ", ".join(self._placeholder(column, v) for v in values)
        self._wheres.append(_Where("AND", f"{col} {keyword} ({placeholders})"))
        return self

    def _add_join(self, kind: str, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        if operator.upper() not in OPERATORS:
            msg = f"Invalid join operator: {operator!r}"
            raise ValueError(msg)
        self._joins.append(
            f"{kind} {quote_identifier(table)} ON "
            f"{quote_identifier(first)} {operator} {quote_identifier(second)}"
        )
        return self

    def _compile_wheres(self) -> str:
        sql = self._wheres[0].sql
        for clause in self._wheres[1:]:
            sql += f" {clause.boolean} {clause.sql}"
        return sql

    def _require_where(self, action: str) -> None:
        if not self._wheres:
            msg = f"Refusing to {action} every row of {self.table_name!r} without a WHERE clause."
            raise PreconditionError(msg)
