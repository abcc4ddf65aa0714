"""Row store: keyed CRUD and chunked bulk operations over a single table."""

import json
import logging
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from typing import Any

from arborist.db.connection import Database
from arborist.models import NodeId, TreeColumns

logger = logging.getLogger(__name__)

DEFAULT_MAX_PER_QUERY = 100

Condition = Mapping[str, Any]


def _ident(name: str) -> str:
    return TreeColumns.quote_identifier(name)


def _encode(value: Any) -> Any:
    """Dict and list values are stored as JSON text."""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def _chunks(items: Sequence, size: int) -> Iterable[Sequence]:
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def build_where(condition: Condition) -> tuple[str, list[Any]]:
    """Render a column -> value mapping as a WHERE clause and its params.

    ``None`` renders ``IS NULL``; list/tuple/set values render ``IN (...)``
    (an empty collection matches nothing). An empty mapping matches all rows.
    """
    clauses: list[str] = []
    params: list[Any] = []
    for column, value in condition.items():
        column = _ident(column)
        if value is None:
            clauses.append(f"{column} IS NULL")
        elif isinstance(value, (list, tuple, set, frozenset)):
            values = list(value)
            if not values:
                clauses.append("0")
                continue
            placeholders = ", ".join("?" for _ in values)
            clauses.append(f"{column} IN ({placeholders})")
            params.extend(values)
        else:
            clauses.append(f"{column} = ?")
            params.append(value)
    return (" AND ".join(clauses) or "1"), params


class RowStore:
    """Generic row access used by the tree manager.

    Every method is a separate round trip; bulk methods commit each chunk on
    its own.
    """

    def __init__(self, db: Database, max_per_query: int = DEFAULT_MAX_PER_QUERY) -> None:
        self._db = db
        self.max_per_query = max_per_query

    @property
    def db(self) -> Database:
        return self._db

    async def insert(self, table: str, row: Mapping[str, Any]) -> int:
        """Insert a row and return its rowid."""
        table = _ident(table)
        if row:
            columns = [_ident(c) for c in row]
            placeholders = ", ".join("?" for _ in columns)
            sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
            params = [_encode(v) for v in row.values()]
        else:
            sql = f"INSERT INTO {table} DEFAULT VALUES"
            params = []
        cursor = await self._db.execute(sql, params)
        assert cursor.lastrowid is not None
        return cursor.lastrowid

    async def update(
        self, table: str, condition: Condition, changeset: Mapping[str, Any]
    ) -> int:
        """Apply ``changeset`` to every row matching ``condition``."""
        if not changeset:
            return 0
        table = _ident(table)
        assignments = ", ".join(f"{_ident(c)} = ?" for c in changeset)
        where, params = build_where(condition)
        cursor = await self._db.execute(
            f"UPDATE {table} SET {assignments} WHERE {where}",
            [_encode(v) for v in changeset.values()] + params,
        )
        return cursor.rowcount

    async def delete(self, table: str, condition: Condition) -> int:
        table = _ident(table)
        where, params = build_where(condition)
        cursor = await self._db.execute(f"DELETE FROM {table} WHERE {where}", params)
        return cursor.rowcount

    async def query(
        self,
        table: str,
        condition: Condition,
        columns: Sequence[str] | None = None,
        order_by: Sequence[str] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield matching rows one at a time as dicts."""
        table = _ident(table)
        selected = ", ".join(_ident(c) for c in columns) if columns else "*"
        where, params = build_where(condition)
        sql = f"SELECT {selected} FROM {table} WHERE {where}"
        if order_by:
            sql += " ORDER BY " + ", ".join(_ident(c) for c in order_by)
        async for row in self._db.iterate(sql, params):
            yield dict(row)

    async def fetchone(
        self,
        table: str,
        condition: Condition,
        columns: Sequence[str] | None = None,
    ) -> dict[str, Any] | None:
        table = _ident(table)
        selected = ", ".join(_ident(c) for c in columns) if columns else "*"
        where, params = build_where(condition)
        row = await self._db.fetchone(
            f"SELECT {selected} FROM {table} WHERE {where} LIMIT 1", params
        )
        return dict(row) if row is not None else None

    async def update_set(
        self,
        table: str,
        column: str,
        ids: Iterable[NodeId],
        changeset: Mapping[str, Any],
        max_per_query: int | None = None,
    ) -> int:
        """Apply one changeset to every row whose ``column`` is in ``ids``."""
        ids = list(ids)
        affected = 0
        for chunk in _chunks(ids, max_per_query or self.max_per_query):
            affected += await self.update(table, {column: chunk}, changeset)
        logger.debug("update_set %s: %d ids, %d rows", table, len(ids), affected)
        return affected

    async def delete_set(
        self,
        table: str,
        column: str,
        ids: Iterable[NodeId],
        max_per_query: int | None = None,
    ) -> int:
        """Delete every row whose ``column`` is in ``ids``."""
        ids = list(ids)
        affected = 0
        for chunk in _chunks(ids, max_per_query or self.max_per_query):
            affected += await self.delete(table, {column: chunk})
        logger.debug("delete_set %s: %d ids, %d rows", table, len(ids), affected)
        return affected

    async def update_set_multi(
        self,
        table: str,
        column: str,
        changeset_map: Mapping[NodeId, Mapping[str, Any]],
        max_per_query: int | None = None,
    ) -> int:
        """Apply a different changeset to each row, keyed by ``column``.

        Each chunk is a single UPDATE with one ``CASE`` expression per
        touched column; rows lacking a column in their changeset keep their
        current value.
        """
        table = _ident(table)
        key = _ident(column)
        ids = [i for i, changes in changeset_map.items() if changes]
        affected = 0
        for chunk in _chunks(ids, max_per_query or self.max_per_query):
            touched: list[str] = []
            for node_id in chunk:
                for name in changeset_map[node_id]:
                    if name not in touched:
                        touched.append(name)

            assignments: list[str] = []
            params: list[Any] = []
            for name in touched:
                cases: list[str] = []
                for node_id in chunk:
                    changes = changeset_map[node_id]
                    if name in changes:
                        cases.append("WHEN ? THEN ?")
                        params.extend([node_id, _encode(changes[name])])
                quoted = _ident(name)
                assignments.append(f"{quoted} = CASE {key} {' '.join(cases)} ELSE {quoted} END")

            placeholders = ", ".join("?" for _ in chunk)
            params.extend(chunk)
            cursor = await self._db.execute(
                f"UPDATE {table} SET {', '.join(assignments)} WHERE {key} IN ({placeholders})",
                params,
            )
            affected += cursor.rowcount
        return affected
