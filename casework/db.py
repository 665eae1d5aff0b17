"""
Database abstraction for the hosted SQL backend and an in-memory test implementation.

Both clients speak in plain row dicts and table names, the same way the
hosted backend's table API does. Filters are equality maps where a list,
tuple or set value means membership; ``exclude`` expresses inequality.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional, Protocol, Sequence

from sqlalchemy import and_, create_engine, delete, func, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.schema import Table

from casework.errors import BackendError
from casework.tables import Base


class DbClient(Protocol):
    """Interface for table-scoped database access."""

    def select(
        self,
        table: str,
        *,
        filters: Optional[dict] = None,
        exclude: Optional[dict] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        ...

    def select_one(self, table: str, filters: dict) -> Optional[dict]:
        ...

    def insert(self, table: str, values: dict) -> dict:
        ...

    def update(self, table: str, values: dict, filters: dict) -> list[dict]:
        ...

    def delete(self, table: str, filters: dict) -> int:
        ...

    def count(self, table: str, *, filters: Optional[dict] = None) -> int:
        ...

    def search(
        self,
        table: str,
        fragment: str,
        columns: Sequence[str],
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        select_columns: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        ...


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def _table(name: str) -> Table:
    table = Base.metadata.tables.get(name)
    if table is None:
        raise BackendError(f'relation "{name}" does not exist')
    return table


def _check_columns(table: Table, names: Iterable[str]) -> None:
    for name in names:
        if name not in table.c:
            raise BackendError(
                f"Could not find the '{name}' column of '{table.name}'"
            )


def _is_membership(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _project(row: dict, columns: Optional[Sequence[str]]) -> dict:
    if not columns:
        return dict(row)
    return {name: row.get(name) for name in columns}


def _check_not_null(table: Table, values: dict) -> None:
    for column in table.c:
        if column.name in values and not column.nullable and values[column.name] is None:
            raise BackendError(
                f'null value in column "{column.name}" of relation "{table.name}" '
                "violates not-null constraint"
            )


def _stamp_new_row(row: dict, stamp: str) -> None:
    if row.get("id") is None:
        row["id"] = new_id()
    for key in ("created_at", "updated_at"):
        if row.get(key) is None:
            row[key] = stamp


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.tables: Dict[str, list[dict]] = {
            name: [] for name in Base.metadata.tables
        }
        self._last_stamp: Optional[datetime] = None

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        for rows in self.tables.values():
            rows.clear()
        self._last_stamp = None

    def _rows(self, name: str) -> list[dict]:
        _table(name)
        return self.tables.setdefault(name, [])

    def _next_stamp(self) -> str:
        # Keep creation stamps strictly increasing so newest-first ordering is stable.
        now = datetime.now(timezone.utc)
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = now
        return now.isoformat()

    @staticmethod
    def _matches(row: dict, filters: Optional[dict], exclude: Optional[dict]) -> bool:
        for key, expected in (filters or {}).items():
            if _is_membership(expected):
                if row.get(key) not in expected:
                    return False
            elif row.get(key) != expected:
                return False
        for key, rejected in (exclude or {}).items():
            if row.get(key) == rejected:
                return False
        return True

    @staticmethod
    def _ordered(
        rows: list[dict],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int],
    ) -> list[dict]:
        if order_by:
            rows = sorted(
                rows,
                key=lambda row: (row.get(order_by) is None, row.get(order_by)),
                reverse=descending,
            )
        if limit is not None:
            rows = rows[:limit]
        return rows

    def select(
        self,
        table: str,
        *,
        filters: Optional[dict] = None,
        exclude: Optional[dict] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        schema = _table(table)
        _check_columns(schema, list(filters or {}) + list(exclude or {}))
        rows = [row for row in self._rows(table) if self._matches(row, filters, exclude)]
        rows = self._ordered(rows, order_by, descending, limit)
        return [_project(row, columns) for row in rows]

    def select_one(self, table: str, filters: dict) -> Optional[dict]:
        rows = self.select(table, filters=filters, limit=2)
        if len(rows) > 1:
            raise BackendError("JSON object requested, multiple rows returned")
        return rows[0] if rows else None

    def insert(self, table: str, values: dict) -> dict:
        schema = _table(table)
        _check_columns(schema, values)
        stamp = self._next_stamp()
        row: dict[str, Any] = {}
        for column in schema.c:
            default = column.default.arg if column.default is not None else None
            row[column.name] = default if not callable(default) else None
        row.update(values)
        _stamp_new_row(row, stamp)
        _check_not_null(schema, row)
        for column in schema.c:
            if column.unique and row.get(column.name) is not None:
                if any(
                    existing.get(column.name) == row[column.name]
                    for existing in self._rows(table)
                ):
                    raise BackendError(
                        f'duplicate key value violates unique constraint on "{table}.{column.name}"'
                    )
        if any(existing["id"] == row["id"] for existing in self._rows(table)):
            raise BackendError(f'duplicate key value violates "{table}_pkey"')
        self._rows(table).append(row)
        return dict(row)

    def update(self, table: str, values: dict, filters: dict) -> list[dict]:
        schema = _table(table)
        _check_columns(schema, list(values) + list(filters))
        matching = [row for row in self._rows(table) if self._matches(row, filters, None)]
        if matching:
            _check_not_null(schema, values)
        stamp = utc_now_iso()
        for row in matching:
            row.update(values)
            if "updated_at" not in values:
                row["updated_at"] = stamp
        return [dict(row) for row in matching]

    def delete(self, table: str, filters: dict) -> int:
        schema = _table(table)
        _check_columns(schema, filters)
        rows = self._rows(table)
        keep = [row for row in rows if not self._matches(row, filters, None)]
        removed = len(rows) - len(keep)
        rows[:] = keep
        return removed

    def count(self, table: str, *, filters: Optional[dict] = None) -> int:
        schema = _table(table)
        _check_columns(schema, filters or {})
        return sum(1 for row in self._rows(table) if self._matches(row, filters, None))

    def search(
        self,
        table: str,
        fragment: str,
        columns: Sequence[str],
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        select_columns: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        schema = _table(table)
        _check_columns(schema, columns)
        needle = fragment.lower()
        rows = [
            row
            for row in self._rows(table)
            if any(needle in str(row.get(name) or "").lower() for name in columns)
        ]
        rows = self._ordered(rows, order_by, descending, limit)
        return [_project(row, select_columns) for row in rows]


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str, *, create_tables: bool = True):
        if not database_url:
            raise ValueError("A database URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        if create_tables:
            Base.metadata.create_all(self.engine)

    @staticmethod
    def _where(table: Table, filters: Optional[dict], exclude: Optional[dict]):
        clauses = []
        for key, expected in (filters or {}).items():
            column = table.c[key]
            if _is_membership(expected):
                clauses.append(column.in_(list(expected)))
            elif expected is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == expected)
        for key, rejected in (exclude or {}).items():
            clauses.append(table.c[key] != rejected)
        return and_(*clauses) if clauses else None

    @staticmethod
    def _finish(stmt, table: Table, order_by, descending, limit):
        if order_by:
            column = table.c[order_by]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return stmt

    def _fetch(self, stmt, columns: Optional[Sequence[str]] = None) -> list[dict]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise BackendError(str(getattr(exc, "orig", None) or exc)) from exc
        return [_project(dict(row), columns) for row in rows]

    def select(
        self,
        table: str,
        *,
        filters: Optional[dict] = None,
        exclude: Optional[dict] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        schema = _table(table)
        _check_columns(schema, list(filters or {}) + list(exclude or {}))
        stmt = select(schema)
        where = self._where(schema, filters, exclude)
        if where is not None:
            stmt = stmt.where(where)
        stmt = self._finish(stmt, schema, order_by, descending, limit)
        return self._fetch(stmt, columns)

    def select_one(self, table: str, filters: dict) -> Optional[dict]:
        rows = self.select(table, filters=filters, limit=2)
        if len(rows) > 1:
            raise BackendError("JSON object requested, multiple rows returned")
        return rows[0] if rows else None

    def insert(self, table: str, values: dict) -> dict:
        schema = _table(table)
        _check_columns(schema, values)
        stamp = utc_now_iso()
        row = dict(values)
        _stamp_new_row(row, stamp)
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(schema).values(**row))
                created = conn.execute(
                    select(schema).where(schema.c.id == row["id"])
                ).mappings().one()
        except SQLAlchemyError as exc:
            raise BackendError(str(getattr(exc, "orig", None) or exc)) from exc
        return dict(created)

    def update(self, table: str, values: dict, filters: dict) -> list[dict]:
        schema = _table(table)
        _check_columns(schema, list(values) + list(filters))
        changes = dict(values)
        changes.setdefault("updated_at", utc_now_iso())
        where = self._where(schema, filters, None)
        try:
            with self.engine.begin() as conn:
                id_stmt = select(schema.c.id)
                if where is not None:
                    id_stmt = id_stmt.where(where)
                ids = [row.id for row in conn.execute(id_stmt).all()]
                if not ids:
                    return []
                conn.execute(update(schema).where(schema.c.id.in_(ids)).values(**changes))
                rows = conn.execute(
                    select(schema).where(schema.c.id.in_(ids))
                ).mappings().all()
        except SQLAlchemyError as exc:
            raise BackendError(str(getattr(exc, "orig", None) or exc)) from exc
        return [dict(row) for row in rows]

    def delete(self, table: str, filters: dict) -> int:
        schema = _table(table)
        _check_columns(schema, filters)
        try:
            with self.engine.begin() as conn:
                stmt = delete(schema)
                where = self._where(schema, filters, None)
                if where is not None:
                    stmt = stmt.where(where)
                result = conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise BackendError(str(getattr(exc, "orig", None) or exc)) from exc
        return result.rowcount or 0

    def count(self, table: str, *, filters: Optional[dict] = None) -> int:
        schema = _table(table)
        _check_columns(schema, filters or {})
        stmt = select(func.count()).select_from(schema)
        where = self._where(schema, filters, None)
        if where is not None:
            stmt = stmt.where(where)
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            raise BackendError(str(getattr(exc, "orig", None) or exc)) from exc

    def search(
        self,
        table: str,
        fragment: str,
        columns: Sequence[str],
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        select_columns: Optional[Sequence[str]] = None,
    ) -> list[dict]:
        schema = _table(table)
        _check_columns(schema, columns)
        escaped = (
            fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        )
        pattern = f"%{escaped}%"
        stmt = select(schema).where(
            or_(*[schema.c[name].ilike(pattern, escape="\\") for name in columns])
        )
        stmt = self._finish(stmt, schema, order_by, descending, limit)
        return self._fetch(stmt, select_columns)
