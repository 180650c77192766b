"""Persistence gateway interface and local SQLite implementation."""

from __future__ import annotations

import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..errors import GatewayError
from .schema import ensure_schema

if TYPE_CHECKING:
    from ..config import TallybookConfig

Row = dict[str, Any]

# Writable columns per collection
COLUMNS: dict[str, tuple[str, ...]] = {
    "receipts": (
        "id", "user_id", "date", "total", "items", "category",
        "image_url", "notes", "created_at", "updated_at",
    ),
    "budgets": ("id", "user_id", "category", "limit", "spent", "period"),
    "shopping_lists": ("id", "user_id", "name", "created_at", "updated_at"),
    "shopping_items": (
        "id", "list_id", "user_id", "name", "quantity", "completed", "position",
    ),
}


def _check_table(table: str) -> tuple[str, ...]:
    try:
        return COLUMNS[table]
    except KeyError:
        raise GatewayError(f"Unknown collection: {table!r}") from None


def _check_columns(table: str, row: Row) -> list[str]:
    allowed = _check_table(table)
    unknown = [c for c in row if c not in allowed]
    if unknown:
        raise GatewayError(f"Unknown columns for {table}: {', '.join(unknown)}")
    return list(row)


class PersistenceGateway(ABC):
    """Row-oriented CRUD over the four user-scoped collections.

    All methods are blocking; async callers run them in a worker thread.
    Failures raise :class:`GatewayError`.
    """

    @abstractmethod
    def select(self, table: str, user_id: str) -> list[Row]:
        """Return all rows of ``table`` owned by ``user_id`` in insertion order."""

    @abstractmethod
    def insert(self, table: str, row: Row) -> Row:
        """Insert one row and return it as stored."""

    @abstractmethod
    def update(self, table: str, row_id: str, values: Row) -> None:
        """Update the row with the given id."""

    @abstractmethod
    def delete(self, table: str, row_id: str) -> None:
        """Delete the row with the given id (owned rows go with it)."""

    @abstractmethod
    def upsert(self, table: str, rows: list[Row]) -> None:
        """Insert rows, replacing those whose id already exists."""

    def close(self) -> None:
        pass


class SQLiteGateway(PersistenceGateway):
    """Local gateway backed by a SQLite file."""

    def __init__(self, db_path: str | Path = "~/.config/tallybook/tallybook.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _execute(self, sql: str, params: tuple | list = ()) -> list[Row]:
        with self._lock:
            try:
                conn = self._get_conn()
                rows = conn.execute(sql, params).fetchall()
                conn.commit()
            except sqlite3.Error as e:
                raise GatewayError(f"SQLite error: {e}") from e
        return [dict(r) for r in rows]

    def select(self, table: str, user_id: str) -> list[Row]:
        _check_table(table)
        order = "position, rowid" if table == "shopping_items" else "rowid"
        return self._execute(
            f'SELECT * FROM "{table}" WHERE user_id = ? ORDER BY {order}',
            (user_id,),
        )

    def insert(self, table: str, row: Row) -> Row:
        columns = _check_columns(table, row)
        names = ", ".join(f'"{c}"' for c in columns)
        marks = ", ".join("?" for _ in columns)
        self._execute(
            f'INSERT INTO "{table}" ({names}) VALUES ({marks})',
            [row[c] for c in columns],
        )
        stored = self._execute(f'SELECT * FROM "{table}" WHERE id = ?', (row["id"],))
        return stored[0]

    def update(self, table: str, row_id: str, values: Row) -> None:
        columns = _check_columns(table, values)
        if not columns:
            return
        assignments = ", ".join(f'"{c}" = ?' for c in columns)
        self._execute(
            f'UPDATE "{table}" SET {assignments} WHERE id = ?',
            [values[c] for c in columns] + [row_id],
        )

    def delete(self, table: str, row_id: str) -> None:
        _check_table(table)
        self._execute(f'DELETE FROM "{table}" WHERE id = ?', (row_id,))

    def upsert(self, table: str, rows: list[Row]) -> None:
        for row in rows:
            columns = _check_columns(table, row)
            names = ", ".join(f'"{c}"' for c in columns)
            marks = ", ".join("?" for _ in columns)
            updates = ", ".join(
                f'"{c}" = excluded."{c}"' for c in columns if c != "id"
            )
            conflict = f"DO UPDATE SET {updates}" if updates else "DO NOTHING"
            self._execute(
                f'INSERT INTO "{table}" ({names}) VALUES ({marks}) '
                f"ON CONFLICT(id) {conflict}",
                [row[c] for c in columns],
            )


def create_gateway(config: TallybookConfig, access_token: str = "") -> PersistenceGateway:
    """Create a persistence gateway based on configuration."""
    gateway_name = config.backend.gateway

    match gateway_name:
        case "sqlite":
            return SQLiteGateway(db_path=config.backend.db_path)
        case "supabase":
            from .supabase import SupabaseGateway

            return SupabaseGateway(
                url=config.backend.supabase_url,
                api_key=config.backend.supabase_key,
                access_token=access_token,
            )
        case _:
            raise ValueError(
                f"Unknown gateway: {gateway_name!r} (choose from sqlite / supabase)"
            )
