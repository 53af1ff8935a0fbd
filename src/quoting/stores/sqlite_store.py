"""SQLite store — a local, disposable stand-in for the remote store.

Mirrors the remote schema (UUID text ids, created_at timestamps, foreign
keys) so the services and diagnostics can run against a temp file.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from src.common.config import settings
from src.common.errors import StoreError

from ..gateway import Embed

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS quotes (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    client_name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL,
    project_name TEXT NOT NULL,
    installation_address TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'draft'
        CHECK (status IN ('draft', 'pending', 'approved', 'rejected')),
    total REAL NOT NULL CHECK (total > 0),
    adjustment_type TEXT CHECK (adjustment_type IN ('discount', 'surcharge')),
    adjustment_percentage REAL
        CHECK (adjustment_percentage BETWEEN 0 AND 100),
    adjusted_total REAL CHECK (adjusted_total > 0),
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS spaces (
    id TEXT PRIMARY KEY,
    quote_id TEXT NOT NULL,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY (quote_id) REFERENCES quotes(id)
);

CREATE TABLE IF NOT EXISTS items (
    id TEXT PRIMARY KEY,
    space_id TEXT NOT NULL,
    product_id TEXT NOT NULL,
    material TEXT,
    width REAL,
    height REAL,
    depth REAL,
    price REAL NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY (space_id) REFERENCES spaces(id)
);

CREATE TABLE IF NOT EXISTS orders (
    id TEXT PRIMARY KEY,
    quote_id TEXT NOT NULL,
    user_id TEXT,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'in_progress', 'completed', 'cancelled')),
    total REAL NOT NULL CHECK (total > 0),
    adjustment_type TEXT CHECK (adjustment_type IN ('discount', 'surcharge')),
    adjustment_percentage REAL
        CHECK (adjustment_percentage BETWEEN 0 AND 100),
    adjusted_total REAL CHECK (adjusted_total > 0),
    created_at TEXT NOT NULL,
    FOREIGN KEY (quote_id) REFERENCES quotes(id)
);

CREATE TABLE IF NOT EXISTS receipts (
    id TEXT PRIMARY KEY,
    order_id TEXT NOT NULL,
    payment_percentage REAL NOT NULL
        CHECK (payment_percentage BETWEEN 0 AND 100),
    amount REAL NOT NULL CHECK (amount > 0),
    status TEXT NOT NULL DEFAULT 'draft' CHECK (status IN ('draft', 'sent')),
    sent_at TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (order_id) REFERENCES orders(id)
);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS template_settings (
    id TEXT PRIMARY KEY,
    company_name TEXT,
    footer_text TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS preset_values (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    value REAL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_spaces_quote ON spaces(quote_id);
CREATE INDEX IF NOT EXISTS idx_items_space ON items(space_id);
CREATE INDEX IF NOT EXISTS idx_orders_quote ON orders(quote_id);
CREATE INDEX IF NOT EXISTS idx_receipts_order ON receipts(order_id);
"""


def get_connection(db_path: str | None = None) -> sqlite3.Connection:
    """Get a SQLite connection with row factory enabled.

    The connection runs in autocommit mode; SQLiteStore issues BEGIN/COMMIT
    itself so transactions can span several gateway calls.
    """
    path = db_path or settings.database.db_path
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Create all tables if they don't exist (idempotent)."""
    conn.executescript(_SCHEMA_SQL)


def _store_error(e: sqlite3.Error) -> StoreError:
    return StoreError(str(e), code=type(e).__name__)


class SQLiteStore:
    """Store backend over a SQLite connection.

    Each transaction runs on a connection of its own, so writes made through
    this store while a transaction is open are not part of it. In-memory
    databases exist per connection; their transactions share this one.
    """

    def __init__(
        self,
        db_path: str | None = None,
        conn: sqlite3.Connection | None = None,
        init_schema: bool = True,
    ):
        if conn is None:
            db_path = db_path or settings.database.db_path
            conn = get_connection(db_path)
        self.conn = conn
        self.db_path = db_path
        if init_schema:
            init_db(self.conn)
        self._columns: dict[str, set[str]] = {}
        self._owns_conn = False

    def close(self) -> None:
        self.conn.close()

    def columns(self, table: str) -> set[str]:
        if table not in self._columns:
            rows = self.conn.execute(f"PRAGMA table_info({table})").fetchall()
            self._columns[table] = {row["name"] for row in rows}
        return self._columns[table]

    def _check_columns(self, table: str, names) -> None:
        known = self.columns(table)
        unknown = [n for n in names if n not in known]
        if unknown:
            raise StoreError(
                f"Could not find column(s) {', '.join(unknown)} of '{table}'",
                code="unknown_column",
            )

    def _where(self, table: str, filters: dict[str, Any]) -> tuple[str, list[Any]]:
        if not filters:
            return "", []
        self._check_columns(table, filters)
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in filters.items():
            if value is None:
                clauses.append(f"{column} IS NULL")
            elif isinstance(value, (list, tuple, set)):
                values = list(value)
                if not values:
                    clauses.append("0")
                    continue
                clauses.append(f"{column} IN ({', '.join('?' for _ in values)})")
                params.extend(values)
            else:
                clauses.append(f"{column} = ?")
                params.append(value)
        return " WHERE " + " AND ".join(clauses), params

    # --- Store protocol ---

    def insert(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        ids: list[str] = []
        try:
            for row in rows:
                record = dict(row)
                record.setdefault("id", str(uuid.uuid4()))
                record.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                self._check_columns(table, record)
                columns = ", ".join(record)
                marks = ", ".join("?" for _ in record)
                self.conn.execute(
                    f"INSERT INTO {table} ({columns}) VALUES ({marks})",
                    list(record.values()),
                )
                ids.append(record["id"])
        except sqlite3.Error as e:
            raise _store_error(e) from e
        return self._fetch(table, {"id": ids})

    def select(
        self,
        table: str,
        filters: dict[str, Any],
        embeds: list[Embed],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int],
    ) -> list[dict[str, Any]]:
        try:
            rows = self._fetch(table, filters, order_by, descending, limit)
            self._attach(rows, embeds)
        except sqlite3.Error as e:
            raise _store_error(e) from e
        return rows

    def update(
        self, table: str, values: dict[str, Any], filters: dict[str, Any]
    ) -> list[dict[str, Any]]:
        self._check_columns(table, values)
        where, params = self._where(table, filters)
        try:
            ids = [r["id"] for r in self._fetch(table, filters)]
            assignments = ", ".join(f"{column} = ?" for column in values)
            self.conn.execute(
                f"UPDATE {table} SET {assignments}{where}",
                list(values.values()) + params,
            )
            return self._fetch(table, {"id": ids})
        except sqlite3.Error as e:
            raise _store_error(e) from e

    def delete(self, table: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        where, params = self._where(table, filters)
        try:
            rows = self._fetch(table, filters)
            self.conn.execute(f"DELETE FROM {table}{where}", params)
        except sqlite3.Error as e:
            raise _store_error(e) from e
        return rows

    def begin(self) -> SQLiteStore:
        if self.db_path and self.db_path != ":memory:":
            scope = SQLiteStore(self.db_path, conn=get_connection(self.db_path), init_schema=False)
            scope._owns_conn = True
        else:
            scope = SQLiteStore(self.db_path, conn=self.conn, init_schema=False)
        scope.conn.execute("BEGIN")
        return scope

    def commit(self) -> None:
        try:
            self.conn.execute("COMMIT")
        except sqlite3.Error as e:
            raise _store_error(e) from e
        finally:
            self._release()

    def rollback(self) -> None:
        try:
            self.conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            raise _store_error(e) from e
        finally:
            self._release()
        logger.debug("SQLite transaction rolled back")

    def _release(self) -> None:
        if self._owns_conn:
            self.conn.close()

    # --- helpers ---

    def _fetch(
        self,
        table: str,
        filters: dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        where, params = self._where(table, filters)
        sql = f"SELECT * FROM {table}{where}"
        if order_by:
            self._check_columns(table, [order_by])
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY {order_by} {direction}, rowid {direction}"
        else:
            sql += " ORDER BY rowid"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        return [dict(row) for row in self.conn.execute(sql, params).fetchall()]

    def _attach(self, rows: list[dict[str, Any]], embeds: list[Embed]) -> None:
        """Fill each embed alias on ``rows``, recursing into nested embeds."""
        for embed in embeds:
            relation = embed.relation
            if relation.many:
                parent_ids = [row["id"] for row in rows]
                children = self._fetch(relation.target, {relation.foreign_key: parent_ids})
                self._attach(children, embed.children)
                for row in rows:
                    row[embed.alias] = [
                        c for c in children if c[relation.foreign_key] == row["id"]
                    ]
            else:
                parent_ids = [row[relation.foreign_key] for row in rows if row.get(relation.foreign_key)]
                parents = self._fetch(relation.target, {"id": parent_ids})
                self._attach(parents, embed.children)
                by_id = {p["id"]: p for p in parents}
                for row in rows:
                    row[embed.alias] = by_id.get(row.get(relation.foreign_key))
