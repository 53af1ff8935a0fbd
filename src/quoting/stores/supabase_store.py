"""Supabase store — PostgREST tables behind the Supabase client.

Prerequisites:
    - SUPABASE_URL and SUPABASE_KEY (or SUPABASE_ANON_KEY) in .env
    - Row-level security policies that let the signed-in role read/write

Usage:
    from src.quoting.stores.supabase_store import SupabaseStore

    store = SupabaseStore()
    rows = store.insert("quotes", [{...}])

PostgREST has no transaction spanning several HTTP requests. begin()
returns a store that shares the client and journals every row inserted
through it; rollback() on that store deletes them again, newest first.
Inserts made through any other store are never journaled.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from postgrest.exceptions import APIError

from src.common.config import get_supabase_credentials
from src.common.errors import StoreError

from ..gateway import Embed

logger = logging.getLogger(__name__)


def create_supabase_client(url: Optional[str] = None, key: Optional[str] = None):
    """Create a Supabase client from explicit credentials or the environment."""
    if not url or not key:
        env_url, env_key = get_supabase_credentials()
        url = url or env_url
        key = key or env_key
    from supabase import create_client

    client = create_client(url, key)
    logger.info("Connected to Supabase: %s", url)
    return client


def render_select(embeds: list[Embed]) -> str:
    """Build a PostgREST select string, e.g. ``*, quote:quotes(*), receipts:receipts(*)``."""
    parts = ["*"]
    for embed in embeds:
        parts.append(f"{embed.alias}:{embed.relation.target}({render_select(embed.children)})")
    return ", ".join(parts)


def _store_error(e: APIError) -> StoreError:
    return StoreError(e.message or str(e), code=e.code, details=e.details)


class SupabaseStore:
    """Store backend over a Supabase (PostgREST) project."""

    def __init__(
        self,
        client=None,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
    ):
        self._client = client
        self._url = supabase_url
        self._key = supabase_key
        self._journal: Optional[list[tuple[str, str]]] = None

    def _get_client(self):
        """Lazy-initialize Supabase client."""
        if self._client is None:
            self._client = create_supabase_client(self._url, self._key)
        return self._client

    @property
    def client(self):
        return self._get_client()

    @staticmethod
    def _apply_filters(query, filters: dict[str, Any]):
        for column, value in filters.items():
            if value is None:
                query = query.is_(column, "null")
            elif isinstance(value, (list, tuple, set)):
                query = query.in_(column, list(value))
            else:
                query = query.eq(column, value)
        return query

    # --- Store protocol ---

    def insert(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        try:
            response = self.client.table(table).insert(rows).execute()
        except APIError as e:
            raise _store_error(e) from e
        data = response.data or []
        if self._journal is not None:
            self._journal.extend((table, row["id"]) for row in data if "id" in row)
        return data

    def select(
        self,
        table: str,
        filters: dict[str, Any],
        embeds: list[Embed],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int],
    ) -> list[dict[str, Any]]:
        query = self.client.table(table).select(render_select(embeds))
        query = self._apply_filters(query, filters)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.limit(limit)
        try:
            response = query.execute()
        except APIError as e:
            raise _store_error(e) from e
        return response.data or []

    def update(
        self, table: str, values: dict[str, Any], filters: dict[str, Any]
    ) -> list[dict[str, Any]]:
        query = self._apply_filters(self.client.table(table).update(values), filters)
        try:
            response = query.execute()
        except APIError as e:
            raise _store_error(e) from e
        return response.data or []

    def delete(self, table: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        query = self._apply_filters(self.client.table(table).delete(), filters)
        try:
            response = query.execute()
        except APIError as e:
            raise _store_error(e) from e
        return response.data or []

    def begin(self) -> SupabaseStore:
        scope = SupabaseStore(client=self.client)
        scope._journal = []
        return scope

    def commit(self) -> None:
        self._journal = None

    def rollback(self) -> None:
        journal, self._journal = self._journal or [], None
        failures: list[str] = []
        for table, row_id in reversed(journal):
            try:
                self.delete(table, {"id": row_id})
            except StoreError as e:
                failures.append(f"{table}/{row_id}: {e.message}")
        logger.info("Rolled back %d inserted row(s)", len(journal) - len(failures))
        if failures:
            raise StoreError(
                "Rollback left rows behind: " + "; ".join(failures),
                code="rollback_incomplete",
            )
