"""Persistence gateway — insert/select/update/delete against named collections.

The gateway is the only place that talks to a store backend. It checks the
collection name, resolves declared foreign-key embeds, records failures for
diagnostics and re-raises them as StoreError.

Usage:
    from src.quoting.gateway import PersistenceGateway
    from src.quoting.stores import SQLiteStore

    gateway = PersistenceGateway(SQLiteStore("data/quoting.db"))
    with gateway.transaction() as tx:
        quote = tx.insert("quotes", {...})
    order = gateway.select_one("orders", {"id": order_id}, embed=("quote", "receipts"))
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Protocol, Sequence

from src.common.errors import StoreError, WorkflowStepError
from src.common.logging import log_debug, log_error

logger = logging.getLogger(__name__)

COLLECTIONS: tuple[str, ...] = (
    "quotes",
    "orders",
    "receipts",
    "spaces",
    "items",
    "categories",
    "template_settings",
    "preset_values",
)


@dataclass(frozen=True)
class Relation:
    """Declared foreign-key relation from one collection to another.

    ``many=True``: child rows where ``target.foreign_key == source.id``.
    ``many=False``: the single parent row where ``target.id == source.foreign_key``.
    """
    target: str
    foreign_key: str
    many: bool


RELATIONS: dict[str, dict[str, Relation]] = {
    "quotes": {
        "spaces": Relation("spaces", "quote_id", many=True),
        "orders": Relation("orders", "quote_id", many=True),
    },
    "spaces": {
        "quote": Relation("quotes", "quote_id", many=False),
        "items": Relation("items", "space_id", many=True),
    },
    "items": {
        "space": Relation("spaces", "space_id", many=False),
    },
    "orders": {
        "quote": Relation("quotes", "quote_id", many=False),
        "receipts": Relation("receipts", "order_id", many=True),
    },
    "receipts": {
        "order": Relation("orders", "order_id", many=False),
    },
}


@dataclass
class Embed:
    """A resolved embed: alias, relation, and nested embeds of the target."""
    alias: str
    relation: Relation
    children: list[Embed] = field(default_factory=list)


def resolve_embeds(table: str, names: Sequence[str]) -> list[Embed]:
    """Turn embed names like ``("quote", "spaces.items")`` into an Embed tree."""
    roots: list[Embed] = []
    for name in names:
        source, level = table, roots
        for alias in name.split("."):
            relation = RELATIONS.get(source, {}).get(alias)
            if relation is None:
                raise StoreError(
                    f"No relation '{alias}' declared on '{source}'",
                    code="unknown_relation",
                )
            embed = next((e for e in level if e.alias == alias), None)
            if embed is None:
                embed = Embed(alias=alias, relation=relation)
                level.append(embed)
            source, level = relation.target, embed.children
    return roots


class Store(Protocol):
    """Backend contract. Implementations raise StoreError on failure."""

    def insert(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]: ...

    def select(
        self,
        table: str,
        filters: dict[str, Any],
        embeds: list[Embed],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int],
    ) -> list[dict[str, Any]]: ...

    def update(
        self, table: str, values: dict[str, Any], filters: dict[str, Any]
    ) -> list[dict[str, Any]]: ...

    def delete(self, table: str, filters: dict[str, Any]) -> list[dict[str, Any]]: ...

    def begin(self) -> Store:
        """Open a transaction and return a store scoped to it.

        commit() and rollback() are called on the returned store.
        """
        ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class PersistenceGateway:
    """Single entry point for store operations."""

    def __init__(self, store: Store, in_transaction: bool = False):
        self.store = store
        self.in_transaction = in_transaction

    @staticmethod
    def _check_collection(table: str) -> None:
        if table not in COLLECTIONS:
            raise StoreError(f"Unknown collection '{table}'", code="unknown_collection")

    def _run(self, context: str, table: str, call, *args) -> list[dict[str, Any]]:
        try:
            self._check_collection(table)
            return call(table, *args)
        except StoreError as e:
            log_error(context, e, {"table": table, "code": e.code})
            raise
        except Exception as e:
            # backend raised something it did not translate
            log_error(context, e, {"table": table})
            raise StoreError(str(e)) from e

    # --- writes ---

    def insert(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored."""
        rows = self.insert_many(table, [payload])
        if not rows:
            error = StoreError(f"Insert into '{table}' returned no row", code="no_row")
            log_error("insert", error, {"table": table})
            raise error
        return rows[0]

    def insert_many(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        log_debug("insert", f"Inserting {len(rows)} row(s)", {"table": table})
        return self._run("insert", table, self.store.insert, [dict(r) for r in rows])

    def update(
        self, table: str, values: dict[str, Any], filters: dict[str, Any]
    ) -> dict[str, Any]:
        """Update rows matching ``filters`` and return the first updated row."""
        rows = self._run("update", table, self.store.update, dict(values), dict(filters))
        if not rows:
            error = StoreError(f"No row in '{table}' matches {filters}", code="not_found")
            log_error("update", error, {"table": table})
            raise error
        return rows[0]

    def delete(self, table: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        if not filters:
            error = StoreError("Refusing to delete without a filter", code="unfiltered_delete")
            log_error("delete", error, {"table": table})
            raise error
        return self._run("delete", table, self.store.delete, dict(filters))

    # --- reads ---

    def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        embed: Sequence[str] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Select rows, optionally embedding related rows via declared relations."""
        try:
            embeds = resolve_embeds(table, embed)
        except StoreError as e:
            log_error("select", e, {"table": table, "embed": list(embed)})
            raise
        return self._run(
            "select",
            table,
            self.store.select,
            dict(filters or {}),
            embeds,
            order_by,
            descending,
            limit,
        )

    def select_one(
        self,
        table: str,
        filters: dict[str, Any],
        embed: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Select exactly one row; StoreError(code="not_found") when none match."""
        rows = self.select(table, filters, embed=embed, limit=2)
        if len(rows) != 1:
            error = StoreError(
                f"Expected one row in '{table}' for {filters}, got {len(rows)}",
                code="not_found" if not rows else "multiple_rows",
            )
            log_error("select_one", error, {"table": table})
            raise error
        return rows[0]

    # --- transactions ---

    @contextmanager
    def transaction(self) -> Iterator[PersistenceGateway]:
        """Open a unit of work and yield a gateway bound to it.

        Writes made through the yielded gateway commit together when the block
        exits normally and are rolled back on any exception. Writes made
        through ``self`` meanwhile are not part of the scope, so one gateway
        can be shared by concurrent requests. Calling ``transaction()`` on the
        yielded gateway joins the open scope.

        When the block raises WorkflowStepError, its ``rolled_back`` and
        ``rollback_error`` report whether the rollback removed everything.
        """
        if self.in_transaction:
            yield self
            return

        scope = PersistenceGateway(self.store.begin(), in_transaction=True)
        try:
            yield scope
        except BaseException as exc:
            rollback_error: Optional[Exception] = None
            try:
                scope.store.rollback()
                logger.info("Transaction rolled back")
            except Exception as e:
                rollback_error = e
                log_error("rollback", e)
            if isinstance(exc, WorkflowStepError):
                exc.rolled_back = rollback_error is None
                exc.rollback_error = rollback_error
            raise
        scope.store.commit()
