"""Diagnostic self-checks for store access-control configuration.

Each write check inserts a minimal record (plus its parents), deletes
everything it created, and reports success or the store's error message.
Read checks perform a bounded select. Checks never raise.

Run them against a disposable store (see tests/integration) or, for a
live configuration check, through ``python -m src.quoting.main``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from src.common.errors import QuotingError
from src.common.logging import log_error, log_info

from .auth import Caller
from .gateway import PersistenceGateway

SAMPLE_QUOTE: dict[str, Any] = {
    "client_name": "Test Client",
    "email": "test@example.com",
    "phone": "555-0123",
    "project_name": "Test Project",
    "installation_address": "Test Address",
    "total": 100,
}


@dataclass
class DiagnosticResult:
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True}
        return {"success": False, "error": self.error}


class _Cleanup:
    """Rows created by a check, deleted newest first."""

    def __init__(self, gateway: PersistenceGateway, context: str):
        self.gateway = gateway
        self.context = context
        self.created: list[tuple[str, str]] = []

    def insert(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        row = self.gateway.insert(table, payload)
        self.created.append((table, row["id"]))
        return row

    def run(self) -> None:
        while self.created:
            table, row_id = self.created.pop()
            try:
                self.gateway.delete(table, {"id": row_id})
            except QuotingError as e:
                log_error(self.context, e, {"cleanup": f"{table}/{row_id}"})


def _write_check(
    context: str,
    gateway: PersistenceGateway,
    caller: Optional[Caller],
    body: Callable[[_Cleanup, Caller], None],
) -> DiagnosticResult:
    if caller is None:
        return DiagnosticResult(False, "No authenticated user")
    cleanup = _Cleanup(gateway, context)
    try:
        body(cleanup, caller)
        return DiagnosticResult(True)
    except QuotingError as e:
        log_error(context, e)
        return DiagnosticResult(False, e.message)
    except Exception as e:
        log_error(context, e)
        return DiagnosticResult(False, "Test failed")
    finally:
        cleanup.run()


def _insert_quote(cleanup: _Cleanup, caller: Caller) -> dict[str, Any]:
    return cleanup.insert("quotes", {**SAMPLE_QUOTE, "user_id": caller.id})


def _insert_order(cleanup: _Cleanup, caller: Caller) -> dict[str, Any]:
    quote = _insert_quote(cleanup, caller)
    return cleanup.insert(
        "orders",
        {"quote_id": quote["id"], "total": 100, "status": "pending", "user_id": caller.id},
    )


def check_quote_insertion(
    gateway: PersistenceGateway, caller: Optional[Caller]
) -> DiagnosticResult:
    return _write_check(
        "check_quote_insertion", gateway, caller,
        lambda cleanup, user: _insert_quote(cleanup, user),
    )


def check_order_insertion(
    gateway: PersistenceGateway, caller: Optional[Caller]
) -> DiagnosticResult:
    return _write_check(
        "check_order_insertion", gateway, caller,
        lambda cleanup, user: _insert_order(cleanup, user),
    )


def check_receipt_insertion(
    gateway: PersistenceGateway, caller: Optional[Caller]
) -> DiagnosticResult:
    def body(cleanup: _Cleanup, user: Caller) -> None:
        order = _insert_order(cleanup, user)
        cleanup.insert(
            "receipts",
            {"order_id": order["id"], "payment_percentage": 50, "amount": 50, "status": "draft"},
        )

    return _write_check("check_receipt_insertion", gateway, caller, body)


def _read_check(context: str, gateway: PersistenceGateway, table: str) -> DiagnosticResult:
    try:
        gateway.select(table, limit=1)
        return DiagnosticResult(True)
    except QuotingError as e:
        log_error(context, e)
        return DiagnosticResult(False, e.message)
    except Exception as e:
        log_error(context, e)
        return DiagnosticResult(False, "Test failed")


def check_catalog_access(
    gateway: PersistenceGateway, caller: Optional[Caller] = None
) -> DiagnosticResult:
    return _read_check("check_catalog_access", gateway, "categories")


def check_template_access(
    gateway: PersistenceGateway, caller: Optional[Caller] = None
) -> DiagnosticResult:
    return _read_check("check_template_access", gateway, "template_settings")


def check_preset_values_access(
    gateway: PersistenceGateway, caller: Optional[Caller] = None
) -> DiagnosticResult:
    return _read_check("check_preset_values_access", gateway, "preset_values")


CHECKS: dict[str, Callable[[PersistenceGateway, Optional[Caller]], DiagnosticResult]] = {
    "quotes": check_quote_insertion,
    "orders": check_order_insertion,
    "receipts": check_receipt_insertion,
    "catalog": check_catalog_access,
    "templates": check_template_access,
    "presets": check_preset_values_access,
}


def run_diagnostics(
    gateway: PersistenceGateway,
    caller: Optional[Caller],
    names: Optional[list[str]] = None,
) -> dict[str, DiagnosticResult]:
    """Run the named checks (all by default) in a fixed order."""
    selected = names or list(CHECKS)
    unknown = [n for n in selected if n not in CHECKS]
    if unknown:
        raise ValueError(f"Unknown check(s): {', '.join(unknown)}")

    results = {name: CHECKS[name](gateway, caller) for name in selected}
    passed = sum(1 for r in results.values() if r.success)
    log_info("run_diagnostics", f"{passed}/{len(results)} checks passed")
    return results
