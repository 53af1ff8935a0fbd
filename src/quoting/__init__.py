# Quoting — data access for quotes, orders and receipts
"""
Validation, persistence and diagnostics for the quoting/ordering app:
- models / validation: pydantic entity shapes and field-level errors
- gateway: collection operations, embeds and transactions over a store
- quotes / orders: service operations, each taking the caller explicitly
- auth: caller resolution and role verification
- diagnostics: per-table access self-checks
"""

from .auth import Caller, RoleCheck, SupabaseAuth, current_caller, require_caller, verify_auth_role
from .diagnostics import DiagnosticResult, run_diagnostics
from .gateway import PersistenceGateway
from .orders import (
    create_order,
    create_order_from_quote,
    create_receipt,
    get_order_by_id,
    get_orders,
    update_receipt_status,
)
from .quotes import create_quote, get_quote_by_id, get_quotes, update_quote_status
from .validation import format_validation_errors, validate, validate_form

__all__ = [
    "Caller",
    "DiagnosticResult",
    "PersistenceGateway",
    "RoleCheck",
    "SupabaseAuth",
    "create_order",
    "create_order_from_quote",
    "create_quote",
    "create_receipt",
    "current_caller",
    "format_validation_errors",
    "get_order_by_id",
    "get_orders",
    "get_quote_by_id",
    "get_quotes",
    "require_caller",
    "run_diagnostics",
    "update_quote_status",
    "update_receipt_status",
    "validate",
    "validate_form",
    "verify_auth_role",
]
