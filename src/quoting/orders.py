"""Order and receipt service."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from src.common.errors import FieldError, QuotingError, ValidationError
from src.common.logging import log_error, log_info

from .auth import Caller, require_caller
from .gateway import PersistenceGateway
from .models import Order, Receipt, ReceiptStatus
from .validation import to_record, validate

ORDER_EMBEDS = ("quote", "receipts")

# Quote fields carried over when an order is derived from a quote
_QUOTE_TO_ORDER_FIELDS = ("total", "adjustment_type", "adjustment_percentage", "adjusted_total")


def create_order(
    gateway: PersistenceGateway,
    caller: Optional[Caller],
    order_data: dict[str, Any],
) -> dict[str, Any]:
    context = "create_order"
    try:
        caller = require_caller(caller)
        order = validate(Order, order_data)
        row = gateway.insert("orders", {**to_record(order), "user_id": caller.id})
        log_info(context, "Order created", {"order_id": row["id"], "quote_id": row["quote_id"]})
        return row
    except QuotingError as e:
        log_error(context, e)
        e.for_operation(context)
        raise


def create_order_from_quote(
    gateway: PersistenceGateway,
    caller: Optional[Caller],
    quote_id: str,
) -> dict[str, Any]:
    """Derive a pending order from an existing quote's totals and adjustment."""
    context = "create_order_from_quote"
    try:
        require_caller(caller)
        quote = gateway.select_one("quotes", {"id": str(quote_id)})
        order_data: dict[str, Any] = {"quote_id": quote["id"]}
        for name in _QUOTE_TO_ORDER_FIELDS:
            if quote.get(name) is not None:
                order_data[name] = quote[name]
        return create_order(gateway, caller, order_data)
    except QuotingError as e:
        log_error(context, e, {"quote_id": str(quote_id)})
        e.for_operation(context)
        raise


def get_orders(gateway: PersistenceGateway, caller: Optional[Caller]) -> list[dict[str, Any]]:
    """All orders, newest first, each with its ``quote`` and ``receipts``."""
    context = "get_orders"
    try:
        require_caller(caller)
        return gateway.select(
            "orders", embed=ORDER_EMBEDS, order_by="created_at", descending=True
        )
    except QuotingError as e:
        log_error(context, e)
        e.for_operation(context)
        raise


def get_order_by_id(
    gateway: PersistenceGateway, caller: Optional[Caller], order_id: str
) -> dict[str, Any]:
    context = "get_order_by_id"
    try:
        require_caller(caller)
        return gateway.select_one("orders", {"id": str(order_id)}, embed=ORDER_EMBEDS)
    except QuotingError as e:
        log_error(context, e, {"order_id": str(order_id)})
        e.for_operation(context)
        raise


def create_receipt(
    gateway: PersistenceGateway,
    caller: Optional[Caller],
    receipt_data: dict[str, Any],
) -> dict[str, Any]:
    context = "create_receipt"
    try:
        require_caller(caller)
        receipt = validate(Receipt, receipt_data)
        record = to_record(receipt)
        if receipt.status is ReceiptStatus.SENT:
            record["sent_at"] = _utc_now()
        return gateway.insert("receipts", record)
    except QuotingError as e:
        log_error(context, e)
        e.for_operation(context)
        raise


def update_receipt_status(
    gateway: PersistenceGateway,
    caller: Optional[Caller],
    receipt_id: str,
    status: str = ReceiptStatus.SENT.value,
) -> dict[str, Any]:
    """Move a receipt to ``status``; ``sent`` stamps ``sent_at``, ``draft`` clears it."""
    context = "update_receipt_status"
    try:
        require_caller(caller)
        try:
            new_status = ReceiptStatus(status)
        except ValueError:
            raise ValidationError(
                [FieldError(field="status", message="Input should be 'draft' or 'sent'")]
            ) from None

        sent_at = _utc_now() if new_status is ReceiptStatus.SENT else None
        row = gateway.update(
            "receipts",
            {"status": new_status.value, "sent_at": sent_at},
            {"id": str(receipt_id)},
        )
        log_info(context, "Receipt status updated", {"receipt_id": row["id"], "status": row["status"]})
        return row
    except QuotingError as e:
        log_error(context, e, {"receipt_id": str(receipt_id)})
        e.for_operation(context)
        raise


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
