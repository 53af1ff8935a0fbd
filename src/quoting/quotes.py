"""Quote service — create and read quotes with their spaces and items.

A quote, its spaces and their items are written inside one gateway
transaction: either all rows appear or none do.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from src.common.errors import (
    FieldError,
    QuotingError,
    StoreError,
    ValidationError,
    WorkflowStepError,
)
from src.common.logging import log_debug, log_error, log_info

from .auth import Caller, require_caller
from .gateway import PersistenceGateway
from .models import Quote, QuoteStatus, Space
from .validation import to_record, validate


def _validate_quote(quote_data: Any, spaces: Sequence[Any]) -> tuple[Quote, list[Space]]:
    """Validate the quote and every nested space/item, reporting all violations at once."""
    errors: list[FieldError] = []
    quote: Optional[Quote] = None
    try:
        quote = validate(Quote, quote_data)
    except ValidationError as e:
        errors.extend(e.errors)

    validated_spaces: list[Space] = []
    for i, space in enumerate(spaces):
        try:
            validated_spaces.append(validate(Space, space))
        except ValidationError as e:
            errors.extend(
                FieldError(field=f"spaces.{i}.{err.field}", message=err.message)
                for err in e.errors
            )

    if errors:
        raise ValidationError(errors)
    return quote, validated_spaces


def create_quote(
    gateway: PersistenceGateway,
    caller: Optional[Caller],
    quote_data: Mapping[str, Any],
    spaces: Optional[Sequence[dict[str, Any]]] = None,
) -> dict[str, Any]:
    """Create a quote plus its nested spaces and items.

    Args:
        gateway: Persistence gateway.
        caller: Authenticated user; the quote is attributed to ``caller.id``.
        quote_data: Quote fields. A ``spaces`` key is accepted here as well.
        spaces: Ordered spaces, each with an optional ordered ``items`` list.

    Returns:
        The created quote row (spaces and items are not included).

    Raises:
        AuthError: no authenticated caller.
        ValidationError: quote, space or item fields are invalid.
        StoreError: the quote row could not be inserted.
        WorkflowStepError: a space or item insert failed. ``rolled_back`` tells
            whether the rows written before it were removed again.
    """
    context = "create_quote"
    try:
        log_debug(context, "Starting quote creation", {"quote_data": quote_data})

        caller = require_caller(caller)
        log_debug(context, "User authenticated", {"user_id": caller.id, "role": caller.role})

        data = quote_data
        if isinstance(quote_data, Mapping):
            data = dict(quote_data)
            nested = data.pop("spaces", None)
            if spaces is None:
                spaces = nested
        quote, validated_spaces = _validate_quote(data, spaces or [])

        with gateway.transaction() as tx:
            row = tx.insert("quotes", {**to_record(quote), "user_id": caller.id})
            try:
                for i, space in enumerate(validated_spaces):
                    step = f"insert_space[{i}]"
                    space_row = tx.insert("spaces", {"quote_id": row["id"], "name": space.name})
                    for j, item in enumerate(space.items):
                        step = f"insert_item[{i}.{j}]"
                        tx.insert("items", {"space_id": space_row["id"], **to_record(item)})
            except StoreError as e:
                raise WorkflowStepError(f"{step}: {e.message}", step=step) from e

        log_info(context, "Quote created successfully", {"quote_id": row["id"]})
        return row
    except QuotingError as e:
        details = {"user_id": caller.id} if isinstance(caller, Caller) else None
        if isinstance(e, WorkflowStepError):
            details = {**(details or {}), "step": e.step, "rolled_back": e.rolled_back}
        log_error(context, e, details)
        e.for_operation(context)
        raise


def get_quotes(gateway: PersistenceGateway, caller: Optional[Caller]) -> list[dict[str, Any]]:
    """All quotes visible to the caller, newest first."""
    context = "get_quotes"
    try:
        require_caller(caller)
        return gateway.select("quotes", order_by="created_at", descending=True)
    except QuotingError as e:
        log_error(context, e)
        e.for_operation(context)
        raise


def get_quote_by_id(
    gateway: PersistenceGateway, caller: Optional[Caller], quote_id: str
) -> dict[str, Any]:
    """One quote with its ``spaces`` and each space's ``items``."""
    context = "get_quote_by_id"
    try:
        require_caller(caller)
        return gateway.select_one("quotes", {"id": str(quote_id)}, embed=("spaces.items",))
    except QuotingError as e:
        log_error(context, e, {"quote_id": str(quote_id)})
        e.for_operation(context)
        raise


def update_quote_status(
    gateway: PersistenceGateway,
    caller: Optional[Caller],
    quote_id: str,
    status: str,
) -> dict[str, Any]:
    context = "update_quote_status"
    try:
        require_caller(caller)
        try:
            new_status = QuoteStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in QuoteStatus)
            raise ValidationError(
                [FieldError(field="status", message=f"Input should be {allowed}")]
            ) from None
        return gateway.update("quotes", {"status": new_status.value}, {"id": str(quote_id)})
    except QuotingError as e:
        log_error(context, e, {"quote_id": str(quote_id)})
        e.for_operation(context)
        raise
