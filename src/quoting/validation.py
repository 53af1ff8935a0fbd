"""Shape validation on top of the pydantic entity models."""

from __future__ import annotations

from typing import Any, Mapping, Optional, TypeVar

import pydantic
from pydantic import BaseModel

from src.common.errors import FieldError, ValidationError

from .notifications import Notifier, show_error

ModelT = TypeVar("ModelT", bound=BaseModel)


def _field_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "__root__"


def _to_field_errors(exc: pydantic.ValidationError) -> list[FieldError]:
    """Collapse pydantic errors to one FieldError per offending field."""
    errors: list[FieldError] = []
    seen: set[str] = set()
    for err in exc.errors():
        path = _field_path(err["loc"])
        if path in seen:
            continue
        seen.add(path)
        errors.append(FieldError(field=path, message=err["msg"]))
    return errors


def validate(model: type[ModelT], data: Any) -> ModelT:
    """Validate an untyped record against an entity model.

    Args:
        model: Pydantic model class (Quote, Order, Receipt...).
        data: Mapping to validate.

    Returns:
        The validated, normalized model instance.

    Raises:
        ValidationError: with one FieldError per offending field.
    """
    if not isinstance(data, Mapping):
        raise ValidationError(
            [FieldError(field="__root__", message=f"Expected an object, got {type(data).__name__}")]
        )
    try:
        return model.model_validate(dict(data))
    except pydantic.ValidationError as e:
        raise ValidationError(_to_field_errors(e)) from e


def to_record(instance: BaseModel) -> dict[str, Any]:
    """Dump a validated model to a store-ready dict, omitting absent optionals."""
    return instance.model_dump(mode="json", exclude_none=True)


def format_validation_errors(error: ValidationError) -> list[dict[str, str]]:
    return [{"field": e.field, "message": e.message} for e in error.errors]


def validate_form(
    model: type[ModelT],
    data: Any,
    notifier: Optional[Notifier] = None,
) -> Optional[ModelT]:
    """Validate interactive input, reporting problems to the notification sink.

    Returns the model instance, or ``None`` after one message listing every
    ``field: message`` pair has been shown.
    """
    try:
        return validate(model, data)
    except ValidationError as e:
        show_error(
            "\n".join(f"{err['field']}: {err['message']}" for err in format_validation_errors(e)),
            notifier,
        )
        return None
