"""Error taxonomy shared by every quoting operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class QuotingError(Exception):
    """Base class for quoting/ordering failures.

    ``operation`` is filled in by the service function that re-raises the
    error, so the user-visible message names the operation that failed.
    """

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation} failed: {self.message}"
        return self.message

    def for_operation(self, operation: str) -> QuotingError:
        """Attach the failing operation's name unless an inner call already did."""
        if not self.operation:
            self.operation = operation
        return self


@dataclass(frozen=True)
class FieldError:
    """A single field-level violation."""
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ValidationError(QuotingError):
    """Input record does not match the entity shape."""

    def __init__(self, errors: list[FieldError], operation: Optional[str] = None):
        self.errors = list(errors)
        super().__init__("\n".join(str(e) for e in self.errors), operation)

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


class AuthError(QuotingError):
    """No authenticated caller, or the caller's session is invalid."""


class StoreError(QuotingError):
    """The remote store reported a failure."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Any = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message, operation)
        self.code = code
        self.details = details


class WorkflowStepError(QuotingError):
    """A later step of a multi-step workflow failed.

    ``rolled_back`` is set by the enclosing transaction once it has tried to
    undo the earlier steps; ``rollback_error`` holds what stopped it.
    """

    def __init__(
        self,
        message: str,
        step: str,
        rolled_back: bool = False,
        operation: Optional[str] = None,
    ):
        super().__init__(message, operation)
        self.step = step
        self.rolled_back = rolled_back
        self.rollback_error: Optional[Exception] = None
