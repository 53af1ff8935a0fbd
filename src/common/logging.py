"""Structured logging configuration for the quoting service."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_diag_logger = logging.getLogger("quoting")


def setup_logging(
    level: int | str = logging.INFO,
    module_name: str = "quoting",
) -> logging.Logger:
    """Configure and return a logger with consistent formatting.

    Args:
        level: Logging level (default INFO).
        module_name: Name for the logger instance.

    Returns:
        Configured logger.
    """
    logger = logging.getLogger(module_name)

    if logger.handlers:
        return logger

    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def _dump(payload: dict[str, Any] | None) -> str:
    if not payload:
        return ""
    return " " + json.dumps(payload, default=str, ensure_ascii=False)


def log_error(
    context: str,
    error: BaseException | str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Record an error with its context label and return the error details.

    Args:
        context: Name of the operation that failed (e.g. "create_quote").
        error: Exception or plain message.
        details: Extra structured payload to record alongside the error.

    Returns:
        Dict with ``context``, ``message`` and ``type`` plus any details.
    """
    if isinstance(error, BaseException):
        message = getattr(error, "message", None) or str(error)
        error_type = type(error).__name__
    else:
        message = str(error)
        error_type = "str"

    error_details: dict[str, Any] = {
        "context": context,
        "message": message,
        "type": error_type,
    }
    if details:
        error_details.update(details)

    _diag_logger.error("[%s] %s%s", context, message, _dump(details))
    return error_details


def log_info(context: str, message: str, payload: dict[str, Any] | None = None) -> None:
    """Record an informational event."""
    _diag_logger.info("[%s] %s%s", context, message, _dump(payload))


def log_debug(context: str, message: str, payload: dict[str, Any] | None = None) -> None:
    """Record a debug event."""
    if _diag_logger.isEnabledFor(logging.DEBUG):
        _diag_logger.debug("[%s] %s%s", context, message, _dump(payload))
