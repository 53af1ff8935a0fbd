"""Notification sink for user-facing error messages.

The application shell installs its own sink (toast, flash message...). The
default sink writes the message to the log.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def _log_notifier(message: str) -> None:
    logger.warning("%s", message)


_notifier: Notifier = _log_notifier


def set_notifier(notifier: Optional[Notifier]) -> None:
    """Install a sink; ``None`` restores the logging sink."""
    global _notifier
    _notifier = notifier or _log_notifier


def show_error(message: str | BaseException, notifier: Optional[Notifier] = None) -> None:
    """Surface a human-readable error to the caller's environment."""
    text = str(message) if isinstance(message, BaseException) else message
    (notifier or _notifier)(text)
