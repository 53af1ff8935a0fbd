# Common utilities and shared modules
"""
Shared components used by the quoting service:
- Project configuration
- Logging configuration and structured log helpers
- Error taxonomy
"""

from .config import settings, PROJECT_ROOT, DATA_DIR
from .errors import (
    AuthError,
    FieldError,
    QuotingError,
    StoreError,
    ValidationError,
    WorkflowStepError,
)
from .logging import log_debug, log_error, log_info, setup_logging

__all__ = [
    "settings",
    "PROJECT_ROOT",
    "DATA_DIR",
    "AuthError",
    "FieldError",
    "QuotingError",
    "StoreError",
    "ValidationError",
    "WorkflowStepError",
    "log_debug",
    "log_error",
    "log_info",
    "setup_logging",
]
