# shared/utils/__init__.py
"""
Shared utilities for the daily overview
"""

from .structured_logging import StructuredLogger, set_logging_context, clear_logging_context
from .sentry_config import configure_sentry


__all__ = [
    "StructuredLogger",
    "set_logging_context",
    "clear_logging_context",
    "configure_sentry",
]
