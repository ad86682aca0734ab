"""
Structured Logging Utility

Provides JSON-queryable fields on log records for the daily overview.

Before: String-based logging hard to query
    logger.info(f"Pass complete with {count} events")

After: Structured logging with queryable fields
    log_pass_complete(reference_now=..., counts={...}, duration_seconds=0.8)
    # Query: jsonPayload.event="overview_pass_complete"

Features:
- Structured fields (event, reference_now, counts, duration, ...)
- Automatic context propagation
- Backward compatible (plain messages when disabled)
"""

import logging
import os
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import threading


# Thread-local storage for context
_context = threading.local()


class StructuredLogger:
    """
    Structured logging wrapper that adds fields to log records.

    Usage:
        logger = StructuredLogger(__name__)
        logger.info("Pass complete", extra={
            'event': 'overview_pass_complete',
            'total_events': 7,
        })
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.enabled = os.getenv('ENABLE_STRUCTURED_LOGGING', 'false').lower() == 'true'

    def _add_context(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Add thread-local context to extra fields."""
        merged = {}

        if hasattr(_context, 'fields'):
            merged.update(_context.fields)

        if extra:
            merged.update(extra)

        return merged

    def info(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        """Log info message with structured fields."""
        if self.enabled and extra:
            self.logger.info(msg, extra=self._add_context(extra))
        else:
            self.logger.info(msg)

    def error(self, msg: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        """Log error message with structured fields."""
        if self.enabled and extra:
            self.logger.error(msg, extra=self._add_context(extra), exc_info=exc_info)
        else:
            self.logger.error(msg, exc_info=exc_info)

    def debug(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        """Log debug message with structured fields."""
        if self.enabled and extra:
            self.logger.debug(msg, extra=self._add_context(extra))
        else:
            self.logger.debug(msg)


def set_logging_context(**fields):
    """
    Set thread-local logging context.

    These fields will be automatically added to all structured log statements
    in this thread.

    Usage:
        set_logging_context(viewer_id='12345')
    """
    if not hasattr(_context, 'fields'):
        _context.fields = {}
    _context.fields.update(fields)


def clear_logging_context():
    """Clear thread-local logging context."""
    if hasattr(_context, 'fields'):
        _context.fields.clear()


def get_logging_context() -> Dict[str, Any]:
    """Get current thread-local logging context."""
    if hasattr(_context, 'fields'):
        return _context.fields.copy()
    return {}


# Convenience functions for common log events

def log_pass_start(reference_now: str, **extra):
    """Log aggregation pass start with structured fields."""
    logger = StructuredLogger('overview')
    logger.info(f"Overview pass started: {reference_now}", extra={
        'event': 'overview_pass_start',
        'reference_now': reference_now,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        **extra
    })


def log_pass_complete(reference_now: str, counts: Dict[str, int], duration_seconds: float, **extra):
    """Log aggregation pass completion with structured fields."""
    logger = StructuredLogger('overview')
    total = sum(counts.values())
    logger.info(f"Overview pass complete: {total} events today ({duration_seconds:.2f}s)", extra={
        'event': 'overview_pass_complete',
        'reference_now': reference_now,
        'counts': counts,
        'total_events': total,
        'duration_seconds': duration_seconds,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        **extra
    })


def log_cache_lookup(state: str, cache_hit: bool, **extra):
    """Log cache lookup with structured fields."""
    logger = StructuredLogger('overview.cache')
    logger.debug(f"Overview cache {'hit' if cache_hit else 'miss'} (state={state})", extra={
        'event': 'overview_cache_lookup',
        'state': state,
        'cache_hit': cache_hit,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        **extra
    })


def log_error(error_type: str, error_message: str, **extra):
    """Log error with structured fields."""
    logger = StructuredLogger('error')
    logger.error(f"Error: {error_type}", extra={
        'event': 'error',
        'error_type': error_type,
        'error_message': error_message,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        **extra
    })
