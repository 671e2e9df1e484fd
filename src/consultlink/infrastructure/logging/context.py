"""
Logging context management for ConsultLink.

Provides per-request storage for fields (operation, actor, connection id)
that automatically propagate to all log messages within a context.

Design:
- Backed by a ContextVar, so concurrent asyncio tasks and threads each see
  their own context
- Context manager interface for automatic cleanup
- Automatic merging of context into log extra fields

Example:
    >>> with logging_context(operation="create_connection", actor="consultant:1"):
    ...     logger.info("Creating connection")  # Includes both fields
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Optional

_context: ContextVar[Optional[Dict[str, Any]]] = ContextVar("consultlink_log_context", default=None)


class LogContext:
    """
    Task-local storage for logging context.

    Every mutation replaces the stored dict instead of changing it in
    place, so a task spawned from the current one keeps the snapshot it
    inherited.

    Example:
        >>> LogContext.set("operation", "update_status")
        >>> LogContext.get_context()
        {'operation': 'update_status'}
    """

    @classmethod
    def get_context(cls) -> Dict[str, Any]:
        """
        Get the current logging context.

        Returns:
            Copy of the context fields
        """
        return dict(_context.get() or {})

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        """Set a single context field."""
        cls.update({key: value})

    @classmethod
    def update(cls, fields: Dict[str, Any]) -> None:
        """Update multiple context fields at once."""
        _context.set({**(_context.get() or {}), **fields})

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """Get a specific context field."""
        return (_context.get() or {}).get(key, default)

    @classmethod
    def clear(cls) -> None:
        """Clear all context fields."""
        _context.set({})

    @classmethod
    def remove(cls, *keys: str) -> None:
        """Remove specific context fields."""
        current = _context.get()
        if not current:
            return
        _context.set({k: v for k, v in current.items() if k not in keys})


@contextmanager
def logging_context(**fields):
    """
    Set context fields for the duration of a block.

    On exit the context is restored to exactly what it was on entry, so
    nested blocks that override a field do not erase the outer value.

    Example:
        >>> with logging_context(operation="outer"):
        ...     with logging_context(connection_id=3):
        ...         pass  # operation and connection_id both set
        ...     # only operation remains
    """
    token = _context.set({**(_context.get() or {}), **fields})
    try:
        yield
    finally:
        _context.reset(token)
