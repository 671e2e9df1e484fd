"""Command handlers for write operations."""

from .create_connection import CreateConnectionCommand, CreateConnectionHandler
from .update_connection_status import (
    UpdateConnectionStatusCommand,
    UpdateConnectionStatusHandler,
)

__all__ = [
    "CreateConnectionCommand",
    "CreateConnectionHandler",
    "UpdateConnectionStatusCommand",
    "UpdateConnectionStatusHandler",
]
