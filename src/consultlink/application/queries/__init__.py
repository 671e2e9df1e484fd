"""Query handlers for read operations."""

from .get_connection import GetConnectionHandler, GetConnectionQuery
from .get_connection_stats import GetConnectionStatsHandler
from .get_connection_status import GetConnectionStatusHandler, GetConnectionStatusQuery
from .list_connections import ListConnectionsHandler, ListConnectionsQuery

__all__ = [
    "GetConnectionHandler",
    "GetConnectionQuery",
    "GetConnectionStatsHandler",
    "GetConnectionStatusHandler",
    "GetConnectionStatusQuery",
    "ListConnectionsHandler",
    "ListConnectionsQuery",
]
