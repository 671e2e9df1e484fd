"""Get connection query and handler."""

from dataclasses import dataclass
from typing import Any

from ...domain.models.connection import Connection
from ...domain.models.participant import parse_positive_id
from ...domain.services.connection_lifecycle import ConnectionLifecycleService
from ...infrastructure.resilience import StorageGuard


@dataclass
class GetConnectionQuery:
    connection_id: Any


class GetConnectionHandler:
    """Point read of one connection by id."""

    def __init__(self, lifecycle: ConnectionLifecycleService, guard: StorageGuard):
        self.lifecycle = lifecycle
        self.guard = guard

    async def handle(self, query: GetConnectionQuery) -> Connection:
        connection_id = parse_positive_id(query.connection_id, "connection_id")
        return await self.guard.call(self.lifecycle.get_connection, connection_id)
