"""Get connection statistics query and handler."""

from ...domain.models.listing import ConnectionStats
from ...domain.services.connection_projection import ConnectionProjectionService
from ...infrastructure.resilience import StorageGuard


class GetConnectionStatsHandler:
    """Aggregate counts over all connections."""

    def __init__(self, projection: ConnectionProjectionService, guard: StorageGuard):
        self.projection = projection
        self.guard = guard

    async def handle(self) -> ConnectionStats:
        return await self.guard.call(self.projection.stats)
