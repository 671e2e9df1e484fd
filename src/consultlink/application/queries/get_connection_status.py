"""Get connection status query and handler."""

from dataclasses import dataclass
from typing import Any

from ...domain.models.connection import ConnectionStatusReport
from ...domain.models.participant import ParticipantRef
from ...domain.services.connection_lifecycle import ConnectionLifecycleService
from ...infrastructure.resilience import StorageGuard


@dataclass
class GetConnectionStatusQuery:
    """Query for the relationship between two participants."""
    participant_kind: Any
    participant_id: Any
    other_kind: Any
    other_id: Any


class GetConnectionStatusHandler:
    """
    Handler for connection status query.

    Answers whether the two participants are connected, have a request
    in flight, or may send a new request.
    """

    def __init__(self, lifecycle: ConnectionLifecycleService, guard: StorageGuard):
        self.lifecycle = lifecycle
        self.guard = guard

    async def handle(self, query: GetConnectionStatusQuery) -> ConnectionStatusReport:
        participant = ParticipantRef.parse(query.participant_kind, query.participant_id)
        other = ParticipantRef.parse(query.other_kind, query.other_id)
        return await self.guard.call(self.lifecycle.get_status_between, participant, other)
