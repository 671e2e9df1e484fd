"""Update connection status command and handler."""

from dataclasses import dataclass
from typing import Any
import time

from ...domain.models.connection import Connection, ConnectionStatus
from ...domain.models.participant import ParticipantRef, parse_positive_id
from ...domain.services.connection_lifecycle import ConnectionLifecycleService
from ...infrastructure.logging import ConsultLinkLogger
from ...infrastructure.resilience import StorageGuard


@dataclass
class UpdateConnectionStatusCommand:
    """Command to accept, reject or remove a connection."""
    actor_kind: Any
    actor_id: Any
    connection_id: Any
    status: Any


class UpdateConnectionStatusHandler:
    """Handler for update connection status command."""

    def __init__(
        self,
        lifecycle: ConnectionLifecycleService,
        guard: StorageGuard,
    ):
        self.lifecycle = lifecycle
        self.guard = guard
        self.logger = ConsultLinkLogger.get_instance()

    async def handle(self, command: UpdateConnectionStatusCommand) -> Connection:
        """
        Execute update status command.

        "pending" is a valid status name, so it passes validation here and
        is then refused by the state machine as an invalid transition.

        Args:
            command: Update command

        Returns:
            Updated connection
        """
        actor = ParticipantRef.parse(command.actor_kind, command.actor_id)
        connection_id = parse_positive_id(command.connection_id, "connection_id")
        status = ConnectionStatus.parse(command.status)

        start_time = time.time()
        connection = await self.guard.call_once(
            self.lifecycle.update_status, actor, connection_id, status
        )

        self.logger.debug(
            "Update connection status handled",
            extra={
                "connection_id": connection_id,
                "duration_seconds": round(time.time() - start_time, 3),
            }
        )
        return connection
