"""Create connection command and handler."""

from dataclasses import dataclass
from typing import Any
import time

from ...domain.models.connection import Connection
from ...domain.models.participant import ParticipantRef
from ...domain.services.connection_lifecycle import ConnectionLifecycleService
from ...infrastructure.logging import ConsultLinkLogger
from ...infrastructure.resilience import StorageGuard


@dataclass
class CreateConnectionCommand:
    """
    Command to propose a connection.

    Values arrive unvalidated from the caller (CLI arguments, request
    bodies) and are checked by the handler.
    """
    requester_kind: Any
    requester_id: Any
    receiver_kind: Any
    receiver_id: Any


class CreateConnectionHandler:
    """
    Handler for create connection command.

    Orchestrates:
    1. Boundary validation of both participant references
    2. Lifecycle service create under the storage guard
    """

    def __init__(
        self,
        lifecycle: ConnectionLifecycleService,
        guard: StorageGuard,
    ):
        """
        Initialize handler.

        Args:
            lifecycle: Connection lifecycle service
            guard: Retry and circuit breaker for storage calls
        """
        self.lifecycle = lifecycle
        self.guard = guard
        self.logger = ConsultLinkLogger.get_instance()

    async def handle(self, command: CreateConnectionCommand) -> Connection:
        """
        Execute create connection command.

        Args:
            command: Create command

        Returns:
            The new pending connection

        Raises:
            ValidationError: Malformed kind or id
            ParticipantNotFoundError, SelfConnectionError,
            DuplicatePendingError, AlreadyConnectedError: Rule violations
            StorageUnavailableError: Storage failed; writes are not retried
        """
        requester = ParticipantRef.parse(command.requester_kind, command.requester_id)
        receiver = ParticipantRef.parse(command.receiver_kind, command.receiver_id)

        start_time = time.time()
        connection = await self.guard.call_once(self.lifecycle.create_connection, requester, receiver)

        self.logger.debug(
            "Create connection handled",
            extra={
                "connection_id": connection.connection_id,
                "duration_seconds": round(time.time() - start_time, 3),
            }
        )
        return connection
