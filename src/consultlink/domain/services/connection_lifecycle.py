"""Connection lifecycle domain service."""

from datetime import datetime, timezone
from typing import Callable, Optional

from ..exceptions import (
    ActiveConnectionConflictError,
    AlreadyConnectedError,
    ConnectionNotFoundError,
    ConnectionRuleViolation,
    DuplicatePendingError,
    InvalidTransitionError,
    NotFoundError,
    ParticipantNotFoundError,
    SelfConnectionError,
)
from ..models.connection import Connection, ConnectionStatus, ConnectionStatusReport
from ..models.participant import ParticipantRef
from ..repositories.connection_repository import ConnectionRepository
from ..repositories.participant_directory import ParticipantDirectory
from .transition_policy import authorize_transition
from ...infrastructure.logging import ConsultLinkLogger, logging_context


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionLifecycleService:
    """
    Domain service owning the connection state machine.

    The only component that creates connections or changes their status.
    Holds no per-request state; everything lives in the repository. It
    never retries: storage failures propagate to the caller unchanged.
    """

    def __init__(
        self,
        connections: ConnectionRepository,
        directory: ParticipantDirectory,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize lifecycle service.

        Args:
            connections: Connection storage
            directory: Participant existence and display lookups
            clock: Source of "now" (UTC); defaults to the system clock
        """
        self.connections = connections
        self.directory = directory
        self.clock = clock or utc_now
        self.logger = ConsultLinkLogger.get_instance()

    async def create_connection(
        self,
        requester: ParticipantRef,
        receiver: ParticipantRef,
    ) -> Connection:
        """
        Propose a connection from requester to receiver.

        Preconditions, first failure wins:
        1. both participants exist
        2. requester and receiver differ
        3. no pending or accepted record exists for the pair

        Args:
            requester: Proposing participant
            receiver: Addressed participant

        Returns:
            New pending connection

        Raises:
            ParticipantNotFoundError: Either participant is unknown
            SelfConnectionError: requester == receiver
            DuplicatePendingError: A pending request exists for the pair
            AlreadyConnectedError: The pair is already connected
        """
        with logging_context(
            operation="create_connection",
            requester=str(requester),
            receiver=str(receiver),
        ):
            try:
                connection = await self._create(requester, receiver)
            except (ConnectionRuleViolation, NotFoundError) as e:
                self.logger.info(
                    "Connection request rejected",
                    extra={"error_code": e.code, "reason": e.message},
                )
                raise

            self.logger.info(
                "Connection requested",
                extra={"connection_id": connection.connection_id},
            )
            return connection

    async def _create(self, requester: ParticipantRef, receiver: ParticipantRef) -> Connection:
        requester_exists = await self.directory.exists(requester)
        receiver_exists = await self.directory.exists(receiver)
        if not requester_exists:
            raise ParticipantNotFoundError(requester)
        if not receiver_exists:
            raise ParticipantNotFoundError(receiver)

        if requester == receiver:
            raise SelfConnectionError(
                "Cannot connect to yourself",
                details={"participant": str(requester)},
            )

        existing = await self.connections.find_active_between(requester, receiver)
        if existing is not None:
            raise self._conflict_error(existing)

        try:
            return await self.connections.create(requester, receiver, self.clock())
        except ActiveConnectionConflictError:
            # Another request for this pair committed between the check
            # and the insert; report whatever won.
            winner = await self.connections.find_active_between(requester, receiver)
            if winner is not None:
                raise self._conflict_error(winner) from None
            raise DuplicatePendingError(
                "Connection request already pending",
                details={"requester": str(requester), "receiver": str(receiver)},
            ) from None

    @staticmethod
    def _conflict_error(existing: Connection) -> ConnectionRuleViolation:
        details = {
            "connection_id": existing.connection_id,
            "status": existing.status.value,
        }
        if existing.status == ConnectionStatus.ACCEPTED:
            return AlreadyConnectedError("Users are already connected", details=details)
        return DuplicatePendingError("Connection request already pending", details=details)

    async def update_status(
        self,
        actor: ParticipantRef,
        connection_id: int,
        new_status: ConnectionStatus,
    ) -> Connection:
        """
        Apply a status transition on behalf of actor.

        Leaving pending stamps the response date; accepted -> removed keeps
        the original acceptance time. The write only lands if the status
        is still the one that was authorized, so of two racing transitions
        on one connection exactly one succeeds.

        Args:
            actor: Participant requesting the change
            connection_id: Connection to change
            new_status: Requested status

        Returns:
            Updated connection

        Raises:
            ConnectionNotFoundError: No such connection
            UnauthorizedTransitionError: Actor may not apply this change
            InvalidTransitionError: Change not allowed from current status,
                including a status that changed after it was read
            DuplicatePendingError, AlreadyConnectedError: The pair gained
                another active record before the write
        """
        with logging_context(
            operation="update_connection_status",
            actor=str(actor),
            connection_id=connection_id,
        ):
            connection = await self.connections.find_by_id(connection_id)
            if connection is None:
                raise ConnectionNotFoundError(connection_id)

            try:
                role = authorize_transition(connection, actor, new_status)
            except ConnectionRuleViolation as e:
                self.logger.info(
                    "Status change rejected",
                    extra={"error_code": e.code, "reason": e.message},
                )
                raise

            now = self.clock()
            response_date = now if connection.status == ConnectionStatus.PENDING else connection.response_date

            try:
                updated = await self.connections.update_status(
                    connection_id,
                    new_status,
                    response_date,
                    now,
                    expected=connection.status,
                )
            except ActiveConnectionConflictError:
                # The pair gained another active record since the read
                winner = await self.connections.find_active_between(
                    connection.requester, connection.receiver
                )
                error = self._conflict_error(winner) if winner is not None else InvalidTransitionError(
                    "Connection status changed concurrently",
                    details={"connection_id": connection_id},
                )
                self.logger.info(
                    "Status change rejected",
                    extra={"error_code": error.code, "reason": error.message},
                )
                raise error from None
            except ConnectionRuleViolation as e:
                # Lost a race with another transition on this connection
                self.logger.info(
                    "Status change rejected",
                    extra={"error_code": e.code, "reason": e.message},
                )
                raise

            self.logger.info(
                "Connection status changed",
                extra={
                    "from_status": connection.status.value,
                    "to_status": updated.status.value,
                    "actor_role": role.value,
                },
            )
            return updated

    async def get_status_between(
        self,
        a: ParticipantRef,
        b: ParticipantRef,
    ) -> ConnectionStatusReport:
        """
        Report whether a and b may start a new connection.

        Only pending and accepted records block a new proposal.
        """
        connection = await self.connections.find_active_between(a, b)
        if connection is None:
            return ConnectionStatusReport(status=ConnectionStatusReport.NONE, can_connect=True)

        return ConnectionStatusReport(
            status=connection.status.value,
            can_connect=connection.status.is_terminal,
            connection=connection,
        )

    async def get_connection(self, connection_id: int) -> Connection:
        """
        Point read.

        Raises:
            ConnectionNotFoundError: No such connection
        """
        connection = await self.connections.find_by_id(connection_id)
        if connection is None:
            raise ConnectionNotFoundError(connection_id)
        return connection
