"""Connection repository interface (Port)."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..models.connection import Connection, ConnectionStatus
from ..models.listing import ConnectionFilters, ConnectionStats, Page, PageRequest
from ..models.participant import ParticipantRef


class ConnectionRepository(ABC):
    """
    Port for durable connection storage.

    Implementations perform writes exactly as asked. Business rules are
    checked by the lifecycle service before any write; the only rule the
    store enforces itself is that an unordered pair has at most one active
    record.
    """

    @abstractmethod
    async def create(
        self,
        requester: ParticipantRef,
        receiver: ParticipantRef,
        now: datetime,
    ) -> Connection:
        """
        Insert a pending connection.

        Args:
            requester: Proposing participant
            receiver: Participant the proposal is addressed to
            now: Request date and audit timestamp

        Returns:
            Stored connection including its generated id

        Raises:
            ActiveConnectionConflictError: An active record already exists
                for the unordered pair
        """
        pass

    @abstractmethod
    async def find_by_id(self, connection_id: int) -> Optional[Connection]:
        """
        Point lookup.

        Args:
            connection_id: Connection identifier

        Returns:
            Connection or None if not found
        """
        pass

    @abstractmethod
    async def find_active_between(
        self,
        a: ParticipantRef,
        b: ParticipantRef,
    ) -> Optional[Connection]:
        """
        Find the pending or accepted record between two participants.

        Both orderings are considered. If several exist (a data integrity
        violation) the most recently created one is returned.
        """
        pass

    @abstractmethod
    async def update_status(
        self,
        connection_id: int,
        status: ConnectionStatus,
        response_date: Optional[datetime],
        now: datetime,
        expected: Optional[ConnectionStatus] = None,
    ) -> Connection:
        """
        Write status, response date and update timestamp atomically.

        Does not re-validate the transition. When expected is given the
        write only applies while the stored status still equals it, so a
        transition validated against a stale read can never land.

        Args:
            connection_id: Connection to change
            status: New status
            response_date: Response date to store
            now: Update timestamp
            expected: Status the transition was validated against

        Raises:
            ConnectionNotFoundError: No row with this id
            InvalidTransitionError: The stored status is no longer expected
            ActiveConnectionConflictError: The new status would give the
                pair a second active record
        """
        pass

    @abstractmethod
    async def list_for_participant(
        self,
        participant: ParticipantRef,
        filters: ConnectionFilters,
        page_request: PageRequest,
    ) -> Page[Connection]:
        """
        List connections where the participant is requester or receiver.

        Args:
            participant: Participant whose connections are listed
            filters: Optional status and kind filters
            page_request: Paging and ordering

        Returns:
            Requested page and the total number of matching records
        """
        pass

    @abstractmethod
    async def stats(self) -> ConnectionStats:
        """
        Aggregate counts: total, per status and per (requester kind,
        receiver kind).
        """
        pass
