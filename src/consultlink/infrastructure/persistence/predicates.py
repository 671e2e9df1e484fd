"""Composable WHERE clauses for connection queries."""

from typing import List

from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from ...domain.models import ConnectionFilters, ConnectionStatus, ParticipantRef
from .schema import ConnectionRecord


def is_requester(participant: ParticipantRef) -> ColumnElement[bool]:
    return and_(
        ConnectionRecord.requester_kind == participant.kind.value,
        ConnectionRecord.requester_id == participant.id,
    )


def is_receiver(participant: ParticipantRef) -> ColumnElement[bool]:
    return and_(
        ConnectionRecord.receiver_kind == participant.kind.value,
        ConnectionRecord.receiver_id == participant.id,
    )


class ConnectionPredicateBuilder:
    """
    Accumulates bound-parameter clauses, one per filter.

    Values only ever reach the database as parameters; nothing is
    formatted into SQL text.

    Example:
        >>> clause = (
        ...     ConnectionPredicateBuilder()
        ...     .for_participant(ref)
        ...     .apply(filters)
        ...     .build()
        ... )
    """

    def __init__(self):
        self._clauses: List[ColumnElement[bool]] = []
        self._participant = None

    def for_participant(self, participant: ParticipantRef) -> "ConnectionPredicateBuilder":
        """Restrict to connections the participant is a party to."""
        self._participant = participant
        self._clauses.append(or_(is_requester(participant), is_receiver(participant)))
        return self

    def between(self, a: ParticipantRef, b: ParticipantRef) -> "ConnectionPredicateBuilder":
        """Restrict to connections between a and b in either direction."""
        self._clauses.append(
            or_(
                and_(is_requester(a), is_receiver(b)),
                and_(is_requester(b), is_receiver(a)),
            )
        )
        return self

    def active(self) -> "ConnectionPredicateBuilder":
        return self.with_status_in(list(ConnectionStatus.active_values()))

    def with_status_in(self, statuses: List[str]) -> "ConnectionPredicateBuilder":
        self._clauses.append(ConnectionRecord.status.in_(statuses))
        return self

    def apply(self, filters: ConnectionFilters) -> "ConnectionPredicateBuilder":
        """
        Add one clause per set filter.

        counterpart_kind needs for_participant() first: it matches the
        other side's kind, whichever side the participant is on.
        """
        if filters.status is not None:
            self._clauses.append(ConnectionRecord.status == filters.status.value)

        if filters.requester_kind is not None:
            self._clauses.append(ConnectionRecord.requester_kind == filters.requester_kind.value)

        if filters.receiver_kind is not None:
            self._clauses.append(ConnectionRecord.receiver_kind == filters.receiver_kind.value)

        if filters.counterpart_kind is not None:
            if self._participant is None:
                raise ValueError("counterpart_kind filter requires a participant")
            kind = filters.counterpart_kind.value
            self._clauses.append(
                or_(
                    and_(is_requester(self._participant), ConnectionRecord.receiver_kind == kind),
                    and_(is_receiver(self._participant), ConnectionRecord.requester_kind == kind),
                )
            )

        return self

    def build(self) -> ColumnElement[bool]:
        """AND of all clauses (true when there are none)."""
        return and_(true(), *self._clauses)
