"""Connection status state machine."""

from typing import Dict, FrozenSet, Tuple

from ..exceptions import InvalidTransitionError, UnauthorizedTransitionError
from ..models.connection import Connection, ConnectionStatus, ParticipantRole
from ..models.participant import ParticipantRef

# (current, requested) -> roles allowed to apply it. Anything absent is invalid.
TRANSITIONS: Dict[Tuple[ConnectionStatus, ConnectionStatus], FrozenSet[ParticipantRole]] = {
    (ConnectionStatus.PENDING, ConnectionStatus.ACCEPTED): frozenset({ParticipantRole.RECEIVER}),
    (ConnectionStatus.PENDING, ConnectionStatus.REJECTED): frozenset({ParticipantRole.RECEIVER}),
    (ConnectionStatus.ACCEPTED, ConnectionStatus.REMOVED): frozenset(
        {ParticipantRole.REQUESTER, ParticipantRole.RECEIVER}
    ),
}


def allowed_targets(current: ConnectionStatus) -> Tuple[ConnectionStatus, ...]:
    """Statuses reachable from the current one by some party."""
    return tuple(target for (source, target) in TRANSITIONS if source == current)


def authorize_transition(
    connection: Connection,
    actor: ParticipantRef,
    new_status: ConnectionStatus,
) -> ParticipantRole:
    """
    Check that the actor may move the connection to new_status.

    Checks run in order: the actor must be a party, the (current, new)
    pair must be in the transition table, and the actor's role must be
    allowed for that pair.

    Args:
        connection: Stored connection
        actor: Participant requesting the change
        new_status: Requested status

    Returns:
        Role of the actor on this connection

    Raises:
        UnauthorizedTransitionError: Actor is not a party, or is the wrong party
        InvalidTransitionError: Transition not in the state machine
    """
    role = connection.role_of(actor)
    if role is None:
        raise UnauthorizedTransitionError(
            f"{actor} is not a party to connection {connection.connection_id}",
            details={"connection_id": connection.connection_id, "actor": str(actor)},
        )

    allowed_roles = TRANSITIONS.get((connection.status, new_status))
    if allowed_roles is None:
        raise InvalidTransitionError(
            f"Invalid status transition from {connection.status.value} to {new_status.value}",
            details={
                "connection_id": connection.connection_id,
                "current_status": connection.status.value,
                "requested_status": new_status.value,
                "allowed": [s.value for s in allowed_targets(connection.status)],
            },
        )

    if role not in allowed_roles:
        raise UnauthorizedTransitionError(
            "Only the receiver can accept or reject a connection request",
            details={
                "connection_id": connection.connection_id,
                "actor": str(actor),
                "actor_role": role.value,
                "requested_status": new_status.value,
            },
        )

    return role
