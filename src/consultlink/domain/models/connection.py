"""Connection entity and related value objects."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import ValidationError
from .participant import ParticipantProfile, ParticipantRef, canonical_pair_key


class ConnectionStatus(str, Enum):
    """Lifecycle status of a connection record."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    REMOVED = "removed"

    @property
    def is_active(self) -> bool:
        """Active records block a new proposal between the same pair."""
        return self in (ConnectionStatus.PENDING, ConnectionStatus.ACCEPTED)

    @property
    def is_terminal(self) -> bool:
        return self in (ConnectionStatus.REJECTED, ConnectionStatus.REMOVED)

    @classmethod
    def active_values(cls) -> tuple:
        return (cls.PENDING.value, cls.ACCEPTED.value)

    @classmethod
    def parse(cls, value: Any) -> "ConnectionStatus":
        """Parse a status from boundary input."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        valid = ", ".join(s.value for s in cls)
        raise ValidationError(
            f"Invalid connection status {value!r} (expected one of: {valid})",
            details={"field": "status", "value": str(value)},
        )


class ParticipantRole(str, Enum):
    """Side of a connection a participant is on."""
    REQUESTER = "requester"
    RECEIVER = "receiver"


@dataclass(frozen=True)
class Connection:
    """
    A proposal or relationship between two participants.

    Records are never deleted. Rejected and removed records stay as
    history; a later proposal between the same pair gets a new id.
    """
    connection_id: int
    requester: ParticipantRef
    receiver: ParticipantRef
    status: ConnectionStatus
    request_date: datetime
    created_at: datetime
    updated_at: datetime
    response_date: Optional[datetime] = None

    @property
    def pair_key(self) -> str:
        return canonical_pair_key(self.requester, self.receiver)

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def involves(self, participant: ParticipantRef) -> bool:
        """Check whether the participant is either side of this connection."""
        return participant == self.requester or participant == self.receiver

    def role_of(self, participant: ParticipantRef) -> Optional[ParticipantRole]:
        """Return the participant's role, or None if not a party."""
        if participant == self.requester:
            return ParticipantRole.REQUESTER
        if participant == self.receiver:
            return ParticipantRole.RECEIVER
        return None

    def counterpart_of(self, participant: ParticipantRef) -> ParticipantRef:
        """Return the other side of the connection."""
        if participant == self.requester:
            return self.receiver
        if participant == self.receiver:
            return self.requester
        raise ValueError(f"{participant} is not a party to connection {self.connection_id}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "connection_id": self.connection_id,
            "requester": self.requester.to_dict(),
            "receiver": self.receiver.to_dict(),
            "status": self.status.value,
            "request_date": self.request_date.isoformat(),
            "response_date": self.response_date.isoformat() if self.response_date else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class ConnectionView:
    """Connection joined with display data of both parties."""
    connection: Connection
    requester_info: ParticipantProfile
    receiver_info: ParticipantProfile
    viewer: Optional[ParticipantRef] = None

    @property
    def counterpart_info(self) -> Optional[ParticipantProfile]:
        """Display data of the side opposite the viewer."""
        if self.viewer is None:
            return None
        if self.viewer == self.connection.requester:
            return self.receiver_info
        if self.viewer == self.connection.receiver:
            return self.requester_info
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = self.connection.to_dict()
        data["requester_info"] = self.requester_info.to_dict()
        data["receiver_info"] = self.receiver_info.to_dict()
        return data


@dataclass(frozen=True)
class ConnectionStatusReport:
    """Result of checking whether two participants can connect."""
    status: str
    can_connect: bool
    connection: Optional[Connection] = None

    NONE = "none"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: Dict[str, Any] = {
            "status": self.status,
            "can_connect": self.can_connect,
        }
        if self.connection is not None:
            data["connection"] = self.connection.to_dict()
        return data
