"""Domain exceptions for ConsultLink."""

from typing import Any, Dict, Optional


class ConsultLinkDomainError(Exception):
    """Base exception for domain errors."""

    code = "domain_error"
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


class ValidationError(ConsultLinkDomainError):
    """Raised when an identifier, status or paging value is malformed."""

    code = "validation_error"


class NotFoundError(ConsultLinkDomainError):
    """Raised when a participant or connection does not exist."""

    code = "not_found"


class ParticipantNotFoundError(NotFoundError):
    """Raised when a participant is absent or soft-deleted."""

    def __init__(self, participant: Any):
        super().__init__(
            f"{participant.kind.value} {participant.id} not found",
            details={"participant": str(participant)},
        )
        self.participant = participant


class ConnectionNotFoundError(NotFoundError):
    """Raised when a connection id does not exist."""

    def __init__(self, connection_id: int):
        super().__init__(
            f"Connection {connection_id} not found",
            details={"connection_id": connection_id},
        )
        self.connection_id = connection_id


class ConnectionRuleViolation(ConsultLinkDomainError):
    """Base exception for connection lifecycle rule violations."""

    code = "rule_violation"


class SelfConnectionError(ConnectionRuleViolation):
    """Raised when a participant tries to connect to itself."""

    code = "self_connection"


class DuplicatePendingError(ConnectionRuleViolation):
    """Raised when a pending request already exists for the pair."""

    code = "duplicate_pending"


class AlreadyConnectedError(ConnectionRuleViolation):
    """Raised when the pair is already connected."""

    code = "already_connected"


class UnauthorizedTransitionError(ConnectionRuleViolation):
    """Raised when the actor may not apply the requested transition."""

    code = "unauthorized"


class InvalidTransitionError(ConnectionRuleViolation):
    """Raised when the status change is not permitted from the current state."""

    code = "invalid_transition"


class ActiveConnectionConflictError(ConsultLinkDomainError):
    """Raised by storage when the active-pair uniqueness constraint rejects a write."""

    code = "active_connection_conflict"


class StorageUnavailableError(ConsultLinkDomainError):
    """Raised when the backing store is unreachable or an operation times out."""

    code = "storage_unavailable"
    retryable = True
