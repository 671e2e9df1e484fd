"""Repository interfaces (Ports) for the domain layer."""

from .connection_repository import ConnectionRepository
from .participant_directory import ParticipantDirectory

__all__ = [
    "ConnectionRepository",
    "ParticipantDirectory",
]
