"""Domain models - Entities and Value Objects."""

from .participant import (
    ParticipantKind,
    ParticipantRef,
    ParticipantProfile,
    canonical_pair_key,
)
from .connection import (
    Connection,
    ConnectionStatus,
    ConnectionStatusReport,
    ConnectionView,
    ParticipantRole,
)
from .listing import (
    ConnectionFilters,
    ConnectionPage,
    ConnectionStats,
    Page,
    PageInfo,
    PageRequest,
    SortField,
    SortOrder,
)

__all__ = [
    "ParticipantKind",
    "ParticipantRef",
    "ParticipantProfile",
    "canonical_pair_key",
    "Connection",
    "ConnectionStatus",
    "ConnectionStatusReport",
    "ConnectionView",
    "ParticipantRole",
    "ConnectionFilters",
    "ConnectionPage",
    "ConnectionStats",
    "Page",
    "PageInfo",
    "PageRequest",
    "SortField",
    "SortOrder",
]
