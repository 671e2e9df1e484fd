"""Domain services - Core business logic."""

from .connection_lifecycle import ConnectionLifecycleService
from .connection_projection import ConnectionProjectionService
from .transition_policy import TRANSITIONS, authorize_transition

__all__ = [
    "ConnectionLifecycleService",
    "ConnectionProjectionService",
    "TRANSITIONS",
    "authorize_transition",
]
