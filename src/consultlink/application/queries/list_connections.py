"""List connections query and handler."""

from dataclasses import dataclass
from typing import Any, Optional

from ...domain.exceptions import ValidationError
from ...domain.models.connection import ConnectionStatus
from ...domain.models.listing import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    ConnectionFilters,
    ConnectionPage,
    PageRequest,
    SortField,
    SortOrder,
)
from ...domain.models.participant import ParticipantKind, ParticipantRef
from ...domain.services.connection_projection import ConnectionProjectionService
from ...infrastructure.resilience import StorageGuard


@dataclass
class ListConnectionsQuery:
    """
    Query for one participant's connections.

    pending_only restricts the listing to pending requests in either
    direction and cannot be combined with another status filter.
    """
    participant_kind: Any
    participant_id: Any
    status: Optional[Any] = None
    counterpart_kind: Optional[Any] = None
    requester_kind: Optional[Any] = None
    receiver_kind: Optional[Any] = None
    page: Any = 1
    limit: Optional[Any] = None
    sort_by: Any = SortField.REQUEST_DATE.value
    sort_order: Any = SortOrder.DESC.value
    pending_only: bool = False


def _optional(value: Any, parse):
    if value is None or value == "":
        return None
    return parse(value)


class ListConnectionsHandler:
    """Handler for list connections query."""

    def __init__(
        self,
        projection: ConnectionProjectionService,
        guard: StorageGuard,
        default_limit: int = DEFAULT_PAGE_LIMIT,
        max_limit: int = MAX_PAGE_LIMIT,
    ):
        """
        Initialize handler.

        Args:
            projection: Read-side projection service
            guard: Retry and circuit breaker for storage calls
            default_limit: Page size when the query gives none
            max_limit: Larger page sizes are clamped to this
        """
        self.projection = projection
        self.guard = guard
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def handle(self, query: ListConnectionsQuery) -> ConnectionPage:
        """
        Execute list query.

        Args:
            query: List query

        Returns:
            Enriched page of connections

        Raises:
            ValidationError: Malformed participant, filter or paging value
        """
        participant = ParticipantRef.parse(query.participant_kind, query.participant_id)

        status = _optional(query.status, ConnectionStatus.parse)
        if query.pending_only:
            if status not in (None, ConnectionStatus.PENDING):
                raise ValidationError(
                    "pending_only cannot be combined with another status filter",
                    details={"field": "status", "value": status.value},
                )
            status = ConnectionStatus.PENDING

        filters = ConnectionFilters(
            status=status,
            counterpart_kind=_optional(query.counterpart_kind, ParticipantKind.parse),
            requester_kind=_optional(query.requester_kind, ParticipantKind.parse),
            receiver_kind=_optional(query.receiver_kind, ParticipantKind.parse),
        )

        page_request = PageRequest.create(
            page=query.page,
            limit=self.default_limit if query.limit is None else query.limit,
            sort_by=query.sort_by,
            sort_order=query.sort_order,
            max_limit=self.max_limit,
        )

        return await self.guard.call(
            self.projection.list_connections, participant, filters, page_request
        )
