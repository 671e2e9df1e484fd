"""Listing, paging and statistics models for connections."""

from dataclasses import dataclass, field
from enum import Enum
from math import ceil
from typing import Any, Dict, Generic, List, Optional, TypeVar

from ..exceptions import ValidationError
from .connection import ConnectionStatus
from .participant import ParticipantKind

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100

T = TypeVar("T")


class SortField(str, Enum):
    """Columns a connection listing can be ordered by."""
    REQUEST_DATE = "request_date"
    RESPONSE_DATE = "response_date"
    STATUS = "status"

    @classmethod
    def parse(cls, value: Any) -> "SortField":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            # camelCase keys are accepted for API compatibility
            normalized = {
                "requestdate": cls.REQUEST_DATE.value,
                "responsedate": cls.RESPONSE_DATE.value,
            }.get(value.strip().lower(), value.strip().lower())
            try:
                return cls(normalized)
            except ValueError:
                pass
        valid = ", ".join(f.value for f in cls)
        raise ValidationError(
            f"Invalid sort field {value!r} (expected one of: {valid})",
            details={"field": "sort_by", "value": str(value)},
        )


class SortOrder(str, Enum):
    """Sort direction."""
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Any) -> "SortOrder":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValidationError(
            f"Invalid sort order {value!r} (expected asc or desc)",
            details={"field": "sort_order", "value": str(value)},
        )


@dataclass(frozen=True)
class ConnectionFilters:
    """Optional filters for a participant's connection listing."""
    status: Optional[ConnectionStatus] = None
    counterpart_kind: Optional[ParticipantKind] = None
    requester_kind: Optional[ParticipantKind] = None
    receiver_kind: Optional[ParticipantKind] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, omitting unset filters."""
        return {
            name: value.value
            for name, value in (
                ("status", self.status),
                ("counterpart_kind", self.counterpart_kind),
                ("requester_kind", self.requester_kind),
                ("receiver_kind", self.receiver_kind),
            )
            if value is not None
        }


@dataclass(frozen=True)
class PageRequest:
    """Page, page size and ordering of a listing."""
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT
    sort_by: SortField = SortField.REQUEST_DATE
    sort_order: SortOrder = SortOrder.DESC

    @classmethod
    def create(
        cls,
        page: Any = 1,
        limit: Any = DEFAULT_PAGE_LIMIT,
        sort_by: Any = SortField.REQUEST_DATE,
        sort_order: Any = SortOrder.DESC,
        max_limit: int = MAX_PAGE_LIMIT,
    ) -> "PageRequest":
        """
        Validate paging input.

        Page and limit must be positive; limit is clamped to max_limit.
        """
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValidationError(
                f"page must be a positive integer, got {page!r}",
                details={"field": "page", "value": str(page)},
            )
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(
                f"limit must be a positive integer, got {limit!r}",
                details={"field": "limit", "value": str(limit)},
            )
        return cls(
            page=page,
            limit=min(limit, max_limit),
            sort_by=SortField.parse(sort_by),
            sort_order=SortOrder.parse(sort_order),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class PageInfo:
    """Pagination summary returned with a listing."""
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of items plus the total across all pages."""
    items: List[T]
    total: int


@dataclass(frozen=True)
class ConnectionPage:
    """Enriched listing returned to callers."""
    items: List[Any]
    page_info: PageInfo
    filters: ConnectionFilters = field(default_factory=ConnectionFilters)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": [item.to_dict() for item in self.items],
            "pagination": self.page_info.to_dict(),
            "filters": self.filters.to_dict(),
        }


@dataclass(frozen=True)
class ConnectionStats:
    """Aggregate counts over all connection records."""
    total: int = 0
    pending: int = 0
    accepted: int = 0
    rejected: int = 0
    removed: int = 0
    consultant_to_client: int = 0
    client_to_consultant: int = 0
    consultant_to_consultant: int = 0
    client_to_client: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "pending": self.pending,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "removed": self.removed,
            "by_type": {
                "consultant_to_client": self.consultant_to_client,
                "client_to_consultant": self.client_to_consultant,
                "consultant_to_consultant": self.consultant_to_consultant,
                "client_to_client": self.client_to_client,
            },
        }
