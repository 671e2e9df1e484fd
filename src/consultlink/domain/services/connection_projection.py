"""Read-only connection projections and statistics."""

from typing import Dict, Iterable

from ..models.connection import ConnectionView
from ..models.listing import (
    ConnectionFilters,
    ConnectionPage,
    ConnectionStats,
    PageInfo,
    PageRequest,
)
from ..models.participant import ParticipantProfile, ParticipantRef
from ..repositories.connection_repository import ConnectionRepository
from ..repositories.participant_directory import ParticipantDirectory
from ...infrastructure.logging import ConsultLinkLogger


class ConnectionProjectionService:
    """
    Joins connections with participant display data.

    Pure read path. A failed or empty profile lookup degrades to an empty
    profile for that side instead of failing the listing.
    """

    def __init__(
        self,
        connections: ConnectionRepository,
        directory: ParticipantDirectory,
    ):
        self.connections = connections
        self.directory = directory
        self.logger = ConsultLinkLogger.get_instance()

    async def list_connections(
        self,
        participant: ParticipantRef,
        filters: ConnectionFilters,
        page_request: PageRequest,
    ) -> ConnectionPage:
        """
        List a participant's connections with both parties' display data.

        Args:
            participant: Participant whose connections are listed
            filters: Status and kind filters
            page_request: Paging and ordering

        Returns:
            Enriched page with pagination info
        """
        page = await self.connections.list_for_participant(participant, filters, page_request)

        refs = set()
        for connection in page.items:
            refs.add(connection.requester)
            refs.add(connection.receiver)
        profiles = await self._load_profiles(refs)

        views = [
            ConnectionView(
                connection=connection,
                requester_info=profiles[connection.requester],
                receiver_info=profiles[connection.receiver],
                viewer=participant,
            )
            for connection in page.items
        ]

        return ConnectionPage(
            items=views,
            page_info=PageInfo(page=page_request.page, limit=page_request.limit, total=page.total),
            filters=filters,
        )

    async def _load_profiles(
        self,
        refs: Iterable[ParticipantRef],
    ) -> Dict[ParticipantRef, ParticipantProfile]:
        profiles: Dict[ParticipantRef, ParticipantProfile] = {}
        for ref in refs:
            try:
                profile = await self.directory.get_display_info(ref)
            except Exception as e:
                self.logger.warning(
                    "Participant lookup failed, using empty profile",
                    extra={
                        "participant": str(ref),
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                )
                profile = None

            if profile is None:
                profile = ParticipantProfile.empty(ref)
            profiles[ref] = profile
        return profiles

    async def stats(self) -> ConnectionStats:
        """Aggregate counts over all connections."""
        return await self.connections.stats()
