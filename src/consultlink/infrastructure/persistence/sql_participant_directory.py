"""SQLAlchemy implementation of ParticipantDirectory."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.models import ParticipantKind, ParticipantProfile, ParticipantRef
from ...domain.repositories import ParticipantDirectory
from .database import Database
from .schema import ClientRecord, ConsultantRecord


class SqlParticipantDirectory(ParticipantDirectory):
    """Looks participants up in the consultants and clients tables."""

    def __init__(self, database: Database):
        self.database = database

    async def exists(self, participant: ParticipantRef) -> bool:
        async def participant_exists(session: AsyncSession) -> bool:
            record = await self._get_record(session, participant)
            return record is not None and not record.is_deleted

        return await self.database.run(participant_exists)

    async def get_display_info(
        self,
        participant: ParticipantRef,
    ) -> Optional[ParticipantProfile]:
        async def load_profile(session: AsyncSession) -> Optional[ParticipantProfile]:
            record = await self._get_record(session, participant)
            if record is None:
                return None

            if participant.kind == ParticipantKind.CONSULTANT:
                return ParticipantProfile(
                    ref=participant,
                    name=record.full_name or "",
                    email=record.email or "",
                    location=record.location or "",
                    specialization=record.specialization,
                )
            return ParticipantProfile(
                ref=participant,
                name=record.full_name or "",
                email=record.email or "",
                location=record.location or "",
                company_name=record.company_name,
                industry=record.industry,
            )

        return await self.database.run(load_profile)

    @staticmethod
    async def _get_record(session: AsyncSession, participant: ParticipantRef):
        if participant.kind == ParticipantKind.CONSULTANT:
            return await session.get(ConsultantRecord, participant.id)
        return await session.get(ClientRecord, participant.id)
