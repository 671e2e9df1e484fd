"""Participant directory interface (Port)."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.participant import ParticipantProfile, ParticipantRef


class ParticipantDirectory(ABC):
    """
    Port over the consultant and client stores.

    The two kinds live in separate backing stores; this interface hides
    that behind one lookup keyed by ParticipantRef.
    """

    @abstractmethod
    async def exists(self, participant: ParticipantRef) -> bool:
        """
        Check that the participant exists and is not deleted.

        Args:
            participant: Participant reference

        Returns:
            True if the participant can take part in connections
        """
        pass

    @abstractmethod
    async def get_display_info(
        self,
        participant: ParticipantRef,
    ) -> Optional[ParticipantProfile]:
        """
        Fetch display attributes.

        Args:
            participant: Participant reference

        Returns:
            Profile or None if the participant is unknown
        """
        pass
