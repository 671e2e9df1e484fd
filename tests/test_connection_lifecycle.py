"""
Tests for the connection lifecycle service.

Runs against real in-memory ports (no mocks) and covers creation rules,
the status state machine, timestamps and the lost-race path.
"""

import pytest
from datetime import datetime, timezone

from consultlink.domain.exceptions import (
    AlreadyConnectedError,
    ConnectionNotFoundError,
    DuplicatePendingError,
    InvalidTransitionError,
    ParticipantNotFoundError,
    SelfConnectionError,
    UnauthorizedTransitionError,
)
from consultlink.domain.models import ConnectionStatus, ParticipantRef
from consultlink.domain.services import ConnectionLifecycleService

from in_memory import (
    ConflictingUpdateRepository,
    InMemoryConnectionRepository,
    InMemoryParticipantDirectory,
    RacingConnectionRepository,
    StaleReadConnectionRepository,
    SteppingClock,
)

START = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestCreateConnection:
    """Test suite for proposing connections."""

    def setup_method(self):
        self.repo = InMemoryConnectionRepository()
        self.directory = InMemoryParticipantDirectory()
        self.clock = SteppingClock(START)
        self.service = ConnectionLifecycleService(self.repo, self.directory, clock=self.clock)

        self.consultant = self.directory.add_consultant(1, "Ada Consultant")
        self.client = self.directory.add_client(2, "Acme Corp")
        self.other_consultant = self.directory.add_consultant(3, "Grace Consultant")

    @pytest.mark.asyncio
    async def test_create_yields_pending_connection(self):
        """Test that a new request is pending with no response date."""
        connection = await self.service.create_connection(self.consultant, self.client)

        assert connection.status == ConnectionStatus.PENDING
        assert connection.requester == self.consultant
        assert connection.receiver == self.client
        assert connection.response_date is None
        assert connection.request_date == START
        assert connection.created_at == connection.updated_at == START

    @pytest.mark.asyncio
    async def test_client_can_request_consultant(self):
        """Test that either kind may be the requester."""
        connection = await self.service.create_connection(self.client, self.consultant)

        assert connection.requester == self.client
        assert connection.receiver == self.consultant

    @pytest.mark.asyncio
    async def test_same_kind_connection_allowed(self):
        """Test that consultants can connect with each other."""
        connection = await self.service.create_connection(self.consultant, self.other_consultant)

        assert connection.status == ConnectionStatus.PENDING

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ref", [ParticipantRef.consultant(1), ParticipantRef.client(2)])
    async def test_self_connection_rejected(self, ref):
        """Test that connecting to yourself fails for every kind."""
        with pytest.raises(SelfConnectionError, match="Cannot connect to yourself"):
            await self.service.create_connection(ref, ref)

        assert self.repo.records == {}

    @pytest.mark.asyncio
    async def test_same_id_different_kind_is_not_self(self):
        """Test that consultant 5 and client 5 are different participants."""
        consultant = self.directory.add_consultant(5)
        client = self.directory.add_client(5)

        connection = await self.service.create_connection(consultant, client)

        assert connection.requester != connection.receiver

    @pytest.mark.asyncio
    async def test_missing_requester(self):
        """Test that an unknown requester is reported before the receiver."""
        ghost = ParticipantRef.consultant(99)
        other_ghost = ParticipantRef.client(98)

        with pytest.raises(ParticipantNotFoundError) as exc_info:
            await self.service.create_connection(ghost, other_ghost)

        assert exc_info.value.participant == ghost
        assert "consultant 99 not found" in str(exc_info.value)
        assert self.repo.records == {}

    @pytest.mark.asyncio
    async def test_missing_receiver(self):
        """Test that an unknown receiver fails without a write."""
        with pytest.raises(ParticipantNotFoundError) as exc_info:
            await self.service.create_connection(self.consultant, ParticipantRef.client(404))

        assert exc_info.value.participant == ParticipantRef.client(404)
        assert self.repo.records == {}

    @pytest.mark.asyncio
    async def test_soft_deleted_participant_not_found(self):
        """Test that soft-deleted participants cannot connect."""
        self.directory.soft_delete(self.client)

        with pytest.raises(ParticipantNotFoundError):
            await self.service.create_connection(self.consultant, self.client)

    @pytest.mark.asyncio
    async def test_not_found_wins_over_self_connection(self):
        """Test that existence is checked before the self-connection rule."""
        ghost = ParticipantRef.client(77)

        with pytest.raises(ParticipantNotFoundError):
            await self.service.create_connection(ghost, ghost)

    @pytest.mark.asyncio
    async def test_duplicate_pending_both_directions(self):
        """Test that a pending request blocks new requests either way."""
        await self.service.create_connection(self.consultant, self.client)

        with pytest.raises(DuplicatePendingError, match="already pending"):
            await self.service.create_connection(self.consultant, self.client)
        with pytest.raises(DuplicatePendingError):
            await self.service.create_connection(self.client, self.consultant)

        assert len(self.repo.records) == 1

    @pytest.mark.asyncio
    async def test_already_connected_both_directions(self):
        """Test that an accepted connection blocks new requests either way."""
        connection = await self.service.create_connection(self.consultant, self.client)
        await self.service.update_status(self.client, connection.connection_id, ConnectionStatus.ACCEPTED)

        with pytest.raises(AlreadyConnectedError, match="already connected"):
            await self.service.create_connection(self.consultant, self.client)
        with pytest.raises(AlreadyConnectedError):
            await self.service.create_connection(self.client, self.consultant)

    @pytest.mark.asyncio
    async def test_new_request_allowed_after_rejection(self):
        """Test that rejection frees the pair and keeps history."""
        first = await self.service.create_connection(self.consultant, self.client)
        await self.service.update_status(self.client, first.connection_id, ConnectionStatus.REJECTED)

        second = await self.service.create_connection(self.client, self.consultant)

        assert second.connection_id != first.connection_id
        assert second.status == ConnectionStatus.PENDING
        assert self.repo.records[first.connection_id].status == ConnectionStatus.REJECTED

    @pytest.mark.asyncio
    async def test_new_request_allowed_after_removal(self):
        """Test that removal frees the pair."""
        first = await self.service.create_connection(self.consultant, self.client)
        await self.service.update_status(self.client, first.connection_id, ConnectionStatus.ACCEPTED)
        await self.service.update_status(self.consultant, first.connection_id, ConnectionStatus.REMOVED)

        second = await self.service.create_connection(self.consultant, self.client)

        assert second.status == ConnectionStatus.PENDING
        assert len(self.repo.records) == 2


class TestLostRace:
    """Test suite for the storage uniqueness fallback."""

    def setup_method(self):
        self.repo = RacingConnectionRepository()
        self.directory = InMemoryParticipantDirectory()
        self.service = ConnectionLifecycleService(self.repo, self.directory, clock=SteppingClock(START))
        self.consultant = self.directory.add_consultant(1)
        self.client = self.directory.add_client(2)

    @pytest.mark.asyncio
    async def test_lost_race_against_pending_reports_duplicate(self):
        """Test that a conflicting insert becomes DuplicatePendingError."""
        await self.repo.create(self.client, self.consultant, START)
        self.repo.arm()

        with pytest.raises(DuplicatePendingError):
            await self.service.create_connection(self.consultant, self.client)

        assert len(self.repo.records) == 1

    @pytest.mark.asyncio
    async def test_lost_race_against_accepted_reports_already_connected(self):
        """Test that a conflicting insert against an accepted pair becomes AlreadyConnectedError."""
        winner = await self.repo.create(self.client, self.consultant, START)
        await self.repo.update_status(winner.connection_id, ConnectionStatus.ACCEPTED, START, START)
        self.repo.arm()

        with pytest.raises(AlreadyConnectedError):
            await self.service.create_connection(self.consultant, self.client)


class TestUpdateStatus:
    """Test suite for status transitions."""

    def setup_method(self):
        self.repo = InMemoryConnectionRepository()
        self.directory = InMemoryParticipantDirectory()
        self.clock = SteppingClock(START)
        self.service = ConnectionLifecycleService(self.repo, self.directory, clock=self.clock)

        self.requester = self.directory.add_consultant(1)
        self.receiver = self.directory.add_client(2)
        self.outsider = self.directory.add_client(3)

    async def _pending(self):
        return await self.service.create_connection(self.requester, self.receiver)

    async def _accepted(self):
        connection = await self._pending()
        return await self.service.update_status(
            self.receiver, connection.connection_id, ConnectionStatus.ACCEPTED
        )

    @pytest.mark.asyncio
    async def test_receiver_accepts(self):
        """Test that the receiver can accept and the response date is set."""
        connection = await self._pending()

        accepted = await self.service.update_status(
            self.receiver, connection.connection_id, ConnectionStatus.ACCEPTED
        )

        assert accepted.status == ConnectionStatus.ACCEPTED
        assert accepted.response_date is not None
        assert accepted.response_date > accepted.request_date
        assert accepted.updated_at == accepted.response_date

    @pytest.mark.asyncio
    async def test_receiver_rejects(self):
        """Test that the receiver can reject."""
        connection = await self._pending()

        rejected = await self.service.update_status(
            self.receiver, connection.connection_id, ConnectionStatus.REJECTED
        )

        assert rejected.status == ConnectionStatus.REJECTED
        assert rejected.response_date is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [ConnectionStatus.ACCEPTED, ConnectionStatus.REJECTED])
    async def test_requester_cannot_answer_own_request(self, target):
        """Test that only the receiver can accept or reject."""
        connection = await self._pending()

        with pytest.raises(UnauthorizedTransitionError, match="Only the receiver"):
            await self.service.update_status(self.requester, connection.connection_id, target)

        assert self.repo.records[connection.connection_id].status == ConnectionStatus.PENDING

    @pytest.mark.asyncio
    async def test_outsider_cannot_change_status(self):
        """Test that a non-party is unauthorized for every transition."""
        connection = await self._pending()

        with pytest.raises(UnauthorizedTransitionError):
            await self.service.update_status(
                self.outsider, connection.connection_id, ConnectionStatus.ACCEPTED
            )

    @pytest.mark.asyncio
    async def test_outsider_checked_before_transition_validity(self):
        """Test that a non-party gets Unauthorized even for an invalid transition."""
        connection = await self._pending()

        with pytest.raises(UnauthorizedTransitionError):
            await self.service.update_status(
                self.outsider, connection.connection_id, ConnectionStatus.REMOVED
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("remover", ["requester", "receiver"])
    async def test_either_party_removes_accepted(self, remover):
        """Test that either party may remove and the acceptance date is kept."""
        accepted = await self._accepted()
        actor = getattr(self, remover)

        removed = await self.service.update_status(
            actor, accepted.connection_id, ConnectionStatus.REMOVED
        )

        assert removed.status == ConnectionStatus.REMOVED
        assert removed.response_date == accepted.response_date
        assert removed.updated_at > accepted.updated_at

    @pytest.mark.asyncio
    async def test_accepting_accepted_is_invalid(self):
        """Test that accepted -> accepted is not a transition."""
        accepted = await self._accepted()

        with pytest.raises(InvalidTransitionError) as exc_info:
            await self.service.update_status(
                self.receiver, accepted.connection_id, ConnectionStatus.ACCEPTED
            )

        assert exc_info.value.details["allowed"] == ["removed"]

    @pytest.mark.asyncio
    async def test_pending_cannot_be_removed(self):
        """Test that a pending request cannot be removed."""
        connection = await self._pending()

        with pytest.raises(InvalidTransitionError):
            await self.service.update_status(
                self.receiver, connection.connection_id, ConnectionStatus.REMOVED
            )

    @pytest.mark.asyncio
    async def test_back_to_pending_is_invalid(self):
        """Test that nothing returns to pending."""
        connection = await self._pending()

        with pytest.raises(InvalidTransitionError):
            await self.service.update_status(
                self.receiver, connection.connection_id, ConnectionStatus.PENDING
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", list(ConnectionStatus))
    async def test_terminal_states_are_final(self, target):
        """Test that rejected connections accept no further transition."""
        connection = await self._pending()
        await self.service.update_status(
            self.receiver, connection.connection_id, ConnectionStatus.REJECTED
        )

        with pytest.raises(InvalidTransitionError):
            await self.service.update_status(self.receiver, connection.connection_id, target)

    @pytest.mark.asyncio
    async def test_unknown_connection(self):
        """Test that a missing connection id is reported."""
        with pytest.raises(ConnectionNotFoundError) as exc_info:
            await self.service.update_status(self.receiver, 999, ConnectionStatus.ACCEPTED)

        assert exc_info.value.connection_id == 999


class TestStaleTransitions:
    """Test suite for transitions validated against an outdated read."""

    def setup_method(self):
        self.directory = InMemoryParticipantDirectory()
        self.requester = self.directory.add_consultant(1)
        self.receiver = self.directory.add_client(2)

    @pytest.mark.asyncio
    async def test_rejected_connection_is_not_revived(self):
        """Test that an accept authorized on a stale pending read is refused."""
        repo = StaleReadConnectionRepository()
        service = ConnectionLifecycleService(repo, self.directory, clock=SteppingClock(START))
        connection = await service.create_connection(self.requester, self.receiver)
        repo.hold(connection.connection_id)

        await repo.update_status(
            connection.connection_id,
            ConnectionStatus.REJECTED,
            START,
            START,
            expected=ConnectionStatus.PENDING,
        )

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.update_status(
                self.receiver, connection.connection_id, ConnectionStatus.ACCEPTED
            )

        assert exc_info.value.details["current_status"] == "rejected"
        assert exc_info.value.details["allowed"] == []
        assert repo.records[connection.connection_id].status == ConnectionStatus.REJECTED

    @pytest.mark.asyncio
    async def test_active_pair_conflict_on_write_reports_winner(self):
        """Test that a conflicting status write becomes a rule violation."""
        repo = ConflictingUpdateRepository()
        service = ConnectionLifecycleService(repo, self.directory, clock=SteppingClock(START))
        connection = await service.create_connection(self.requester, self.receiver)
        repo.arm()

        with pytest.raises(DuplicatePendingError) as exc_info:
            await service.update_status(
                self.receiver, connection.connection_id, ConnectionStatus.ACCEPTED
            )

        assert exc_info.value.details["connection_id"] == connection.connection_id
        assert repo.records[connection.connection_id].status == ConnectionStatus.PENDING


class TestStatusBetween:
    """Test suite for the relationship status report."""

    def setup_method(self):
        self.repo = InMemoryConnectionRepository()
        self.directory = InMemoryParticipantDirectory()
        self.service = ConnectionLifecycleService(self.repo, self.directory, clock=SteppingClock(START))
        self.a = self.directory.add_consultant(1)
        self.b = self.directory.add_client(2)

    @pytest.mark.asyncio
    async def test_no_connection(self):
        """Test that strangers may connect."""
        report = await self.service.get_status_between(self.a, self.b)

        assert report.status == "none"
        assert report.can_connect is True
        assert report.connection is None

    @pytest.mark.asyncio
    async def test_pending_blocks(self):
        """Test that a pending request blocks from both sides."""
        connection = await self.service.create_connection(self.a, self.b)

        for x, y in ((self.a, self.b), (self.b, self.a)):
            report = await self.service.get_status_between(x, y)
            assert report.status == "pending"
            assert report.can_connect is False
            assert report.connection.connection_id == connection.connection_id

    @pytest.mark.asyncio
    async def test_rejected_allows_new_request(self):
        """Test that only active records count."""
        connection = await self.service.create_connection(self.a, self.b)
        await self.service.update_status(self.b, connection.connection_id, ConnectionStatus.REJECTED)

        report = await self.service.get_status_between(self.a, self.b)

        assert report.status == "none"
        assert report.can_connect is True

    @pytest.mark.asyncio
    async def test_get_connection(self):
        """Test point read and its not-found case."""
        connection = await self.service.create_connection(self.a, self.b)

        assert await self.service.get_connection(connection.connection_id) == connection
        with pytest.raises(ConnectionNotFoundError):
            await self.service.get_connection(connection.connection_id + 1)


class TestEndToEndScenario:
    """The full request, accept, remove, request again lifecycle."""

    @pytest.mark.asyncio
    async def test_full_lifecycle(self):
        """Test a realistic sequence across two participants."""
        repo = InMemoryConnectionRepository()
        directory = InMemoryParticipantDirectory()
        service = ConnectionLifecycleService(repo, directory, clock=SteppingClock(START))
        consultant = directory.add_consultant(10, "Ada")
        client = directory.add_client(20, "Acme")

        first = await service.create_connection(consultant, client)
        with pytest.raises(DuplicatePendingError):
            await service.create_connection(client, consultant)
        with pytest.raises(UnauthorizedTransitionError):
            await service.update_status(consultant, first.connection_id, ConnectionStatus.ACCEPTED)

        accepted = await service.update_status(client, first.connection_id, ConnectionStatus.ACCEPTED)
        assert (await service.get_status_between(consultant, client)).status == "accepted"

        removed = await service.update_status(consultant, first.connection_id, ConnectionStatus.REMOVED)
        assert removed.response_date == accepted.response_date
        assert (await service.get_status_between(client, consultant)).can_connect is True

        second = await service.create_connection(client, consultant)
        assert second.connection_id == first.connection_id + 1
        assert second.requester == client

        stats = await repo.stats()
        assert stats.total == 2
        assert stats.removed == 1
        assert stats.pending == 1
        assert stats.consultant_to_client == 1
        assert stats.client_to_consultant == 1
