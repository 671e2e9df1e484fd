"""SQLAlchemy implementation of ConnectionRepository."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.exceptions import (
    ActiveConnectionConflictError,
    ConnectionNotFoundError,
    InvalidTransitionError,
)
from ...domain.models import (
    Connection,
    ConnectionFilters,
    ConnectionStats,
    ConnectionStatus,
    Page,
    PageRequest,
    ParticipantKind,
    ParticipantRef,
    SortField,
    SortOrder,
    canonical_pair_key,
)
from ...domain.repositories import ConnectionRepository
from ...domain.services.transition_policy import allowed_targets
from ..logging import ConsultLinkLogger
from .database import Database
from .predicates import ConnectionPredicateBuilder
from .schema import ACTIVE_PAIR_INDEX, ConnectionRecord

SORT_COLUMNS = {
    SortField.REQUEST_DATE: ConnectionRecord.request_date,
    SortField.RESPONSE_DATE: ConnectionRecord.response_date,
    SortField.STATUS: ConnectionRecord.status,
}


def to_storage_time(value: Optional[datetime]) -> Optional[datetime]:
    """Naive UTC, since SQLite drops offsets."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def from_storage_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlConnectionRepository(ConnectionRepository):
    """
    Connection storage on a relational database.

    Each method is one unit of work on the shared Database handle.
    """

    def __init__(self, database: Database):
        self.database = database
        self.logger = ConsultLinkLogger.get_instance()

    async def create(
        self,
        requester: ParticipantRef,
        receiver: ParticipantRef,
        now: datetime,
    ) -> Connection:
        stamp = to_storage_time(now)
        pair_key = canonical_pair_key(requester, receiver)

        async def insert_connection(session: AsyncSession) -> Connection:
            record = ConnectionRecord(
                requester_kind=requester.kind.value,
                requester_id=requester.id,
                receiver_kind=receiver.kind.value,
                receiver_id=receiver.id,
                pair_key=pair_key,
                status=ConnectionStatus.PENDING.value,
                request_date=stamp,
                response_date=None,
                created_at=stamp,
                updated_at=stamp,
            )
            session.add(record)
            await session.flush()
            return self._to_entity(record)

        try:
            return await self.database.run(insert_connection, write=True)
        except IntegrityError as e:
            if not self._is_active_pair_violation(e):
                raise
            self.logger.warning(
                "Active connection already exists for pair",
                extra={"pair_key": pair_key},
            )
            raise ActiveConnectionConflictError(
                "An active connection already exists for this pair",
                details={"pair_key": pair_key},
            ) from e

    async def find_by_id(self, connection_id: int) -> Optional[Connection]:
        async def get_connection(session: AsyncSession) -> Optional[Connection]:
            record = await session.get(ConnectionRecord, connection_id)
            return self._to_entity(record) if record is not None else None

        return await self.database.run(get_connection)

    async def find_active_between(
        self,
        a: ParticipantRef,
        b: ParticipantRef,
    ) -> Optional[Connection]:
        where = ConnectionPredicateBuilder().between(a, b).active().build()
        stmt = (
            select(ConnectionRecord)
            .where(where)
            .order_by(ConnectionRecord.created_at.desc(), ConnectionRecord.id.desc())
            .limit(1)
        )

        async def find_active(session: AsyncSession) -> Optional[Connection]:
            record = (await session.execute(stmt)).scalars().first()
            return self._to_entity(record) if record is not None else None

        return await self.database.run(find_active)

    async def update_status(
        self,
        connection_id: int,
        status: ConnectionStatus,
        response_date: Optional[datetime],
        now: datetime,
        expected: Optional[ConnectionStatus] = None,
    ) -> Connection:
        conditions = [ConnectionRecord.id == connection_id]
        if expected is not None:
            # Compare-and-set on the status the caller validated
            conditions.append(ConnectionRecord.status == expected.value)

        stmt = (
            update(ConnectionRecord)
            .where(*conditions)
            .values(
                status=status.value,
                response_date=to_storage_time(response_date),
                updated_at=to_storage_time(now),
            )
        )

        async def write_status(session: AsyncSession) -> Connection:
            result = await session.execute(stmt)
            record = await session.get(ConnectionRecord, connection_id, populate_existing=True)
            if record is None:
                raise ConnectionNotFoundError(connection_id)
            if result.rowcount == 0:
                current = ConnectionStatus(record.status)
                self.logger.info(
                    "Connection status changed concurrently",
                    extra={
                        "connection_id": connection_id,
                        "expected_status": expected.value if expected else None,
                        "current_status": current.value,
                    },
                )
                raise InvalidTransitionError(
                    f"Invalid status transition from {current.value} to {status.value}",
                    details={
                        "connection_id": connection_id,
                        "current_status": current.value,
                        "requested_status": status.value,
                        "allowed": [s.value for s in allowed_targets(current)],
                    },
                )
            return self._to_entity(record)

        try:
            return await self.database.run(write_status, write=True)
        except IntegrityError as e:
            if not self._is_active_pair_violation(e):
                raise
            self.logger.warning(
                "Status change would duplicate an active connection",
                extra={"connection_id": connection_id, "status": status.value},
            )
            raise ActiveConnectionConflictError(
                "An active connection already exists for this pair",
                details={"connection_id": connection_id},
            ) from e

    async def list_for_participant(
        self,
        participant: ParticipantRef,
        filters: ConnectionFilters,
        page_request: PageRequest,
    ) -> Page[Connection]:
        where = ConnectionPredicateBuilder().for_participant(participant).apply(filters).build()

        column = SORT_COLUMNS[page_request.sort_by]
        if page_request.sort_order == SortOrder.ASC:
            ordering = (column.asc().nulls_last(), ConnectionRecord.id.asc())
        else:
            ordering = (column.desc().nulls_last(), ConnectionRecord.id.desc())

        count_stmt = select(func.count()).select_from(ConnectionRecord).where(where)
        page_stmt = (
            select(ConnectionRecord)
            .where(where)
            .order_by(*ordering)
            .offset(page_request.offset)
            .limit(page_request.limit)
        )

        async def list_page(session: AsyncSession) -> Page[Connection]:
            total = (await session.execute(count_stmt)).scalar_one()
            records = (await session.execute(page_stmt)).scalars().all()
            return Page(items=[self._to_entity(r) for r in records], total=total)

        return await self.database.run(list_page)

    async def stats(self) -> ConnectionStats:
        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        def status_is(status: ConnectionStatus):
            return ConnectionRecord.status == status.value

        def kinds_are(requester: ParticipantKind, receiver: ParticipantKind):
            return (ConnectionRecord.requester_kind == requester.value) & (
                ConnectionRecord.receiver_kind == receiver.value
            )

        consultant, client = ParticipantKind.CONSULTANT, ParticipantKind.CLIENT
        stmt = select(
            func.count(ConnectionRecord.id),
            count_where(status_is(ConnectionStatus.PENDING)),
            count_where(status_is(ConnectionStatus.ACCEPTED)),
            count_where(status_is(ConnectionStatus.REJECTED)),
            count_where(status_is(ConnectionStatus.REMOVED)),
            count_where(kinds_are(consultant, client)),
            count_where(kinds_are(client, consultant)),
            count_where(kinds_are(consultant, consultant)),
            count_where(kinds_are(client, client)),
        )

        async def aggregate(session: AsyncSession) -> ConnectionStats:
            row = (await session.execute(stmt)).one()
            counts = [int(value or 0) for value in row]
            return ConnectionStats(
                total=counts[0],
                pending=counts[1],
                accepted=counts[2],
                rejected=counts[3],
                removed=counts[4],
                consultant_to_client=counts[5],
                client_to_consultant=counts[6],
                consultant_to_consultant=counts[7],
                client_to_client=counts[8],
            )

        return await self.database.run(aggregate)

    @staticmethod
    def _is_active_pair_violation(error: IntegrityError) -> bool:
        message = str(error.orig).lower()
        return ACTIVE_PAIR_INDEX in message or "connections.pair_key" in message

    @staticmethod
    def _to_entity(record: ConnectionRecord) -> Connection:
        return Connection(
            connection_id=record.id,
            requester=ParticipantRef(ParticipantKind(record.requester_kind), record.requester_id),
            receiver=ParticipantRef(ParticipantKind(record.receiver_kind), record.receiver_id),
            status=ConnectionStatus(record.status),
            request_date=from_storage_time(record.request_date),
            response_date=from_storage_time(record.response_date),
            created_at=from_storage_time(record.created_at),
            updated_at=from_storage_time(record.updated_at),
        )
