"""
Async database handle.

Owns the SQLAlchemy engine and session factory. Every storage operation
goes through ``run``, which gives it one session and one transaction
bounded by the configured timeout, and converts driver failures into
StorageUnavailableError.
"""

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ...domain.exceptions import StorageUnavailableError
from ..logging import ConsultLinkLogger
from .schema import Base

T = TypeVar("T")


class Database:
    """
    Engine lifecycle plus transactional unit of work.

    Example:
        >>> async with Database("sqlite+aiosqlite:///./data.db") as db:
        ...     await db.create_schema()
        ...     count = await db.run(count_connections)
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        operation_timeout: float = 10.0,
        pool_size: int = 5,
        max_overflow: int = 10,
    ):
        """
        Initialize the handle. No connection is made until open().

        Args:
            url: SQLAlchemy async database URL
            echo: Log every SQL statement
            operation_timeout: Seconds one run() may take
            pool_size: Pool size for server databases
            max_overflow: Pool overflow for server databases
        """
        self.url = url
        self.echo = echo
        self.operation_timeout = operation_timeout
        self.pool_size = pool_size
        self.max_overflow = max_overflow

        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None
        self.logger = ConsultLinkLogger.get_instance()

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.url).get_backend_name() == "sqlite"

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StorageUnavailableError("Database is not open")
        return self._engine

    async def open(self) -> None:
        """Create the engine and session factory."""
        if self._engine is not None:
            return

        engine_kwargs: dict = {"echo": self.echo}
        if self.is_sqlite:
            self._ensure_sqlite_directory()
        else:
            engine_kwargs.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_pre_ping=True,
            )

        self._engine = create_async_engine(self.url, **engine_kwargs)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

        self.logger.info(
            "Database opened",
            extra={"backend": make_url(self.url).get_backend_name()},
        )

    async def close(self) -> None:
        """Dispose of the engine and its pool."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        self.logger.info("Database closed")

    async def create_schema(self) -> None:
        """Create any missing tables and indexes."""
        async def _create():
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        await self._guarded(_create(), "create_schema")

    async def run(
        self,
        fn: Callable[[AsyncSession], Awaitable[T]],
        write: bool = False,
    ) -> T:
        """
        Run fn with a fresh session.

        Writes run inside a transaction that commits when fn returns and
        rolls back if it raises or the timeout fires.

        Args:
            fn: Coroutine function taking the session
            write: Wrap fn in a committed transaction

        Returns:
            Whatever fn returns

        Raises:
            StorageUnavailableError: Not open, timed out, or driver failure
            sqlalchemy.exc.IntegrityError: Passed through for the caller
        """
        if self._sessions is None:
            raise StorageUnavailableError("Database is not open")
        sessions = self._sessions

        async def _work() -> T:
            async with sessions() as session:
                if write:
                    async with session.begin():
                        return await fn(session)
                return await fn(session)

        return await self._guarded(_work(), getattr(fn, "__name__", "storage_operation"))

    async def _guarded(self, work: Awaitable[Any], operation: str) -> Any:
        try:
            return await asyncio.wait_for(work, timeout=self.operation_timeout)
        except IntegrityError:
            raise
        except asyncio.TimeoutError as e:
            self.logger.warning(
                "Storage operation timed out",
                extra={"storage_operation": operation, "timeout_seconds": self.operation_timeout},
            )
            raise StorageUnavailableError(
                f"Storage operation timed out after {self.operation_timeout}s",
                details={"operation": operation},
            ) from e
        except (OperationalError, InterfaceError) as e:
            raise self._unavailable(operation, e) from e
        except DBAPIError as e:
            if e.connection_invalidated:
                raise self._unavailable(operation, e) from e
            raise

    def _unavailable(self, operation: str, error: Exception) -> StorageUnavailableError:
        self.logger.warning(
            "Storage operation failed",
            extra={
                "storage_operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
            },
        )
        return StorageUnavailableError(
            "Connection store is unavailable",
            details={"operation": operation, "error_type": type(error).__name__},
        )

    def _ensure_sqlite_directory(self) -> None:
        database = make_url(self.url).database
        if database and database != ":memory:" and not database.startswith("file:"):
            Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    async def __aenter__(self) -> "Database":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
