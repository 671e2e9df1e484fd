"""Dependency injection container for ConsultLink."""

from dataclasses import dataclass
from typing import Optional

from ..config.config_loader import ConfigLoader
from ..config.config_models import ConsultLinkConfig
from ..logging import ConsultLinkLogger
from ..persistence.database import Database
from ..persistence.sql_connection_repository import SqlConnectionRepository
from ..persistence.sql_participant_directory import SqlParticipantDirectory
from ..resilience import CircuitBreakerConfig, RetryConfig, StorageGuard
from ...domain.exceptions import StorageUnavailableError
from ...domain.services.connection_lifecycle import ConnectionLifecycleService
from ...domain.services.connection_projection import ConnectionProjectionService
from ...application.commands.create_connection import CreateConnectionHandler
from ...application.commands.update_connection_status import UpdateConnectionStatusHandler
from ...application.queries.get_connection import GetConnectionHandler
from ...application.queries.get_connection_stats import GetConnectionStatsHandler
from ...application.queries.get_connection_status import GetConnectionStatusHandler
from ...application.queries.list_connections import ListConnectionsHandler


@dataclass
class DIContainer:
    """
    Dependency injection container for ConsultLink.

    Assembles all components with proper dependency injection. Building
    the container opens nothing; call start() before handling requests
    and shutdown() afterwards, or use it as an async context manager.
    """

    # Configuration
    config: ConsultLinkConfig

    # Infrastructure
    database: Database
    connection_repo: SqlConnectionRepository
    participant_directory: SqlParticipantDirectory
    storage_guard: StorageGuard

    # Domain Services
    lifecycle_service: ConnectionLifecycleService
    projection_service: ConnectionProjectionService

    # Application Handlers
    create_connection_handler: CreateConnectionHandler
    update_status_handler: UpdateConnectionStatusHandler
    list_connections_handler: ListConnectionsHandler
    get_connection_handler: GetConnectionHandler
    get_status_handler: GetConnectionStatusHandler
    get_stats_handler: GetConnectionStatsHandler

    @classmethod
    def create(
        cls,
        config_path: Optional[str] = None,
        config: Optional[ConsultLinkConfig] = None,
        verbose: bool = False,
    ) -> "DIContainer":
        """
        Create and wire all dependencies.

        Args:
            config_path: Optional path to configuration file
            config: Ready configuration; skips loading when given
            verbose: Log at DEBUG to the console regardless of config

        Returns:
            DIContainer with all dependencies wired
        """
        if config is None:
            config = ConfigLoader.load(config_path)

        ConsultLinkLogger.configure(
            level="DEBUG" if verbose else config.logging.level,
            log_file=config.logging.file or None,
            console=config.logging.console or verbose,
            rotation=config.logging.rotation,
            retention_days=config.logging.retention_days,
        )

        # Infrastructure layer - Adapters
        database = Database(
            url=config.storage.url,
            echo=config.storage.echo,
            operation_timeout=config.storage.operation_timeout,
            pool_size=config.storage.pool_size,
            max_overflow=config.storage.max_overflow,
        )

        connection_repo = SqlConnectionRepository(database)
        participant_directory = SqlParticipantDirectory(database)

        retry_config = RetryConfig(
            max_retries=config.resilience.retry.max_retries,
            initial_delay=config.resilience.retry.initial_delay,
            max_delay=config.resilience.retry.max_delay,
            exponential_base=config.resilience.retry.exponential_base,
            jitter=config.resilience.retry.jitter,
            retryable_exceptions=(StorageUnavailableError,)
        )

        circuit_breaker_config = CircuitBreakerConfig(
            failure_threshold=config.resilience.circuit_breaker.failure_threshold,
            success_threshold=config.resilience.circuit_breaker.success_threshold,
            timeout=config.resilience.circuit_breaker.timeout,
        )

        storage_guard = StorageGuard(retry_config, circuit_breaker_config)

        # Domain services - Business logic
        lifecycle_service = ConnectionLifecycleService(connection_repo, participant_directory)
        projection_service = ConnectionProjectionService(connection_repo, participant_directory)

        # Application handlers - Use cases
        return cls(
            config=config,
            database=database,
            connection_repo=connection_repo,
            participant_directory=participant_directory,
            storage_guard=storage_guard,
            lifecycle_service=lifecycle_service,
            projection_service=projection_service,
            create_connection_handler=CreateConnectionHandler(lifecycle_service, storage_guard),
            update_status_handler=UpdateConnectionStatusHandler(lifecycle_service, storage_guard),
            list_connections_handler=ListConnectionsHandler(
                projection_service,
                storage_guard,
                default_limit=config.pagination.default_limit,
                max_limit=config.pagination.max_limit,
            ),
            get_connection_handler=GetConnectionHandler(lifecycle_service, storage_guard),
            get_status_handler=GetConnectionStatusHandler(lifecycle_service, storage_guard),
            get_stats_handler=GetConnectionStatsHandler(projection_service, storage_guard),
        )

    async def start(self) -> None:
        """Open the database and create the schema if configured to."""
        await self.database.open()
        if self.config.storage.create_schema:
            await self.database.create_schema()

    async def shutdown(self) -> None:
        """Release the engine and its pool."""
        await self.database.close()

    async def __aenter__(self) -> "DIContainer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    def __repr__(self) -> str:
        """String representation."""
        return f"<DIContainer: {self.config.storage.url}>"
