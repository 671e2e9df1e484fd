"""Configuration data models using Pydantic."""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StorageConfig(BaseModel):
    """Connection store configuration."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    url: str = Field(
        default="sqlite+aiosqlite:///./consultlink_data/connections.db",
        description="SQLAlchemy async database URL"
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement"
    )
    operation_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="Seconds a single storage operation may take before it is abandoned"
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connection pool size (ignored for SQLite)"
    )
    max_overflow: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Extra connections beyond pool_size (ignored for SQLite)"
    )
    create_schema: bool = Field(
        default=True,
        description="Create missing tables on startup"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Require a URL with a driver scheme."""
        if "://" not in v:
            raise ValueError("url must be a database URL such as sqlite+aiosqlite:///path.db")
        return v


class RetryConfigModel(BaseModel):
    """Retry logic configuration."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum number of retry attempts"
    )
    initial_delay: float = Field(
        default=0.2,
        ge=0.0,
        le=60.0,
        description="Initial delay in seconds before first retry"
    )
    max_delay: float = Field(
        default=5.0,
        ge=0.0,
        le=300.0,
        description="Maximum delay in seconds between retries"
    )
    exponential_base: float = Field(
        default=2.0,
        ge=1.0,
        le=3.0,
        description="Exponential backoff base"
    )
    jitter: float = Field(
        default=0.1,
        ge=0.0,
        le=0.5,
        description="Jitter factor (0.1 = up to 10% extra delay)"
    )


class CircuitBreakerConfigModel(BaseModel):
    """Circuit breaker configuration."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    failure_threshold: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of failures before opening circuit"
    )
    success_threshold: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Number of successes to close circuit from half-open"
    )
    timeout: float = Field(
        default=30.0,
        ge=0.0,
        le=600.0,
        description="Seconds to wait before transitioning to half-open"
    )


class ResilienceConfig(BaseModel):
    """Retry and circuit breaker settings for storage calls."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    retry: RetryConfigModel = Field(default_factory=RetryConfigModel)
    circuit_breaker: CircuitBreakerConfigModel = Field(default_factory=CircuitBreakerConfigModel)


class PaginationConfig(BaseModel):
    """Listing defaults."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    default_limit: int = Field(
        default=10,
        ge=1,
        description="Page size when none is given"
    )
    max_limit: int = Field(
        default=100,
        ge=1,
        description="Larger requested page sizes are clamped to this"
    )

    @model_validator(mode="after")
    def validate_limits(self):
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit must not exceed max_limit")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    file: str = Field(
        default="./consultlink_data/consultlink.log",
        description="Log file path (empty to disable file logging)"
    )
    console: bool = Field(
        default=False,
        description="Enable console logging on stderr"
    )
    rotation: str = Field(
        default="daily",
        description="Log rotation strategy (daily, none)"
    )
    retention_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Number of days to retain logs"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return v

    @field_validator('rotation')
    @classmethod
    def validate_rotation(cls, v):
        """Ensure rotation strategy is valid."""
        valid_strategies = ["daily", "none"]
        v = v.lower()
        if v not in valid_strategies:
            raise ValueError(f"rotation must be one of {valid_strategies}")
        return v


class ConsultLinkConfig(BaseModel):
    """Complete ConsultLink configuration."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    storage: StorageConfig = Field(default_factory=StorageConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def to_yaml(self) -> str:
        """Convert configuration to YAML string."""
        import yaml
        return yaml.dump(self.model_dump(), default_flow_style=False, sort_keys=False)
