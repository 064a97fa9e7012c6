"""Configuration management for credit-engine."""

import os
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from credit_engine.exceptions import ConfigurationError

T = TypeVar("T")


@dataclass
class CustomerServiceConfig:
    """Customer service endpoint and resilience policy."""

    base_url: str = "http://localhost:8081"
    timeout_seconds: float = 2.0
    max_attempts: int = 3
    retry_wait_initial: float = 0.5
    retry_wait_max: float = 4.0
    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    breaker_name: str = "customer-service"
    lookup_workers: int = 16

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive")
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if self.failure_threshold < 1:
            raise ConfigurationError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ConfigurationError("recovery_timeout must not be negative")
        if self.lookup_workers < 1:
            raise ConfigurationError("lookup_workers must be at least 1")


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "credits"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class EngineConfig:
    """Transaction engine tuning."""

    max_conflict_retries: int = 3

    def __post_init__(self) -> None:
        if self.max_conflict_retries < 0:
            raise ConfigurationError("max_conflict_retries must not be negative")


@dataclass
class CreditEngineConfig:
    """Main configuration for credit-engine."""

    customer_service: CustomerServiceConfig = field(default_factory=CustomerServiceConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "CreditEngineConfig":
        """Create config from environment variables."""
        customer_service = CustomerServiceConfig(
            base_url=os.getenv("CUSTOMER_SERVICE_URL", "http://localhost:8081"),
            timeout_seconds=_env("CUSTOMER_SERVICE_TIMEOUT", 2.0, float),
            max_attempts=_env("CUSTOMER_SERVICE_MAX_ATTEMPTS", 3, int),
            failure_threshold=_env("CUSTOMER_SERVICE_FAILURE_THRESHOLD", 5, int),
            recovery_timeout=_env("CUSTOMER_SERVICE_RECOVERY_TIMEOUT", 30.0, float),
            lookup_workers=_env("CUSTOMER_SERVICE_LOOKUP_WORKERS", 16, int),
        )

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=_env("POSTGRES_PORT", 5432, int),
            database=os.getenv("POSTGRES_DB", "credits"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        engine = EngineConfig(
            max_conflict_retries=_env("MAX_CONFLICT_RETRIES", 3, int),
        )

        return cls(
            customer_service=customer_service,
            postgres=postgres,
            engine=engine,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )


def _env(name: str, default: T, cast: Callable[[str], T]) -> T:
    """Read and convert an environment variable, keeping the default when unset."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from e
