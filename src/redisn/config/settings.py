"""Configuration management with Pydantic Settings.

Environment variables are loaded from:
1. Environment variables (highest priority)
2. .env file (development)
3. Defaults (lowest priority)
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Logging format."""

    JSON = "json"
    TEXT = "text"


class RedisSettings(BaseSettings):
    """Redis connection and pool configuration."""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: str | None = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")

    max_connections: int = Field(default=10, description="Pool size")
    pool_timeout_seconds: float | None = Field(
        default=None,
        description="Wait this long for a free pooled connection (None = fail fast)",
    )
    socket_timeout: float | None = Field(
        default=None,
        description="Read timeout; must stay None for long-lived subscriptions",
    )
    socket_connect_timeout: float = Field(default=5.0, description="Connect timeout")

    @field_validator("max_connections")
    @classmethod
    def validate_max_connections(cls, v: int) -> int:
        """Ensure the pool can hold at least one connection."""
        return max(1, v)

    @property
    def url(self) -> str:
        """Build Redis URL."""
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class PubSubSettings(BaseSettings):
    """Subscription session behaviour."""

    model_config = SettingsConfigDict(env_prefix="PUBSUB_")

    shutdown_timeout_seconds: float = Field(
        default=5.0,
        description="How long aclose() waits for a cancelled dispatcher",
    )
    discard_connection_on_error: bool = Field(
        default=True,
        description="Disconnect before returning a connection after abnormal termination",
    )


class Settings(BaseSettings):
    """Main settings.

    All settings can be overridden via environment variables.
    For nested settings, use the appropriate prefix (e.g., REDIS_HOST).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="redisn", description="Application name")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        alias="ENV",
        description="Deployment environment",
    )

    # Logging configuration
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Logging format")

    # Nested settings
    redis: RedisSettings = Field(default_factory=RedisSettings)
    pubsub: PubSubSettings = Field(default_factory=PubSubSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses LRU cache to avoid re-parsing environment variables.
    """
    return Settings()
