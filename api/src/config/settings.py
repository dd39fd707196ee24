"""Service settings for the progress API, loaded with Pydantic Settings.

Every field can be set from the environment (case-insensitive) or a ``.env``
file next to the working directory. The player-side client has its own
settings class in ``src.client.config``.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Progress API settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Service
    # ==========================================================================

    app_name: str = Field(default="watchtrack", description="Service name")
    app_version: str = Field(default="0.1.0", description="Service version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(
        default=False, description="Expose /docs outside development"
    )

    # ==========================================================================
    # Bearer tokens (issued elsewhere, verified here)
    # ==========================================================================

    auth_secret_key: str = Field(
        default="dev-jwt-secret-key-change-in-production-32chars!",
        min_length=32,
        description="HMAC key shared with the token issuer",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    auth_access_token_expire_minutes: int = Field(
        default=15, description="Lifetime of tokens minted by create_access_token"
    )

    # ==========================================================================
    # Progress merge serialisation
    # ==========================================================================

    redis_enabled: bool = Field(
        default=True, description="Back progress locks with Redis when reachable"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0", description="Redis URL for progress locks"
    )
    redis_max_connections: int = Field(default=10, description="Pool size")
    redis_socket_timeout: float = Field(default=5.0, description="Socket timeout (s)")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Connect timeout (s)"
    )
    progress_lock_timeout: float = Field(
        default=10.0, gt=0, description="Seconds before a held progress lock expires"
    )
    progress_lock_blocking_timeout: float = Field(
        default=5.0, gt=0, description="Seconds an update waits for the lock"
    )

    # ==========================================================================
    # Cassandra (progress rows and the video catalog)
    # ==========================================================================

    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Contact points"
    )
    cassandra_port: int = Field(default=9042, description="Native protocol port")
    cassandra_keyspace: str = Field(default="watchtrack", description="Keyspace")
    cassandra_username: str | None = Field(default=None, description="User")
    cassandra_password: str | None = Field(default=None, description="Password")
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout (s)"
    )
    cassandra_request_timeout: float = Field(
        default=10.0, description="Per-query timeout (s)"
    )
    cassandra_datacenter: str = Field(
        default="datacenter1", description="Local datacenter for replication"
    )
    cassandra_replication_factor: int = Field(
        default=1, ge=1, description="Replicas per row in the local datacenter"
    )

    # ==========================================================================
    # Logging
    # ==========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Root log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Console renderer"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Add module/function/line to each event"
    )
    log_dir: str = Field(default="logs", description="Directory for JSON log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Rotate log files at this size"
    )
    log_file_backup_count: int = Field(
        default=5, description="Rotated files kept per log"
    )
    log_requests: bool = Field(
        default=True, description="Log request_started/request_completed"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths never logged by the request middleware",
    )

    # ==========================================================================
    # CORS (players are served from other origins)
    # ==========================================================================

    cors_origins: list[str] = Field(default=["*"], description="Allowed origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "DELETE", "OPTIONS"], description="Allowed methods"
    )
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="Preflight cache (s)")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cassandra_replication(self) -> dict[str, str | int]:
        """Replication map used when the keyspace is created."""
        if self.is_production:
            return {
                "class": "NetworkTopologyStrategy",
                self.cassandra_datacenter: self.cassandra_replication_factor,
            }
        return {
            "class": "SimpleStrategy",
            "replication_factor": self.cassandra_replication_factor,
        }

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def docs_enabled(self) -> bool:
        """Whether the OpenAPI schema and docs pages are served."""
        return self.debug or self.is_development

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
