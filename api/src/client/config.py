"""Player-side sync settings using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncSettings(BaseSettings):
    """Sync client settings loaded from ``WATCHTRACK_SYNC_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="WATCHTRACK_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_base_url: str = Field(
        default="http://localhost:8000", description="Progress API base URL"
    )
    debounce_seconds: float = Field(
        default=1.0, ge=0, description="Window in which sync triggers coalesce"
    )
    heartbeat_seconds: float = Field(
        default=10.0, gt=0, description="Sync interval while playing"
    )
    retry_base_delay: float = Field(
        default=1.0, gt=0, description="First retry delay after a failed sync"
    )
    retry_max_delay: float = Field(
        default=60.0, gt=0, description="Upper bound for the retry delay"
    )
    request_timeout: float = Field(default=10.0, gt=0, description="HTTP timeout")
    teardown_timeout: float = Field(
        default=2.0, ge=0, description="Max wait for the final sync on teardown"
    )
    max_tick_jump: float = Field(
        default=10.0,
        gt=0,
        description="Forward tick step above which an unreported seek is assumed",
    )


@lru_cache
def get_sync_settings() -> SyncSettings:
    """Get cached sync settings instance."""
    return SyncSettings()
