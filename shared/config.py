"""
Shared configuration management for the dashboard data layer.
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.retry import RetryConfig


@dataclass
class FetchPolicy:
    """How one view caches, retries and refreshes its resources."""
    ttl: float = 300.0
    retry: RetryConfig = field(default_factory=RetryConfig)
    refetch_interval: Optional[float] = 300.0
    refetch_on_focus: bool = True


class DataLayerConfig(BaseSettings):
    """Data layer configuration, read from ``DASHBOARD_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Remote API
    api_base_url: str = Field(default="https://algo.skylith.cloud/api")
    request_timeout: float = Field(default=10.0)

    # Cache
    cache_ttl: float = Field(default=300.0)
    profile_cache_ttl: float = Field(default=120.0)
    cache_cleanup_interval: float = Field(default=600.0)

    # Retry (fixed delay)
    retry_count: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)

    # Background refresh; 0 disables the interval
    refetch_interval: float = Field(default=300.0, ge=0)
    refetch_on_focus: bool = Field(default=True)

    recent_users_limit: int = Field(default=5, gt=0)

    def retry_config(self) -> RetryConfig:
        return RetryConfig(retry_count=self.retry_count, delay=self.retry_delay)

    def dashboard_policy(self) -> FetchPolicy:
        """Policy for the admin dashboard view."""
        return FetchPolicy(
            ttl=self.cache_ttl,
            retry=self.retry_config(),
            refetch_interval=self.refetch_interval or None,
            refetch_on_focus=self.refetch_on_focus,
        )

    def profile_policy(self) -> FetchPolicy:
        """Policy for the user profile view (shorter TTL, no interval refresh)."""
        return FetchPolicy(
            ttl=self.profile_cache_ttl,
            retry=self.retry_config(),
            refetch_interval=None,
            refetch_on_focus=self.refetch_on_focus,
        )


def get_config(**overrides) -> DataLayerConfig:
    """Get data layer configuration."""
    return DataLayerConfig(**overrides)
