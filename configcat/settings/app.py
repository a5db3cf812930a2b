"""SDK settings powered by Pydantic BaseSettings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from configcat.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_CACHE_EXPIRY_SECONDS,
    DEFAULT_MAX_INIT_WAIT_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
)
from configcat.policy.models import (
    AutoPollPolicy,
    FetchPolicy,
    LazyLoadPolicy,
    ManualPolicy,
)


class ConfigCatSettings(BaseSettings):
    """Environment configuration for a client."""

    model_config = SettingsConfigDict(
        env_prefix="CONFIGCAT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    sdk_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    policy: Literal["manual", "auto", "lazy"] = "auto"
    poll_interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    max_init_wait_seconds: float = Field(default=DEFAULT_MAX_INIT_WAIT_SECONDS, ge=0)
    cache_expiry_seconds: float = Field(default=DEFAULT_CACHE_EXPIRY_SECONDS, ge=0)
    request_timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0
    )

    def fetch_policy(self) -> FetchPolicy:
        """Build the fetch policy described by these settings."""
        if self.policy == "manual":
            return ManualPolicy()
        if self.policy == "lazy":
            return LazyLoadPolicy(cache_expiry_seconds=self.cache_expiry_seconds)
        return AutoPollPolicy(
            poll_interval_seconds=self.poll_interval_seconds,
            max_init_wait_seconds=self.max_init_wait_seconds,
        )


def get_settings() -> ConfigCatSettings:
    """Get a settings instance."""
    return ConfigCatSettings()
