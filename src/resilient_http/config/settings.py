"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated defaults from environment variables.

Example:
    >>> from resilient_http.config import get_settings
    >>> settings = get_settings()
    >>> settings.retry.max_retries
    0

    # Or with environment variables:
    # RESILIENT_HTTP_RETRY_MAX_RETRIES=3
    # RESILIENT_HTTP_RETRY_STRATEGY=exponential
    # RESILIENT_HTTP_HTTP_TIMEOUT=10
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, NonNegativeFloat, NonNegativeInt, PositiveFloat, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..retry.backoff import Backoff, ConstantBackoff, ExponentialBackoff


class RetrySettings(BaseSettings):
    """Default retry configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RESILIENT_HTTP_RETRY_",
        extra="ignore",
    )

    max_retries: NonNegativeInt = 0
    strategy: Literal["constant", "exponential"] = "constant"
    interval: NonNegativeFloat = Field(default=0.0, description="Base interval in seconds")
    base: NonNegativeFloat = Field(default=2.0, description="Exponential growth factor")

    @field_validator("strategy", mode="before")
    @classmethod
    def _normalize_strategy(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v

    def build_backoff(self) -> Backoff:
        """Backoff strategy described by these settings."""
        if self.strategy == "exponential":
            return ExponentialBackoff(interval=self.interval, base=self.base)
        return ConstantBackoff(self.interval)


class HttpSettings(BaseSettings):
    """Defaults for the httpx client created when no executor is supplied."""

    model_config = SettingsConfigDict(
        env_prefix="RESILIENT_HTTP_HTTP_",
        extra="ignore",
    )

    timeout: PositiveFloat = Field(default=30.0, description="Default transport timeout")
    verify_ssl: bool = True
    follow_redirects: bool = True
    user_agent: str = "resilient-http/1.0"


class LoggingSettings(BaseSettings):
    """Logging configuration.

    Applied on the first log call unless configure_logging() ran before.
    """

    model_config = SettingsConfigDict(
        env_prefix="RESILIENT_HTTP_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class ResilientHttpSettings(BaseSettings):
    """Root settings.

    Loads configuration from environment variables with the RESILIENT_HTTP_
    prefix. Supports nested configuration and .env files.
    """

    model_config = SettingsConfigDict(
        env_prefix="RESILIENT_HTTP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    retry: RetrySettings = Field(default_factory=RetrySettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> ResilientHttpSettings:
    """Get the global settings instance (cached)."""
    return ResilientHttpSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
