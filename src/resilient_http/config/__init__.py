"""Configuration management using pydantic-settings."""

from .settings import (
    HttpSettings,
    LoggingSettings,
    ResilientHttpSettings,
    RetrySettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "HttpSettings",
    "LoggingSettings",
    "ResilientHttpSettings",
    "RetrySettings",
    "clear_settings_cache",
    "get_settings",
]
