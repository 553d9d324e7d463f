"""Configuration module for VisitLog API."""

from visitlog.config.settings import (
    APISettings,
    DatabaseSettings,
    GeolocationSettings,
    RateLimitSettings,
    SecretSettings,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "APISettings",
    "DatabaseSettings",
    "GeolocationSettings",
    "RateLimitSettings",
    "SecretSettings",
]
