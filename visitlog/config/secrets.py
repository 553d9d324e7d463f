"""Database URL resolution strategies.

Which strategy runs is decided once, from ``Settings.environment``:
production reads the connection string from Google Secret Manager, every
other environment takes it from local configuration.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Protocol

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import secretmanager

from visitlog.config.settings import normalize_database_url

if TYPE_CHECKING:
    from visitlog.config.settings import SecretSettings, Settings

logger = logging.getLogger(__name__)


class SecretResolutionError(RuntimeError):
    """Raised when a required secret cannot be resolved."""


class DatabaseUrlSource(Protocol):
    """Anything that can produce the database connection string."""

    def resolve(self) -> str: ...


class LocalDatabaseUrlSource:
    """Read the database URL from environment/.env configuration."""

    def __init__(self, settings: "Settings") -> None:
        self.settings = settings

    def resolve(self) -> str:
        return self.settings.database.url


class SecretManagerDatabaseUrlSource:
    """Fetch the database URL from Google Secret Manager."""

    def __init__(
        self,
        secret_settings: "SecretSettings",
        client_factory: Callable[[], secretmanager.SecretManagerServiceClient] = secretmanager.SecretManagerServiceClient,
    ) -> None:
        self.secret_settings = secret_settings
        self.client_factory = client_factory

    @property
    def secret_version_name(self) -> str:
        if not self.secret_settings.project_id:
            raise SecretResolutionError(
                "GOOGLE_CLOUD_PROJECT is not set; cannot locate secret "
                f"'{self.secret_settings.database_url_secret}'"
            )
        return (
            f"projects/{self.secret_settings.project_id}"
            f"/secrets/{self.secret_settings.database_url_secret}"
            f"/versions/{self.secret_settings.version}"
        )

    def resolve(self) -> str:
        name = self.secret_version_name
        logger.info("Fetching database URL from secret %s", name)
        try:
            client = self.client_factory()
            response = client.access_secret_version(request={"name": name})
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as exc:
            raise SecretResolutionError(f"Failed to access secret {name}: {exc}") from exc

        value = response.payload.data.decode("utf-8").strip()
        if not value:
            raise SecretResolutionError(f"Secret {name} is empty; DATABASE_URL is not set.")
        return normalize_database_url(value)


def select_database_url_source(settings: "Settings") -> DatabaseUrlSource:
    """Pick the URL resolution strategy for the configured environment."""
    if settings.is_production:
        return SecretManagerDatabaseUrlSource(settings.secrets)
    return LocalDatabaseUrlSource(settings)
