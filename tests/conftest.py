import os
from collections.abc import Iterator
from pathlib import Path

import httpx
import pytest
from litestar import Litestar
from litestar.testing import TestClient

from visitlog.config import DatabaseSettings, Settings
from visitlog.server.core import create_app
from visitlog.services.geolocation import GeolocationClient

PUBLIC_IP = "8.8.8.8"

PROVIDER_PAYLOAD = {
    "ip": PUBLIC_IP,
    "city": "Mountain View",
    "region": "California",
    "country_name": "United States",
    "latitude": 37.4056,
    "longitude": -122.0775,
}


@pytest.fixture(scope="session", autouse=True)
def baseline_settings_env():
    """Provide baseline env vars so tests are not affected by local .env.

    Pydantic-settings precedence: init args > env vars > .env > defaults.
    Setting these ensures stable defaults regardless of any .env present.
    """
    for name in ("DATABASE_URL", "DB_URL", "PORT", "GOOGLE_CLOUD_PROJECT"):
        os.environ.pop(name, None)
    os.environ.update({
        # App
        "APP_NAME": "VisitLog API",
        "APP_VERSION": "0.1.0",
        "APP_DEBUG": "false",
        "APP_ENVIRONMENT": "development",
        # API
        "API_HOST": "0.0.0.0",
        "API_PORT": "8080",
        "API_WORKERS": "1",
        "API_RELOAD": "false",
        "API_LOG_LEVEL": "INFO",
        # Database
        "DB_USER": "postgres",
        "DB_PASSWORD": "postgres",
        "DB_HOST": "localhost",
        "DB_PORT": "5432",
        "DB_DATABASE": "visitlog",
        "DB_ECHO": "false",
        "DB_POOL_SIZE": "5",
        "DB_MAX_OVERFLOW": "10",
        "DB_DROP_ON_STARTUP": "false",
        # Rate limiting
        "RATE_LIMIT_ENABLED": "true",
        "RATE_LIMIT_MAX_REQUESTS": "100",
        "RATE_LIMIT_WINDOW_SECONDS": "900",
    })


@pytest.fixture(autouse=True)
def refresh_settings_cache():
    """Clear settings cache so env changes take effect per test.

    Ensures tests using monkeypatch.setenv() get a fresh Settings instance.
    """
    from visitlog.config.settings import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'visits.db'}"


@pytest.fixture
def settings(sqlite_url: str) -> Settings:
    """Settings pointing at a throwaway SQLite database."""
    return Settings(database=DatabaseSettings(DATABASE_URL=sqlite_url, pool_disabled=True))


class ProviderStub:
    """Geolocation provider double recording the requests it served.

    Set ``failure`` to an exception instance to make every call raise it.
    """

    def __init__(self, payload: dict | None = None) -> None:
        self.payload = PROVIDER_PAYLOAD if payload is None else payload
        self.failure: Exception | None = None
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.failure is not None:
            raise self.failure
        return httpx.Response(200, json=self.payload)


@pytest.fixture
def provider() -> ProviderStub:
    return ProviderStub()


@pytest.fixture
def geolocation_client(settings: Settings, provider: ProviderStub) -> GeolocationClient:
    return GeolocationClient(
        settings.geolocation,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(provider)),
    )


@pytest.fixture
def app(settings: Settings, geolocation_client: GeolocationClient) -> Litestar:
    return create_app(settings, geolocation_client=geolocation_client)


@pytest.fixture
def client(app: Litestar) -> Iterator[TestClient]:
    with TestClient(app=app) as test_client:
        yield test_client
