"""End-to-end tests for the HTTP surface against a SQLite store."""
import math
from datetime import datetime

import httpx
import pytest
from advanced_alchemy.exceptions import RepositoryError
from litestar.testing import TestClient

from visitlog.config import DatabaseSettings, RateLimitSettings, Settings
from visitlog.domain.visits.repositories import VisitRepository
from visitlog.server.core import create_app
from visitlog.server.ratelimit import RATE_LIMIT_MESSAGE

from conftest import PUBLIC_IP, ProviderStub

NOT_AVAILABLE = {
    "city": "N/A",
    "region": "N/A",
    "country": "N/A",
    "latitude": "N/A",
    "longitude": "N/A",
}


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def visit_from(client: TestClient, ip: str, user_agent: str = "pytest-agent") -> httpx.Response:
    return client.get("/api/client-info", headers={"X-Forwarded-For": ip, "User-Agent": user_agent})


def test_root_banner(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.text == "App is running and connected to the database."
    assert response.headers["content-type"].startswith("text/plain")


def test_security_headers(client: TestClient) -> None:
    response = client.get("/")

    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "SAMEORIGIN"
    assert response.headers["referrer-policy"] == "no-referrer"
    assert "https://ipapi.co" in response.headers["content-security-policy"]


def test_favicon_is_empty(client: TestClient) -> None:
    response = client.get("/favicon.ico")

    assert response.status_code == 204
    assert response.content == b""


def test_log_viewer_page(client: TestClient) -> None:
    response = client.get("/logs")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "/api/logs" in response.text


def test_health_ok(client: TestClient) -> None:
    response = client.get("/_health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"] == "connected"
    assert datetime.fromisoformat(body["timestamp"]).tzinfo is not None
    assert "ratelimit-limit" not in response.headers


def test_health_reports_unreachable_store(client: TestClient, monkeypatch) -> None:
    async def unavailable(engine, timeout: float = 5.0) -> bool:
        return False

    monkeypatch.setattr("visitlog.api.v1.health.database_available", unavailable)

    response = client.get("/_health")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "error"
    assert body["database"] == "disconnected"
    datetime.fromisoformat(body["timestamp"])


def test_client_info_from_loopback(client: TestClient, provider: ProviderStub) -> None:
    response = visit_from(client, "127.0.0.1")

    assert response.status_code == 200
    assert response.json() == {
        "ip": "localhost",
        "userAgent": "pytest-agent",
        "locationData": NOT_AVAILABLE,
    }
    assert provider.requests == []


def test_client_info_without_user_agent(client: TestClient) -> None:
    response = client.get("/api/client-info", headers={"X-Forwarded-For": "::1", "User-Agent": ""})

    assert response.json()["userAgent"] == "Unknown"


def test_client_info_geolocates_and_logs_visit(client: TestClient, provider: ProviderStub) -> None:
    visit_from(client, "127.0.0.1")
    response = visit_from(client, f"{PUBLIC_IP}, 10.0.0.1")

    assert response.status_code == 200
    body = response.json()
    assert body["ip"] == PUBLIC_IP
    assert body["locationData"] == {
        "city": "Mountain View",
        "region": "California",
        "country": "United States",
        "latitude": "37.4056",
        "longitude": "-122.0775",
    }
    assert len(provider.requests) == 1

    logs = client.get("/api/logs").json()
    assert logs["totalRecords"] == 2
    assert logs["currentPage"] == 1
    assert logs["totalPages"] == 1
    newest, oldest = logs["logs"]
    assert newest["ip"] == PUBLIC_IP
    assert newest["city"] == "Mountain View"
    assert newest["user_agent"] == "pytest-agent"
    assert oldest["ip"] == "localhost"
    assert oldest["country"] == "N/A"


def test_client_info_survives_geolocation_failure(client: TestClient, provider: ProviderStub) -> None:
    provider.failure = httpx.ReadTimeout("provider timed out")

    response = visit_from(client, PUBLIC_IP)

    assert response.status_code == 200
    assert response.json()["locationData"] == NOT_AVAILABLE
    assert client.get("/api/logs").json()["totalRecords"] == 1


def test_client_info_survives_storage_failure(client: TestClient, monkeypatch) -> None:
    async def broken_add(self, *args, **kwargs):
        raise RepositoryError("insert failed")

    monkeypatch.setattr(VisitRepository, "add", broken_add)

    response = visit_from(client, PUBLIC_IP)

    assert response.status_code == 200
    assert response.json()["ip"] == PUBLIC_IP
    assert response.json()["locationData"]["city"] == "Mountain View"


@pytest.mark.parametrize("page", ["0", "-1", "abc", "1.5"])
def test_logs_rejects_invalid_page(client: TestClient, page: str) -> None:
    response = client.get("/api/logs", params={"page": page})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid page number. Must be a positive integer."}


@pytest.mark.parametrize("limit", ["0", "101", "abc"])
def test_logs_rejects_invalid_limit(client: TestClient, limit: str) -> None:
    response = client.get("/api/logs", params={"limit": limit})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid limit. Must be between 1 and 100."}


def test_logs_empty_store(client: TestClient) -> None:
    response = client.get("/api/logs")

    assert response.status_code == 200
    assert response.json() == {"totalRecords": 0, "currentPage": 1, "totalPages": 0, "logs": []}


def test_logs_pagination(client: TestClient) -> None:
    for n in range(5):
        visit_from(client, f"203.0.113.{n}")

    for limit in (1, 2, 3, 5, 7, 100):
        for page in (1, 2, 3):
            body = client.get("/api/logs", params={"page": page, "limit": limit}).json()
            expected_rows = max(0, min(limit, 5 - (page - 1) * limit))
            assert body["totalRecords"] == 5
            assert body["totalPages"] == math.ceil(5 / limit)
            assert body["currentPage"] == page
            assert len(body["logs"]) == expected_rows <= limit

    ips = [row["ip"] for row in client.get("/api/logs", params={"limit": 2, "page": 2}).json()["logs"]]
    assert ips == ["203.0.113.2", "203.0.113.1"]


def test_logs_store_failure(client: TestClient, monkeypatch) -> None:
    async def broken_list_page(self, page: int, page_size: int):
        raise RepositoryError("select failed")

    monkeypatch.setattr(VisitRepository, "list_page", broken_list_page)

    response = client.get("/api/logs")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}


def test_api_responses_carry_rate_limit_headers(client: TestClient) -> None:
    response = client.get("/api/logs")

    assert response.headers["ratelimit-limit"] == "100"
    assert response.headers["ratelimit-remaining"] == "99"


def test_rate_limit_rejects_and_recovers(sqlite_url: str, geolocation_client) -> None:
    settings = Settings(
        database=DatabaseSettings(DATABASE_URL=sqlite_url, pool_disabled=True),
        rate_limit=RateLimitSettings(max_requests=3, window_seconds=900),
    )
    app = create_app(settings, geolocation_client=geolocation_client)
    clock = FakeClock()
    app.state.rate_limiter.clock = clock

    with TestClient(app=app) as client:
        for _ in range(3):
            assert client.get("/api/logs").status_code == 200

        rejected = client.get("/api/logs")
        assert rejected.status_code == 429
        assert rejected.text == RATE_LIMIT_MESSAGE
        assert rejected.headers["retry-after"] == "900"
        assert rejected.headers["ratelimit-remaining"] == "0"

        # Routes outside /api are not limited
        assert client.get("/_health").status_code == 200

        clock.now += 901
        assert client.get("/api/logs").status_code == 200


def test_rate_limit_disabled(sqlite_url: str, geolocation_client) -> None:
    settings = Settings(
        database=DatabaseSettings(DATABASE_URL=sqlite_url, pool_disabled=True),
        rate_limit=RateLimitSettings(enabled=False),
    )
    app = create_app(settings, geolocation_client=geolocation_client)

    with TestClient(app=app) as client:
        response = client.get("/api/logs")

    assert app.state.rate_limiter is None
    assert "ratelimit-limit" not in response.headers


@pytest.mark.parametrize("header", ["1.2.3.4\t5", "8.8.8.8/../../admin?x=", "not-an-ip"])
def test_client_info_ignores_malformed_forwarded_for(
    client: TestClient, provider: ProviderStub, header: str
) -> None:
    response = client.get("/api/client-info", headers={"X-Forwarded-For": header})

    assert response.status_code == 200
    # TestClient's socket address is not an IP either
    assert response.json()["ip"] == "Unknown"
    assert response.json()["locationData"] == NOT_AVAILABLE
    assert provider.requests == []
    assert client.get("/api/logs").json()["logs"][0]["ip"] == "Unknown"


def test_client_info_survives_unexpected_storage_error(client: TestClient, monkeypatch) -> None:
    async def broken_add(self, *args, **kwargs):
        raise RuntimeError("listener blew up")

    monkeypatch.setattr(VisitRepository, "add", broken_add)

    response = visit_from(client, PUBLIC_IP)

    assert response.status_code == 200
    assert response.json()["ip"] == PUBLIC_IP


def test_logs_rejects_page_beyond_offset_range(client: TestClient) -> None:
    response = client.get("/api/logs", params={"page": "99999999999999999999"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid page number. Must be a positive integer."}


def test_logs_accepts_signed_and_padded_integers(client: TestClient) -> None:
    response = client.get("/api/logs", params={"page": "+2", "limit": " 5 "})

    assert response.status_code == 200
    assert response.json()["currentPage"] == 2
