"""IP geolocation over HTTP.

One GET per lookup, no retries and no caching. Every failure mode collapses
into the all-"N/A" placeholder so callers never have to handle errors.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from visitlog.config.settings import GeolocationSettings
from visitlog.domain.visits.dtos import LocationData
from visitlog.domain.visits.models import NOT_AVAILABLE, UNKNOWN

logger = logging.getLogger(__name__)

LOCALHOST = "localhost"

# LocationData field -> provider response key
PROVIDER_FIELDS = {
    "city": "city",
    "region": "region",
    "country": "country_name",
    "latitude": "latitude",
    "longitude": "longitude",
}


def _field_value(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None or isinstance(value, (dict, list)):
        return NOT_AVAILABLE
    text = str(value).strip()
    return text or NOT_AVAILABLE


def parse_provider_payload(payload: Any) -> LocationData | None:
    """Map a provider JSON body onto LocationData.

    Returns None when the body is not usable at all (not an object, or an
    ipapi-style ``{"error": true}`` response). Individual missing fields fall
    back to "N/A".
    """
    if not isinstance(payload, dict):
        return None
    if payload.get("error"):
        logger.warning("Geolocation provider returned error: %s", payload.get("reason"))
        return None
    return LocationData(
        **{name: _field_value(payload, key) for name, key in PROVIDER_FIELDS.items()}
    )


class GeolocationClient:
    """Async client for the configured geolocation provider.

    Example:
        client = GeolocationClient(settings.geolocation)
        location = await client.lookup("8.8.8.8")
        await client.aclose()
    """

    def __init__(
        self,
        settings: GeolocationSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url_template = settings.url_template
        self.timeout = settings.timeout
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout)

    @staticmethod
    def should_lookup(ip: str) -> bool:
        """Sentinel addresses never leave the process."""
        return ip not in (LOCALHOST, UNKNOWN, "")

    async def lookup(self, ip: str) -> LocationData:
        """Resolve an IP address to a location, or placeholders on failure."""
        if not self.should_lookup(ip):
            return LocationData()

        url = self.url_template.format(ip=ip)
        try:
            response = await self._client.get(url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Geolocation API request failed for %s: %s", ip, e)
            return LocationData()
        except ValueError as e:
            logger.warning("Geolocation API returned malformed body for %s: %s", ip, e)
            return LocationData()

        return parse_provider_payload(payload) or LocationData()

    async def aclose(self) -> None:
        await self._client.aclose()
