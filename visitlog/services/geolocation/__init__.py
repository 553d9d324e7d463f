"""Geolocation module - HTTP lookups only, no database operations."""
from .client import GeolocationClient, parse_provider_payload

__all__ = ["GeolocationClient", "parse_provider_payload"]
