"""Services layer - external integrations."""
from .geolocation import GeolocationClient

__all__ = ["GeolocationClient"]
