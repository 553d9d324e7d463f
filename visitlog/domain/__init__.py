from .visits.models import Visit

__all__ = [
    "Visit",
]
