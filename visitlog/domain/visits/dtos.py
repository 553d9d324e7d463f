"""DTOs for visit capture and log viewer responses."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from litestar.dto import DataclassDTO, DTOConfig

from visitlog.domain.visits.models import NOT_AVAILABLE


@dataclass
class LocationData:
    """Geolocation result; every field falls back to "N/A"."""

    city: str = NOT_AVAILABLE
    region: str = NOT_AVAILABLE
    country: str = NOT_AVAILABLE
    latitude: str = NOT_AVAILABLE
    longitude: str = NOT_AVAILABLE


@dataclass
class ClientInfo:
    """Response of the capture endpoint."""

    ip: str
    user_agent: str
    location_data: LocationData = field(default_factory=LocationData)


@dataclass
class LogsPage:
    """One page of the visit log."""

    total_records: int
    current_page: int
    total_pages: int
    logs: list[dict[str, Any]] = field(default_factory=list)


class ClientInfoDTO(DataclassDTO[ClientInfo]):
    """Data transfer object for ClientInfo."""

    config = DTOConfig(rename_strategy="camel")


class LogsPageDTO(DataclassDTO[LogsPage]):
    """Data transfer object for LogsPage."""

    config = DTOConfig(rename_strategy="camel")
