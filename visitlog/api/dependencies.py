"""Shared dependency providers for API layer."""
from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from litestar import Request
from litestar.params import Parameter

from visitlog.api.exceptions import InvalidPaginationError
from visitlog.domain.visits.repositories import VisitRepository
from visitlog.services.geolocation import GeolocationClient

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
# Largest OFFSET a 64-bit signed column type accepts
MAX_OFFSET = 2**63 - 1


@dataclass
class PageRequest:
    """Validated pagination parameters."""

    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _parse_int(value: str | None, default: int) -> int | None:
    """Parse a base-10 integer query value; None means "not an integer"."""
    if value is None:
        return default
    value = value.strip()
    if not INTEGER_PATTERN.fullmatch(value):
        return None
    return int(value)


def provide_page_request(
    page: str | None = Parameter(query="page", default=None, required=False),
    limit: str | None = Parameter(query="limit", default=None, required=False),
) -> PageRequest:
    """Validate ``page`` and ``limit`` query parameters.

    Parameters
    ----------
    page : str | None
        Page number (1-indexed), defaults to 1.
    limit : str | None
        Rows per page, between 1 and 100, defaults to 10.
    """
    page_number = _parse_int(page, 1)
    if page_number is None or page_number < 1:
        raise InvalidPaginationError(detail="Invalid page number. Must be a positive integer.")

    page_size = _parse_int(limit, DEFAULT_PAGE_SIZE)
    if page_size is None or not 1 <= page_size <= MAX_PAGE_SIZE:
        raise InvalidPaginationError(detail=f"Invalid limit. Must be between 1 and {MAX_PAGE_SIZE}.")

    request = PageRequest(page=page_number, limit=page_size)
    if request.offset > MAX_OFFSET:
        raise InvalidPaginationError(detail="Invalid page number. Must be a positive integer.")
    return request


async def provide_visit_repo(
    db_session: AsyncSession,
) -> VisitRepository:
    """Provide VisitRepository."""
    return VisitRepository(session=db_session)


def provide_geolocation_client(request: Request) -> GeolocationClient:
    """Provide the GeolocationClient opened at startup."""
    return request.app.state.geolocation_client
