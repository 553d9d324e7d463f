"""HTTP errors rendered as ``{"error": ...}`` bodies."""
from __future__ import annotations

from litestar import Request, Response
from litestar.exceptions import HTTPException, TooManyRequestsException
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
)


class VisitLogHTTPError(HTTPException):
    """Base class for errors surfaced to API clients."""


class InvalidPaginationError(VisitLogHTTPError):
    status_code = HTTP_400_BAD_REQUEST


class LogsUnavailableError(VisitLogHTTPError):
    status_code = HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self) -> None:
        super().__init__(detail="Internal Server Error")


def error_response_handler(_: Request, exc: VisitLogHTTPError) -> Response:
    return Response(
        content={"error": exc.detail},
        status_code=exc.status_code,
        headers=exc.headers,
    )


def rate_limit_response_handler(_: Request, exc: TooManyRequestsException) -> Response:
    """Plain text 429, keeping the rate limit headers."""
    return Response(
        content=exc.detail,
        status_code=exc.status_code,
        media_type="text/plain",
        headers=exc.headers,
    )
