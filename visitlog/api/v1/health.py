"""Health check endpoint for the hosting platform monitor."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from litestar import Response, get
from litestar.datastructures import State
from litestar.status_codes import HTTP_200_OK, HTTP_503_SERVICE_UNAVAILABLE
from sqlalchemy.ext.asyncio import AsyncEngine

from visitlog.db.health import database_available


@get("/_health", tags=["Health"])
async def health(db_engine: AsyncEngine, state: State) -> Response[dict[str, Any]]:
    """Report whether the database answers a liveness probe."""
    timestamp = datetime.now(timezone.utc).isoformat()
    if await database_available(db_engine, timeout=state.settings.database.probe_timeout):
        return Response(
            {"status": "ok", "database": "connected", "timestamp": timestamp},
            status_code=HTTP_200_OK,
        )
    return Response(
        {"status": "error", "database": "disconnected", "timestamp": timestamp},
        status_code=HTTP_503_SERVICE_UNAVAILABLE,
    )
