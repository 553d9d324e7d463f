"""Database liveness probe shared by startup and the health endpoint."""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


async def ping_database(engine: "AsyncEngine", timeout: float = 5.0) -> None:
    """Run ``SELECT 1`` against the engine, raising on failure or timeout."""

    async def _probe() -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    await asyncio.wait_for(_probe(), timeout=timeout)


async def database_available(engine: "AsyncEngine", timeout: float = 5.0) -> bool:
    """Return True if the database accepts connections; False otherwise."""
    try:
        await ping_database(engine, timeout=timeout)
        return True
    except Exception as e:
        logger.warning("Database unavailable: %s", e)
        return False
