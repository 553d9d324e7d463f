"""Application lifecycle hooks for startup and shutdown."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from visitlog.db.health import database_available
from visitlog.domain.visits.models import Visit
from visitlog.services.geolocation import GeolocationClient

if TYPE_CHECKING:
    from advanced_alchemy.extensions.litestar import SQLAlchemyAsyncConfig
    from litestar import Litestar

    from visitlog.config.settings import Settings

logger = logging.getLogger(__name__)


class DatabaseUnavailableError(RuntimeError):
    """Raised when the store cannot be reached during startup."""


async def on_startup(app: "Litestar") -> None:
    """Verify the database, ensure the schema and open the geolocation client.

    An unreachable database aborts startup: the server never starts serving.
    """
    settings: Settings = app.state.settings
    sqlalchemy_config: SQLAlchemyAsyncConfig = app.state.sqlalchemy_config
    engine = sqlalchemy_config.get_engine()

    if not await database_available(engine, timeout=settings.database.probe_timeout):
        logger.critical("Database is unreachable; refusing to start.")
        raise DatabaseUnavailableError("Database connection could not be established")
    logger.info("Database connection established successfully.")

    async with engine.begin() as conn:
        if settings.database.drop_on_startup:
            logger.warning("Dropping all tables on startup as per configuration.")
            await conn.run_sync(Visit.metadata.drop_all)
        await conn.run_sync(Visit.metadata.create_all)

    if app.state.get("geolocation_client") is None:
        app.state.geolocation_client = GeolocationClient(settings.geolocation)


async def on_shutdown(app: "Litestar") -> None:
    """Close outbound clients and the database engine.

    A failure while closing the store is logged and turned into a non-zero
    exit code, picked up by ``app.py`` once the server has stopped.
    """
    geolocation_client: GeolocationClient | None = app.state.get("geolocation_client")
    if geolocation_client:
        await geolocation_client.aclose()
        logger.info("Closed geolocation client")

    sqlalchemy_config: SQLAlchemyAsyncConfig = app.state.sqlalchemy_config
    try:
        await sqlalchemy_config.get_engine().dispose()
    except (SQLAlchemyError, OSError):
        logger.exception("Error closing database connection")
        app.state.exit_code = 1
        return
    logger.info("Database connection closed")
