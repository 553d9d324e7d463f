"""Application factory for creating Litestar app instance."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from litestar import Litestar
from litestar.config.compression import CompressionConfig
from litestar.datastructures import State
from litestar.exceptions import TooManyRequestsException
from litestar.middleware import DefineMiddleware
from litestar.middleware.logging import LoggingMiddlewareConfig
from litestar.openapi import OpenAPIConfig

from visitlog.api.exceptions import (
    VisitLogHTTPError,
    error_response_handler,
    rate_limit_response_handler,
)
from visitlog.config.secrets import SecretResolutionError, select_database_url_source
from visitlog.config.settings import Settings, get_settings
from visitlog.server import plugins
from visitlog.server.lifecycle import on_shutdown, on_startup
from visitlog.server.ratelimit import SlidingWindowRateLimiter
from visitlog.server.routes import get_route_handlers
from visitlog.server.security import SecurityHeadersMiddleware
from visitlog.services.geolocation import GeolocationClient

logger = logging.getLogger(__name__)


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def create_app(
    settings: Settings | None = None,
    geolocation_client: GeolocationClient | None = None,
) -> Litestar:
    """Create and configure the Litestar application.

    Startup order: settings are loaded, the database URL is resolved (from
    Secret Manager in production), then the SQLAlchemy plugin is built for
    that URL. Database liveness and schema creation happen in ``on_startup``
    before the server accepts connections.

    Args:
        settings: Settings to use instead of ``get_settings()``.
        geolocation_client: Pre-built client, otherwise one is opened on startup.

    Returns:
        Litestar: Configured application instance

    Raises:
        SecretResolutionError: If the database URL cannot be resolved.
    """
    settings = settings or get_settings()

    try:
        database_url = select_database_url_source(settings).resolve()
    except SecretResolutionError:
        logger.critical("Failed to initialize application: database URL unresolved", exc_info=True)
        raise

    sqlalchemy_config = plugins.create_sqlalchemy_config(database_url, settings.database)

    limiter = None
    if settings.rate_limit.enabled:
        limiter = SlidingWindowRateLimiter(
            max_requests=settings.rate_limit.max_requests,
            window_seconds=settings.rate_limit.window_seconds,
            max_tracked_clients=settings.rate_limit.max_tracked_clients,
        )

    openapi_config = OpenAPIConfig(
        title=settings.name,
        version=settings.version,
        description=settings.description,
        create_examples=True,
    )

    compression_config = CompressionConfig(
        backend="brotli",
        minimum_size=1000,  # Only compress responses >= 1KB
        brotli_quality=4,
    )

    logging_middleware_config = LoggingMiddlewareConfig()

    security_middleware = DefineMiddleware(
        SecurityHeadersMiddleware,
        connect_origins=(_origin(settings.geolocation.url_template),),
    )

    app = Litestar(
        debug=settings.debug,
        route_handlers=get_route_handlers(limiter, settings.rate_limit),
        on_startup=[on_startup],
        on_shutdown=[on_shutdown],
        plugins=[plugins.create_sqlalchemy_plugin(sqlalchemy_config)],
        state=State(
            {
                "settings": settings,
                "sqlalchemy_config": sqlalchemy_config,
                "rate_limiter": limiter,
                "geolocation_client": geolocation_client,
                "exit_code": 0,
            }
        ),
        exception_handlers={
            VisitLogHTTPError: error_response_handler,
            TooManyRequestsException: rate_limit_response_handler,
        },
        logging_config=plugins.create_logging_config(settings.api),
        openapi_config=openapi_config,
        compression_config=compression_config,
        middleware=[security_middleware, logging_middleware_config.middleware],
    )

    return app
