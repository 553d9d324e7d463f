"""Central route registration."""
from litestar import Router
from litestar.middleware import DefineMiddleware
from litestar.types import ControllerRouterHandler

from visitlog.api.v1.health import health
from visitlog.api.v1.pages import favicon, index, logs_page
from visitlog.api.v1.visits_controller import VisitController
from visitlog.config.settings import RateLimitSettings
from visitlog.server.ratelimit import RateLimitMiddleware, SlidingWindowRateLimiter


def get_route_handlers(
    limiter: SlidingWindowRateLimiter | None,
    rate_limit_settings: RateLimitSettings,
) -> list[ControllerRouterHandler]:
    """Get all route handlers for the application.

    The ``/api`` routes share a single rate limiter when one is given.
    """
    api_middleware = []
    if limiter is not None:
        api_middleware.append(
            DefineMiddleware(
                RateLimitMiddleware,
                limiter=limiter,
                trust_forwarded_for=rate_limit_settings.trust_forwarded_for,
            )
        )

    api_router = Router(
        path="/api",
        route_handlers=[VisitController],
        middleware=api_middleware,
    )
    return [
        index,
        health,
        favicon,
        logs_page,
        api_router,
    ]
