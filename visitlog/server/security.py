"""Security response headers applied to every HTTP response."""
from __future__ import annotations

from typing import TYPE_CHECKING

from litestar.datastructures import MutableScopeHeaders
from litestar.enums import ScopeType
from litestar.middleware import AbstractMiddleware

if TYPE_CHECKING:
    from litestar.types import ASGIApp, Message, Receive, Scope, Send


def build_content_security_policy(connect_origins: tuple[str, ...] = ()) -> str:
    """Allow self plus the jsDelivr CDN used by the log viewer page."""
    directives = {
        "default-src": ["'self'"],
        "style-src": ["'self'", "'unsafe-inline'", "https://cdn.jsdelivr.net"],
        "script-src": ["'self'", "'unsafe-inline'"],
        "font-src": ["'self'", "https://cdn.jsdelivr.net"],
        "img-src": ["'self'", "data:", "https:"],
        "connect-src": ["'self'", "https://cdn.jsdelivr.net", *connect_origins],
        "base-uri": ["'self'"],
        "form-action": ["'self'"],
        "frame-ancestors": ["'self'"],
        "object-src": ["'none'"],
    }
    return "; ".join(f"{name} {' '.join(sources)}" for name, sources in directives.items())


class SecurityHeadersMiddleware(AbstractMiddleware):
    """Add hardening headers without overriding ones a handler already set."""

    scopes = {ScopeType.HTTP}

    def __init__(self, app: "ASGIApp", connect_origins: tuple[str, ...] = ()) -> None:
        super().__init__(app)
        self.security_headers = {
            "Content-Security-Policy": build_content_security_policy(connect_origins),
            "Cross-Origin-Opener-Policy": "same-origin",
            "Cross-Origin-Resource-Policy": "same-origin",
            "Referrer-Policy": "no-referrer",
            "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
            "X-Content-Type-Options": "nosniff",
            "X-DNS-Prefetch-Control": "off",
            "X-Frame-Options": "SAMEORIGIN",
        }

    async def __call__(self, scope: "Scope", receive: "Receive", send: "Send") -> None:
        async def send_wrapper(message: "Message") -> None:
            if message["type"] == "http.response.start":
                headers = MutableScopeHeaders.from_message(message=message)
                for name, value in self.security_headers.items():
                    if headers.get(name) is None:
                        headers[name] = value
            await send(message)

        await self.app(scope, receive, send_wrapper)
