"""Per-client sliding window rate limiting.

The limiter object is created by the application factory and handed to the
middleware, so every rate limited route shares one set of counters.
"""
from __future__ import annotations

import logging
import math
import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from litestar.datastructures import MutableScopeHeaders
from litestar.enums import ScopeType
from litestar.exceptions import TooManyRequestsException
from litestar.middleware import AbstractMiddleware

from visitlog.server.client_ip import forwarded_for, socket_address

if TYPE_CHECKING:
    from litestar.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


@dataclass
class RateLimitDecision:
    """Outcome of one check against the limiter."""

    allowed: bool
    limit: int
    remaining: int
    reset_after: float


class SlidingWindowRateLimiter:
    """Bounded mapping of client key -> timestamps of recent requests.

    A request is allowed when fewer than ``max_requests`` hits fall inside the
    trailing ``window_seconds``. At most ``max_tracked_clients`` keys are
    remembered; the least recently seen key is evicted first.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        max_tracked_clients: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_tracked_clients = max_tracked_clients
        self.clock = clock
        self._hits: OrderedDict[str, deque[float]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._hits)

    def __contains__(self, key: object) -> bool:
        return key in self._hits

    def hit(self, key: str) -> RateLimitDecision:
        """Record a request for ``key`` if it is within the limit."""
        now = self.clock()
        hits = self._hits.get(key)
        if hits is None:
            hits = deque()
            self._hits[key] = hits
            self._evict()
        else:
            self._hits.move_to_end(key)

        window_start = now - self.window_seconds
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= self.max_requests:
            return RateLimitDecision(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset_after=hits[0] + self.window_seconds - now,
            )

        hits.append(now)
        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - len(hits),
            reset_after=hits[0] + self.window_seconds - now,
        )

    def reset(self) -> None:
        self._hits.clear()

    def _evict(self) -> None:
        while len(self._hits) > self.max_tracked_clients:
            self._hits.popitem(last=False)


class RateLimitMiddleware(AbstractMiddleware):
    """Reject clients that exceed the shared limiter with 429."""

    scopes = {ScopeType.HTTP}

    def __init__(
        self,
        app: "ASGIApp",
        limiter: SlidingWindowRateLimiter,
        trust_forwarded_for: bool = False,
    ) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.trust_forwarded_for = trust_forwarded_for

    def client_key(self, scope: "Scope") -> str:
        if self.trust_forwarded_for:
            forwarded = forwarded_for(scope)
            if forwarded:
                return forwarded
        return socket_address(scope) or "Unknown"

    async def __call__(self, scope: "Scope", receive: "Receive", send: "Send") -> None:
        key = self.client_key(scope)
        decision = self.limiter.hit(key)
        reset_seconds = str(max(math.ceil(decision.reset_after), 0))

        if not decision.allowed:
            logger.info("Rate limit exceeded for %s on %s", key, scope["path"])
            raise TooManyRequestsException(
                detail=RATE_LIMIT_MESSAGE,
                headers={
                    "Retry-After": reset_seconds,
                    "RateLimit-Limit": str(decision.limit),
                    "RateLimit-Remaining": "0",
                    "RateLimit-Reset": reset_seconds,
                },
            )

        async def send_wrapper(message: "Message") -> None:
            if message["type"] == "http.response.start":
                headers = MutableScopeHeaders.from_message(message=message)
                headers["RateLimit-Limit"] = str(decision.limit)
                headers["RateLimit-Remaining"] = str(decision.remaining)
                headers["RateLimit-Reset"] = reset_seconds
            await send(message)

        await self.app(scope, receive, send_wrapper)
