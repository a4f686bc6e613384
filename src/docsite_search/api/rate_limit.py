"""
Rate Limiting

Per-client request budgets and progressive slow-down for the public gateway.

- ``RequestLimiter``: fixed budget per rolling (moving) window, backed by the
  ``limits`` in-memory storage. Exhausting it yields a 429.
- ``SlowDown``: once a client exceeds a free allowance within the window,
  each further request is delayed proportionally to its hit count, capped.

Both are mutated synchronously inside a request, so on the single event loop
every client's counters update atomically.
"""

from __future__ import annotations

import logging
import math
import time

from fastapi import Request
from limits import RateLimitItemPerSecond, parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from ..config import settings
from ..core.errors import RateLimitExceededError

logger = logging.getLogger("docsearch.ratelimit")


def get_client_ip(request: Request) -> str:
    """
    Client address used as the rate-limit key.

    Forwarded headers are honoured only when ``trust_proxy_headers`` is set,
    otherwise any caller could pick their own key.
    """
    if settings.trust_proxy_headers:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

    return request.client.host if request.client else "unknown"


class RequestLimiter:
    """
    Moving-window request budget, e.g. ``"30/minute"``, per client key.
    """

    def __init__(self, name: str, limit: str) -> None:
        self.name = name
        self.item = parse(limit)
        self._storage = MemoryStorage()
        self._strategy = MovingWindowRateLimiter(self._storage)

    def hit(self, key: str) -> None:
        """
        Consume one request from ``key``'s budget.

        Raises
        ------
        RateLimitExceededError
            If the budget for the current window is exhausted.
        """
        if self._strategy.hit(self.item, self.name, key):
            return

        reset_time, _remaining = self._strategy.get_window_stats(self.item, self.name, key)
        retry_after = max(1, math.ceil(reset_time - time.time()))
        logger.info("Rate limit %s exceeded for %s", self.name, key)
        raise RateLimitExceededError(retry_after=retry_after)

    def reset(self) -> None:
        self._storage.reset()


class SlowDown:
    """
    Progressive delay for sustained high-frequency callers.

    The ``n``-th request inside the window waits ``n * step_ms`` once ``n``
    exceeds ``delay_after``, never more than ``max_delay_ms``.

    Hits are counted in a moving window on the ``limits`` memory storage,
    which expires idle clients on its own. Counting stops at the hit that
    reaches the maximum delay.
    """

    def __init__(
        self,
        window: float,
        delay_after: int,
        step_ms: int,
        max_delay_ms: int,
    ) -> None:
        self.window = window
        self.delay_after = delay_after
        self.step_ms = step_ms
        self.max_delay_ms = max_delay_ms

        ceiling = math.ceil(max_delay_ms / step_ms) if step_ms > 0 else 0
        self.item = RateLimitItemPerSecond(
            max(delay_after + 1, ceiling),
            max(1, math.ceil(window)),
        )
        self._storage = MemoryStorage()
        self._strategy = MovingWindowRateLimiter(self._storage)

    def count(self, key: str) -> int:
        """Requests from ``key`` inside the current window."""
        _reset_time, remaining = self._strategy.get_window_stats(self.item, "slowdown", key)
        return self.item.amount - remaining

    def register(self, key: str) -> float:
        """Record a request and return the delay to apply, in seconds."""
        self._strategy.hit(self.item, "slowdown", key)

        count = self.count(key)
        if count <= self.delay_after:
            return 0.0
        return min(count * self.step_ms, self.max_delay_ms) / 1000.0

    def reset(self) -> None:
        self._storage.reset()


# ---------------------------------------------------------------------
# Gateway singletons
# ---------------------------------------------------------------------

search_limiter = RequestLimiter("search", settings.search_rate_limit)
status_limiter = RequestLimiter("status", settings.status_rate_limit)
search_slowdown = SlowDown(
    window=settings.slowdown_window,
    delay_after=settings.slowdown_after,
    step_ms=settings.slowdown_step_ms,
    max_delay_ms=settings.slowdown_max_ms,
)


def reset_all() -> None:
    search_limiter.reset()
    status_limiter.reset()
    search_slowdown.reset()
