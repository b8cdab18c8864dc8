# helpdesk_mini/backend/app/services/ratelimit.py
"""
Fixed window rate limiter.

One counter per key ("user:<id>" or "ip:<address>") with an explicit window
start. The first request after a window has elapsed opens a new window.
Every admitted or rejected check happens under a single lock, so the count
and the increment cannot race.

Requests over the limit are rejected outright with a retry-after hint; they
are never queued or delayed.
"""
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Depends, Request, Response

from ..auth import get_current_user
from ..config import RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW_SECONDS
from ..errors import RateLimited
from ..models.user import User

logger = logging.getLogger(__name__)

# Drop expired windows once the table grows past this many keys
PRUNE_THRESHOLD = 10_000


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""

    allowed: bool
    limit: int
    current_count: int
    remaining: int
    reset_after_seconds: int


@dataclass
class _Window:
    started_at: float
    count: int


class FixedWindowRateLimiter:
    def __init__(
        self,
        limit: int = RATE_LIMIT_REQUESTS,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitResult:
        """Count one request against `key` and decide whether to admit it."""
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                if len(self._windows) >= PRUNE_THRESHOLD:
                    self._prune(now)
                window = _Window(started_at=now, count=0)
                self._windows[key] = window

            reset_after = max(
                1, math.ceil(window.started_at + self.window_seconds - now)
            )

            if window.count >= self.limit:
                return RateLimitResult(
                    allowed=False,
                    limit=self.limit,
                    current_count=window.count,
                    remaining=0,
                    reset_after_seconds=reset_after,
                )

            window.count += 1
            return RateLimitResult(
                allowed=True,
                limit=self.limit,
                current_count=window.count,
                remaining=self.limit - window.count,
                reset_after_seconds=reset_after,
            )

    def get_counter(self, key: str) -> int:
        """Requests counted in the current window for `key`, without counting one."""
        with self._lock:
            window = self._windows.get(key)
            if window is None or self._clock() - window.started_at >= self.window_seconds:
                return 0
            return window.count

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def _prune(self, now: float) -> None:
        expired = [
            k
            for k, w in self._windows.items()
            if now - w.started_at >= self.window_seconds
        ]
        for k in expired:
            del self._windows[k]


limiter = FixedWindowRateLimiter()


def enforce(key: str, response: Response) -> None:
    result = limiter.check(key)

    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(result.reset_after_seconds)

    if not result.allowed:
        logger.warning("Rate limit exceeded for %s (limit=%d)", key, result.limit)
        raise RateLimited(retry_after=result.reset_after_seconds, limit=result.limit)


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limited_user(
    response: Response,
    current_user: User = Depends(get_current_user),
) -> User:
    """Authenticated caller, counted against their own window."""
    enforce(f"user:{current_user.id}", response)
    return current_user


def rate_limited_origin(request: Request, response: Response) -> None:
    """Unauthenticated routes (register/login) are keyed by network origin."""
    enforce(f"ip:{client_address(request)}", response)
