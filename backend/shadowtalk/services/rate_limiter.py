"""
Fixed-window rate limiting for anonymous writes.

Each key (a user id or a client address) gets ``limit`` hits per ``window``
seconds; the window starts at the key's first hit. State is in-memory and
per process, like the rest of the realtime core.

``check`` reads and writes ``_windows`` with no ``await`` in between, so it
is atomic on the event loop.
"""

import logging
import math
import time
from dataclasses import dataclass

from fastapi import HTTPException, status

from shadowtalk.config import settings

logger = logging.getLogger(__name__)

MESSAGE_LIMIT_DETAIL = "Slow down! You are sending messages too quickly."
SESSION_LIMIT_DETAIL = "Too many session creation attempts, please try again later."


class RateLimitExceeded(HTTPException):
    def __init__(self, detail: str, retry_after: int) -> None:
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            headers={"Retry-After": str(retry_after)},
        )


class FixedWindowRateLimiter:
    def __init__(self, limit: int, window: float) -> None:
        if limit < 1 or window <= 0:
            raise ValueError("limit and window must be positive")
        self.limit = limit
        self.window = window
        # key -> (hits in window, window start)
        self._windows: dict[str, tuple[int, float]] = {}

    def acquire(self, key: str) -> bool:
        """Count one hit for ``key``. Returns False once the window is full."""
        now = time.monotonic()
        hits, started = self._windows.get(key, (0, now))
        if now - started >= self.window:
            hits, started = 0, now
        if hits >= self.limit:
            self._windows[key] = (hits, started)
            return False
        self._windows[key] = (hits + 1, started)
        return True

    def retry_after(self, key: str) -> int:
        """Whole seconds until ``key``'s window resets (0 if it is not limited)."""
        entry = self._windows.get(key)
        if entry is None:
            return 0
        remaining = self.window - (time.monotonic() - entry[1])
        return max(0, math.ceil(remaining))

    def check(self, key: str, detail: str) -> None:
        """``acquire`` or raise a 429 carrying Retry-After."""
        if self.acquire(key):
            return
        logger.info("rate limit hit for %s (%d per %ss)", key, self.limit, self.window)
        raise RateLimitExceeded(detail, self.retry_after(key))

    def prune(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = time.monotonic()
        expired = [k for k, (_, started) in self._windows.items() if now - started >= self.window]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


@dataclass
class RateLimits:
    """The limiters one app instance enforces, built in the lifespan."""

    messages: FixedWindowRateLimiter
    sessions: FixedWindowRateLimiter
    enabled: bool = True

    @classmethod
    def from_settings(cls) -> "RateLimits":
        return cls(
            messages=FixedWindowRateLimiter(settings.MESSAGE_RATE_LIMIT, settings.MESSAGE_RATE_WINDOW),
            sessions=FixedWindowRateLimiter(settings.SESSION_RATE_LIMIT, settings.SESSION_RATE_WINDOW),
            enabled=settings.RATE_LIMIT_ENABLED,
        )
