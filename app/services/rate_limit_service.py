"""Fixed-window rate limiting.

The limiter is a plain fixed window: a burst straddling a window boundary can
see up to twice the limit within 60 seconds. Each process keeps its own
windows, so a horizontally scaled deployment enforces the limit per instance.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateLimitResult(NamedTuple):
    allowed: bool
    remaining: int
    reset_at: datetime
    limit: int

    @property
    def reset_epoch(self) -> int:
        return int(self.reset_at.timestamp())


class RateLimitWindow:
    """Request counter for one client key."""

    __slots__ = ("requests", "window_start")

    def __init__(self, window_start: datetime):
        self.requests = 0
        self.window_start = window_start


class RateLimiter(ABC):
    """Rate limiter collaborator injected into the gateway."""

    @abstractmethod
    async def check(self, key: str, limit: int) -> RateLimitResult:
        """Count a request against ``key`` if it is within ``limit``."""


class InMemoryRateLimiter(RateLimiter):
    """Process-local fixed-window rate limiter."""

    def __init__(
        self,
        window_seconds: int = 60,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize rate limiter.

        Args:
            window_seconds: Window length in seconds
            clock: Returns the current aware datetime; injectable for tests
        """
        self.window = timedelta(seconds=window_seconds)
        self._clock = clock or _utcnow
        self._storage: Dict[str, RateLimitWindow] = {}
        self._lock = asyncio.Lock()

    async def check(self, key: str, limit: int) -> RateLimitResult:
        """Check and count a request for ``key``.

        Args:
            key: Client key (user id, caller IP or "anonymous")
            limit: Maximum requests allowed per window

        Returns:
            RateLimitResult; a denied request is not counted
        """
        async with self._lock:
            now = self._clock()
            state = self._storage.get(key)

            if state is None or now - state.window_start > self.window:
                state = RateLimitWindow(now)
                self._storage[key] = state

            reset_at = state.window_start + self.window

            if state.requests >= limit:
                return RateLimitResult(False, 0, reset_at, limit)

            state.requests += 1
            return RateLimitResult(True, limit - state.requests, reset_at, limit)

    async def get_status(self, key: str) -> Optional[Dict]:
        """Get current rate limit status for a key.

        Args:
            key: Rate limit key

        Returns:
            Dict with status or None
        """
        async with self._lock:
            state = self._storage.get(key)
            if state is None:
                return None

            return {
                "key": key,
                "current_usage": state.requests,
                "window_start_at": state.window_start.isoformat(),
                "reset_at": (state.window_start + self.window).isoformat(),
            }

    async def reset(self, key: str) -> bool:
        """Drop the window for a key.

        Args:
            key: Rate limit key

        Returns:
            True if a window existed
        """
        async with self._lock:
            if key in self._storage:
                del self._storage[key]
                logger.info(f"Reset rate limit for key: {key}")
                return True
            return False

    async def cleanup_expired(self) -> int:
        """Remove windows that have already ended.

        Returns:
            Number of windows removed
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [
                key
                for key, state in self._storage.items()
                if now - state.window_start > self.window
            ]

            for key in expired_keys:
                del self._storage[key]

            if expired_keys:
                logger.info(
                    f"Cleaned up {len(expired_keys)} expired rate limit entries"
                )
            return len(expired_keys)
