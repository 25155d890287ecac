"""Simple in-memory rate limiter for API endpoints."""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request

from idynic.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> int:
        """Whole seconds until the window resets (at least 1)."""
        return max(1, int(self.reset_at - now + 0.999))


class RateLimiter:
    """
    Fixed-window rate limiter.

    Tracks request counts per key (e.g., user_id) within the current window.
    State lives in memory and is lost on restart; a background task started
    with start() drops expired windows so idle keys don't accumulate.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        sweep_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            max_requests: Requests allowed per key per window
            window_seconds: Window length
            sweep_seconds: Interval between expired-window sweeps
            clock: Time source (monotonic seconds)
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_seconds = sweep_seconds
        self._clock = clock

        # Storage: key -> (count, window_reset_at)
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._sweep_task: asyncio.Task | None = None

    def check(self, key: str) -> RateLimitDecision:
        """
        Count one request against a key.

        Args:
            key: Rate limit key

        Returns:
            Decision with remaining requests and the window reset time
        """
        now = self._clock()
        count, reset_at = self._windows.get(key, (0, 0.0))

        if now >= reset_at:
            count, reset_at = 0, now + self.window_seconds

        if count >= self.max_requests:
            return RateLimitDecision(allowed=False, remaining=0, reset_at=reset_at)

        count += 1
        self._windows[key] = (count, reset_at)
        return RateLimitDecision(
            allowed=True, remaining=self.max_requests - count, reset_at=reset_at
        )

    def check_limit(self, key: str) -> RateLimitDecision:
        """
        Check a key and raise if it is over the limit.

        Raises:
            HTTPException: 429 with Retry-After if rate limited
        """
        decision = self.check(key)
        if decision.allowed:
            return decision

        retry_after = decision.retry_after(self._clock())
        logger.warning(
            f"Rate limit exceeded for key: {key}, retry after: {retry_after}s",
            extra={"max_requests": self.max_requests},
        )
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )

    def sweep(self) -> int:
        """Drop expired windows. Returns the number of keys removed."""
        now = self._clock()
        expired = [key for key, (_, reset_at) in self._windows.items() if now >= reset_at]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired rate limit windows")
        return len(expired)

    def reset(self, key: str) -> None:
        """
        Reset rate limit for a key.

        Args:
            key: Rate limit key
        """
        self._windows.pop(key, None)
        logger.info(f"Rate limit reset for key: {key}")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_seconds)
            self.sweep()

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        try:
            await self._sweep_task
        except asyncio.CancelledError:
            pass
        self._sweep_task = None


def get_rate_limiter(request: Request) -> RateLimiter:
    """FastAPI dependency returning the app's limiter."""
    return request.app.state.rate_limiter
