"""
Fixed-window, per-client rate limiting.

Each client identifier owns one RateLimitEntry. The first request in a window
opens it, later requests increment it, and once the count reaches the quota
requests are denied until the window resets. Expired entries are removed by
a background sweeper so unique-client churn cannot grow the map forever.
"""

import asyncio
import contextlib
import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float


class RateLimiter:
    """Process-wide request counter keyed by client identifier"""

    def __init__(
        self,
        max_requests: int = 30,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: asyncio.Task | None = None

    def check(self, client_id: str) -> RateLimitResult:
        """Count one request for client_id and report whether it is allowed"""
        now = self._clock()

        with self._lock:
            entry = self._entries.get(client_id)

            if entry is None or now >= entry.reset_at:
                entry = RateLimitEntry(count=1, reset_at=now + self.window_seconds)
                self._entries[client_id] = entry
                return RateLimitResult(
                    allowed=True,
                    remaining=self.max_requests - 1,
                    reset_at=entry.reset_at,
                )

            if entry.count >= self.max_requests:
                return RateLimitResult(
                    allowed=False, remaining=0, reset_at=entry.reset_at
                )

            entry.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=self.max_requests - entry.count,
                reset_at=entry.reset_at,
            )

    def retry_after_seconds(self, result: RateLimitResult) -> int:
        """Whole seconds until the client's window resets"""
        return max(0, math.ceil(result.reset_at - self._clock()))

    def sweep(self) -> int:
        """Remove entries whose window has expired, returning how many went"""
        now = self._clock()
        removed = 0

        with self._lock:
            snapshot = list(self._entries.items())

        for client_id, entry in snapshot:
            if entry.reset_at > now:
                continue
            with self._lock:
                # The client may have opened a new window since the snapshot
                if self._entries.get(client_id) is entry:
                    del self._entries[client_id]
                    removed += 1

        if removed:
            logger.debug(f"Rate limiter sweep removed {removed} expired entries")
        return removed

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.window_seconds)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Rate limiter sweep failed: {e}")

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop"""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())
        logger.info("Rate limiter sweeper started")

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
        logger.info("Rate limiter sweeper stopped")

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, Any]:
        return {
            "entries": len(self._entries),
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
        }
