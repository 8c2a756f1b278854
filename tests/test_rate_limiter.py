import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from weatherdash.services.rate_limiter import RateLimiter


class TestRateLimiter:
    """Test suite for RateLimiter"""

    @pytest.fixture
    def rate_limiter(self, clock):
        """Create a RateLimiter driven by a fake clock"""
        return RateLimiter(max_requests=30, window_seconds=60, clock=clock)

    def test_first_request_opens_window(self, rate_limiter, clock):
        """Test the first request is allowed with max-1 remaining"""
        result = rate_limiter.check("1.2.3.4")

        assert result.allowed is True
        assert result.remaining == 29
        assert result.reset_at == clock.now + 60

    def test_quota_is_enforced(self, rate_limiter):
        """Test remaining decreases until the quota is spent"""
        remaining = [rate_limiter.check("client").remaining for _ in range(30)]

        assert remaining == list(range(29, -1, -1))

        denied = rate_limiter.check("client")
        assert denied.allowed is False
        assert denied.remaining == 0

    def test_denied_request_keeps_reset_time(self, rate_limiter, clock):
        """Test a denied request does not extend the window"""
        first = rate_limiter.check("client")
        for _ in range(29):
            rate_limiter.check("client")

        clock.advance(30)
        denied = rate_limiter.check("client")

        assert denied.allowed is False
        assert denied.reset_at == first.reset_at

    def test_window_reset_allows_again(self, rate_limiter, clock):
        """Test the quota is restored once the window expires"""
        for _ in range(31):
            rate_limiter.check("client")

        clock.advance(60)
        result = rate_limiter.check("client")

        assert result.allowed is True
        assert result.remaining == 29

    def test_clients_are_counted_separately(self, rate_limiter):
        """Test one client's usage does not affect another's"""
        for _ in range(30):
            rate_limiter.check("a")

        assert rate_limiter.check("a").allowed is False
        assert rate_limiter.check("b").remaining == 29

    def test_retry_after_rounds_up(self, rate_limiter, clock):
        """Test retry-after is the ceiling of the seconds left"""
        for _ in range(31):
            result = rate_limiter.check("client")

        clock.advance(20.5)

        assert rate_limiter.retry_after_seconds(result) == 40

    def test_sweep_removes_only_expired_entries(self, rate_limiter, clock):
        """Test the sweep keeps active windows"""
        rate_limiter.check("old")
        clock.advance(45)
        rate_limiter.check("new")
        clock.advance(15)

        assert rate_limiter.sweep() == 1
        assert rate_limiter.stats()["entries"] == 1
        assert rate_limiter.sweep() == 0

    def test_sweep_keeps_renewed_entry(self, rate_limiter, clock):
        """Test an entry renewed after expiry survives the sweep"""
        rate_limiter.check("client")
        clock.advance(61)
        rate_limiter.check("client")

        assert rate_limiter.sweep() == 0
        assert rate_limiter.check("client").remaining == 28

    def test_concurrent_burst_is_not_undercounted(self, rate_limiter):
        """Test simultaneous checks from many threads never exceed the quota"""
        start = threading.Barrier(8)

        def burst():
            start.wait()
            return sum(rate_limiter.check("c").allowed for _ in range(50))

        with ThreadPoolExecutor(max_workers=8) as pool:
            allowed = sum(pool.map(lambda _: burst(), range(8)))

        assert allowed == 30
        assert rate_limiter.check("c").allowed is False

    def test_sweep_while_clients_arrive(self, rate_limiter, clock):
        """Test sweeping alongside threads opening new windows loses no entries"""
        for i in range(200):
            rate_limiter.check(f"old-{i}")
        clock.advance(60)

        def arrive(worker):
            for i in range(200):
                rate_limiter.check(f"new-{worker}-{i}")

        with ThreadPoolExecutor(max_workers=4) as pool:
            arrivals = [pool.submit(arrive, worker) for worker in range(3)]
            removed = pool.submit(rate_limiter.sweep).result()
            for arrival in arrivals:
                arrival.result()

        assert removed == 200
        assert rate_limiter.stats()["entries"] == 600

    def test_stats_and_reset(self, rate_limiter):
        rate_limiter.check("a")
        rate_limiter.check("b")

        assert rate_limiter.stats() == {
            "entries": 2,
            "max_requests": 30,
            "window_seconds": 60,
        }

        rate_limiter.reset()
        assert rate_limiter.stats()["entries"] == 0

    async def test_sweeper_runs_in_background(self, clock):
        """Test the background sweeper removes expired entries"""
        rate_limiter = RateLimiter(max_requests=5, window_seconds=0.01, clock=clock)
        rate_limiter.check("client")
        clock.advance(1)

        rate_limiter.start_sweeper()
        try:
            for _ in range(50):
                if rate_limiter.stats()["entries"] == 0:
                    break
                await asyncio.sleep(0.01)
        finally:
            await rate_limiter.stop_sweeper()

        assert rate_limiter.stats()["entries"] == 0

    async def test_stop_sweeper_is_idempotent(self, rate_limiter):
        rate_limiter.start_sweeper()
        await rate_limiter.stop_sweeper()
        await rate_limiter.stop_sweeper()
