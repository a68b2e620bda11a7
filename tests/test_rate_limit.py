"""Tests for the concurrency gate and the sliding window rate limiter."""
from slack_toolkit.tools.rate_limit import ConcurrencyGate, SlidingWindowRateLimiter
from slack_toolkit.tools.schemas import RateLimitConfig


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestConcurrencyGate:
    def test_acquire_until_full(self):
        gate = ConcurrencyGate(2)
        assert gate.try_acquire()
        assert gate.try_acquire()
        assert not gate.try_acquire()
        assert gate.in_flight == 2
        assert gate.available == 0

    def test_release_frees_slot(self):
        gate = ConcurrencyGate(1)
        assert gate.try_acquire()
        gate.release()
        assert gate.try_acquire()

    def test_release_never_goes_negative(self):
        gate = ConcurrencyGate(1)
        gate.release()
        assert gate.in_flight == 0


class TestSlidingWindowRateLimiter:
    def test_accepts_up_to_limit(self):
        limiter = SlidingWindowRateLimiter(clock=FakeClock())
        config = RateLimitConfig(max_calls=3, window_ms=60_000)
        assert [limiter.acquire("post", config) for _ in range(3)] == [None, None, None]
        assert limiter.acquire("post", config) == 60_000

    def test_retry_after_counts_down(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(clock=clock)
        config = RateLimitConfig(max_calls=1, window_ms=10_000)
        assert limiter.acquire("post", config) is None
        clock.now += 4
        assert limiter.acquire("post", config) == 6_000

    def test_window_slides(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(clock=clock)
        config = RateLimitConfig(max_calls=2, window_ms=1_000)
        limiter.acquire("post", config)
        clock.now += 0.5
        limiter.acquire("post", config)
        assert limiter.acquire("post", config) is not None

        clock.now += 0.6
        assert limiter.acquire("post", config) is None
        assert limiter.acquire("post", config) is not None

    def test_rejected_calls_are_not_recorded(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(clock=clock)
        config = RateLimitConfig(max_calls=1, window_ms=1_000)
        limiter.acquire("post", config)
        for _ in range(5):
            limiter.acquire("post", config)
        assert limiter.current_usage("post") == 1

        clock.now += 1.0
        assert limiter.acquire("post", config) is None

    def test_keys_are_independent(self):
        limiter = SlidingWindowRateLimiter(clock=FakeClock())
        config = RateLimitConfig(max_calls=1, window_ms=60_000)
        assert limiter.acquire("post", config) is None
        assert limiter.acquire("search", config) is None
        assert limiter.acquire("post", config) is not None

    def test_missing_or_unenforceable_config_is_unlimited(self):
        limiter = SlidingWindowRateLimiter(clock=FakeClock())
        for _ in range(10):
            assert limiter.acquire("a", None) is None
            assert limiter.acquire("b", RateLimitConfig(max_calls=0)) is None
        assert limiter.current_usage("a") == 0

    def test_reset(self):
        limiter = SlidingWindowRateLimiter(clock=FakeClock())
        config = RateLimitConfig(max_calls=1, window_ms=60_000)
        limiter.acquire("post", config)
        limiter.acquire("search", config)
        limiter.reset("post")
        assert limiter.acquire("post", config) is None
        limiter.reset()
        assert limiter.current_usage("search") == 0
