"""
Admission control: a global concurrency gate and per-tool sliding windows
"""
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from .schemas import RateLimitConfig


class ConcurrencyGate:
    """
    Non-blocking in-flight counter

    try_acquire() either takes a slot immediately or refuses; callers are
    never queued. Every successful acquire must be paired with release().
    """

    def __init__(self, max_in_flight: int):
        self.max_in_flight = max(1, max_in_flight)
        self.in_flight = 0

    def try_acquire(self) -> bool:
        if self.in_flight >= self.max_in_flight:
            return False
        self.in_flight += 1
        return True

    def release(self) -> None:
        if self.in_flight > 0:
            self.in_flight -= 1

    @property
    def available(self) -> int:
        return self.max_in_flight - self.in_flight


class SlidingWindowRateLimiter:
    """
    Per-key sliding window of accepted call times

    A call is accepted when fewer than max_calls accepted calls fall inside
    the last window_ms. Rejected calls are not recorded.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._windows: Dict[str, Deque[float]] = {}

    def acquire(self, key: str, config: Optional[RateLimitConfig]) -> Optional[int]:
        """
        Try to record a call for key

        Returns:
            None when accepted, otherwise milliseconds until a slot frees up
        """
        if config is None or not config.is_enforceable:
            return None

        now = self._clock()
        window_seconds = config.window_ms / 1000
        calls = self._windows.setdefault(key, deque())

        cutoff = now - window_seconds
        while calls and calls[0] <= cutoff:
            calls.popleft()

        if len(calls) >= config.max_calls:
            retry_after = calls[0] + window_seconds - now
            return max(0, int(retry_after * 1000))

        calls.append(now)
        return None

    def current_usage(self, key: str) -> int:
        return len(self._windows.get(key, ()))

    def reset(self, key: Optional[str] = None) -> None:
        if key:
            self._windows.pop(key, None)
        else:
            self._windows.clear()
