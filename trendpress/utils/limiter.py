"""Sliding-window request limiter shared by the scraper and providers."""

from __future__ import annotations

import asyncio
from collections import OrderedDict, deque
import threading
import time
from typing import Callable
from urllib.parse import urlparse

from ..config import RateLimitConfig


class RateLimiter:
    """Per-key sliding window limiter with bounded key capacity.

    Each key (a domain or a provider name) may issue ``max_requests`` within
    ``window_seconds``. At most ``max_keys`` keys are tracked; adding one more
    evicts the least recently used key. Thread-safe, and usable from asyncio
    code through ``acquire_async``.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        max_keys: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests <= 0 or window_seconds <= 0 or max_keys <= 0:
            raise ValueError("rate limiter capacity values must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: OrderedDict[str, deque[float]] = OrderedDict()

    @classmethod
    def from_config(cls, cfg: RateLimitConfig) -> RateLimiter:
        return cls(cfg.max_requests, cfg.window_seconds, cfg.max_keys)

    def try_acquire(self, key: str) -> float:
        """Take a slot for ``key`` if one is free.

        Returns 0.0 when the slot was taken, otherwise the seconds to wait
        before a slot frees up.
        """
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None:
                window = deque()
                self._windows[key] = window
                while len(self._windows) > self.max_keys:
                    self._windows.popitem(last=False)
            else:
                self._windows.move_to_end(key)

            cutoff = now - self.window_seconds
            while window and window[0] <= cutoff:
                window.popleft()

            if len(window) < self.max_requests:
                window.append(now)
                return 0.0
            return max(0.0, window[0] + self.window_seconds - now)

    def acquire(self, key: str) -> None:
        while True:
            wait_for = self.try_acquire(key)
            if wait_for <= 0:
                return
            time.sleep(wait_for)

    async def acquire_async(self, key: str) -> None:
        while True:
            wait_for = self.try_acquire(key)
            if wait_for <= 0:
                return
            await asyncio.sleep(wait_for)

    def tracked_keys(self) -> list[str]:
        with self._lock:
            return list(self._windows.keys())


def domain_key(url: str) -> str:
    return urlparse(url).netloc.lower()
