"""Tests for the sliding-window rate limiter."""

import asyncio

import pytest

from trendpress.config import RateLimitConfig
from trendpress.utils.limiter import RateLimiter, domain_key


class ManualClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_allows_up_to_capacity_then_reports_wait():
    clock = ManualClock()
    limiter = RateLimiter(max_requests=2, window_seconds=10, clock=clock)

    assert limiter.try_acquire("a.example.com") == 0.0
    clock.now += 3
    assert limiter.try_acquire("a.example.com") == 0.0
    assert limiter.try_acquire("a.example.com") == pytest.approx(7.0)


def test_window_slides():
    clock = ManualClock()
    limiter = RateLimiter(max_requests=1, window_seconds=5, clock=clock)

    assert limiter.try_acquire("k") == 0.0
    clock.now += 5
    assert limiter.try_acquire("k") == 0.0


def test_keys_are_independent():
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=ManualClock())
    assert limiter.try_acquire("gemini") == 0.0
    assert limiter.try_acquire("huggingface") == 0.0
    assert limiter.try_acquire("gemini") > 0


def test_least_recently_used_key_is_evicted():
    limiter = RateLimiter(max_requests=1, window_seconds=60, max_keys=2, clock=ManualClock())
    limiter.try_acquire("a")
    limiter.try_acquire("b")
    limiter.try_acquire("a")
    limiter.try_acquire("c")

    assert limiter.tracked_keys() == ["a", "c"]
    # An evicted key starts over with a fresh window.
    assert limiter.try_acquire("b") == 0.0


def test_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        RateLimiter(max_requests=0, window_seconds=1)


def test_from_config():
    limiter = RateLimiter.from_config(RateLimitConfig(max_requests=5, window_seconds=2.0, max_keys=3))
    assert (limiter.max_requests, limiter.window_seconds, limiter.max_keys) == (5, 2.0, 3)


def test_acquire_async_waits_for_slot():
    limiter = RateLimiter(max_requests=1, window_seconds=0.05)

    async def run():
        await limiter.acquire_async("k")
        await limiter.acquire_async("k")

    asyncio.run(run())
    assert limiter.tracked_keys() == ["k"]


def test_domain_key():
    assert domain_key("https://News.Example.com/rss?x=1") == "news.example.com"
