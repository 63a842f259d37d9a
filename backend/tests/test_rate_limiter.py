"""
Tests for the sliding-window rate limiter.
"""

import threading

import pytest

from propertygpt.services.rate_limiter import SlidingWindowRateLimiter

from conftest import FakeClock


def make_limiter(max_requests, window=60.0):
    clock = FakeClock()
    return SlidingWindowRateLimiter(max_requests, window, clock=clock, sleep=clock.sleep), clock


def test_requests_under_cap_do_not_wait():
    limiter, clock = make_limiter(3)

    waits = [limiter.acquire() for _ in range(3)]

    assert waits == [0.0, 0.0, 0.0]
    assert clock.sleeps == []
    assert limiter.in_window() == 3


def test_request_over_cap_waits_for_oldest_to_leave_window():
    limiter, clock = make_limiter(2)

    limiter.acquire()
    clock.advance(10)
    limiter.acquire()
    waited = limiter.acquire()

    assert waited == 50
    assert clock.now == 60
    assert limiter.in_window() == 2


def test_window_slides():
    limiter, clock = make_limiter(2)

    limiter.acquire()
    limiter.acquire()
    clock.advance(60)

    assert limiter.acquire() == 0.0
    assert clock.sleeps == []


def test_reset_clears_window():
    limiter, clock = make_limiter(1)

    limiter.acquire()
    limiter.reset()

    assert limiter.acquire() == 0.0


def test_max_requests_must_be_positive():
    with pytest.raises(ValueError):
        SlidingWindowRateLimiter(0)


def test_concurrent_callers_never_exceed_cap():
    limiter = SlidingWindowRateLimiter(max_requests=5, window_seconds=0.2)
    errors = []

    def worker():
        try:
            limiter.acquire()
        except Exception as e:  # pragma: no cover
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert errors == []
    assert all(not t.is_alive() for t in threads)
    assert limiter.in_window() <= 5
