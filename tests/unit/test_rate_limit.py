import pytest

from storyloom.core.exceptions import RateLimitExceededError
from storyloom.core.rate_limit import FixedWindowRateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return FixedWindowRateLimiter("test", max_requests=3, window_seconds=60, clock=clock)


def test_counts_down_within_window(limiter):
    assert [limiter.hit("a") for _ in range(3)] == [2, 1, 0]


def test_rejects_past_threshold(limiter, clock):
    for _ in range(3):
        limiter.hit("a")
    clock.now += 15
    with pytest.raises(RateLimitExceededError) as exc_info:
        limiter.hit("a")
    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 45


def test_keys_are_independent(limiter):
    for _ in range(3):
        limiter.hit("a")
    assert limiter.hit("b") == 2


def test_window_resets(limiter, clock):
    for _ in range(3):
        limiter.hit("a")
    clock.now += 60
    assert limiter.hit("a") == 2


def test_retry_after_is_at_least_one_second(limiter, clock):
    for _ in range(3):
        limiter.hit("a")
    clock.now += 59.9
    with pytest.raises(RateLimitExceededError) as exc_info:
        limiter.hit("a")
    assert exc_info.value.retry_after == 1


def test_custom_message_and_reset(clock):
    limiter = FixedWindowRateLimiter(
        "ai", max_requests=1, window_seconds=10, message="Slow down", clock=clock
    )
    limiter.hit("user")
    with pytest.raises(RateLimitExceededError, match="Slow down"):
        limiter.hit("user")
    limiter.reset()
    assert limiter.hit("user") == 0


def test_expired_windows_are_dropped(limiter, clock):
    for key in ("a", "b", "c"):
        limiter.hit(key)
    assert len(limiter) == 3

    clock.now += 60
    limiter.hit("d")
    assert len(limiter) == 1
