import asyncio

import pytest

from linearkit.infrastructure.resilience.rate_limiter import RateLimiter


def assert_window_respected(starts, max_requests, window):
    for i, start in enumerate(starts):
        in_window = [s for s in starts[i:] if s - start < window - 1e-9]
        assert len(in_window) <= max_requests, f"{len(in_window)} starts within {window}s of t={start}"


@pytest.mark.asyncio
async def test_admits_up_to_max_without_waiting(rate_limiter: RateLimiter, clock):
    waits = [await rate_limiter.acquire() for _ in range(10)]

    assert waits == [0.0] * 10
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_eleventh_start_waits_for_window_to_slide(rate_limiter: RateLimiter, clock):
    for _ in range(10):
        await rate_limiter.acquire()

    waited = await rate_limiter.acquire()

    assert waited == pytest.approx(1.0)
    assert clock.now == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_never_more_than_max_starts_in_any_window(rate_limiter: RateLimiter, clock):
    starts = []

    async def start():
        await rate_limiter.acquire()
        starts.append(clock())

    await asyncio.gather(*(start() for _ in range(35)))

    assert len(starts) == 35
    assert_window_respected(sorted(starts), 10, 1.0)
    assert max(starts) == pytest.approx(3.0)


@pytest.mark.asyncio
async def test_spread_out_starts_never_wait(rate_limiter: RateLimiter, clock):
    # 8 exact binary steps per window
    for _ in range(30):
        assert await rate_limiter.acquire() == 0.0
        clock.advance(0.125)


@pytest.mark.asyncio
async def test_full_rate_spread_over_window(rate_limiter: RateLimiter, clock):
    for _ in range(30):
        assert await rate_limiter.acquire() == pytest.approx(0.0, abs=1e-9)
        clock.advance(0.1)


@pytest.mark.asyncio
async def test_admission_is_fifo(clock):
    limiter = RateLimiter(max_requests=2, time_window=1.0, clock=clock, sleep=clock.sleep)
    admitted = []

    async def start(n: int):
        await limiter.acquire()
        admitted.append(n)

    await asyncio.gather(*(start(n) for n in range(9)))

    assert admitted == list(range(9))


@pytest.mark.asyncio
async def test_get_wait_time(rate_limiter: RateLimiter, clock):
    assert rate_limiter.get_wait_time() == 0.0
    for _ in range(10):
        await rate_limiter.acquire()
    clock.advance(0.25)

    assert rate_limiter.get_wait_time() == pytest.approx(0.75)


@pytest.mark.asyncio
async def test_reset_clears_window(rate_limiter: RateLimiter, clock):
    for _ in range(10):
        await rate_limiter.acquire()

    rate_limiter.reset()

    assert await rate_limiter.acquire() == 0.0
    assert clock.sleeps == []


@pytest.mark.parametrize("max_requests, window", [(0, 1.0), (5, 0), (-1, 1.0)])
def test_rejects_non_positive_configuration(max_requests, window):
    with pytest.raises(ValueError, match="must be positive"):
        RateLimiter(max_requests=max_requests, time_window=window)
