from __future__ import annotations

import asyncio
import time

import pytest

from bom_enricher.services.rate_limiter import RateLimiter, RateLimiterCleared


def test_invalid_arguments_rejected():
    with pytest.raises(ValueError):
        RateLimiter(max_concurrent=0)
    with pytest.raises(ValueError):
        RateLimiter(delay_ms=-1)


@pytest.mark.asyncio
async def test_concurrency_never_exceeds_cap():
    limiter = RateLimiter(max_concurrent=2, delay_ms=0)
    active = 0
    peak = 0

    async def op(n: int) -> int:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.02)
        active -= 1
        return n

    futures = [limiter.submit(lambda n=n: op(n)) for n in range(5)]
    assert limiter.running_count == 2
    assert limiter.pending_count == 3

    results = await asyncio.gather(*futures)
    assert results == [0, 1, 2, 3, 4]
    assert peak == 2
    await limiter.join()
    assert limiter.running_count == 0


@pytest.mark.asyncio
async def test_operations_start_in_fifo_order():
    limiter = RateLimiter(max_concurrent=1, delay_ms=0)
    started: list[int] = []

    async def op(n: int) -> None:
        started.append(n)

    await asyncio.gather(*[limiter.submit(lambda n=n: op(n)) for n in range(4)])
    assert started == [0, 1, 2, 3]
    await limiter.join()


@pytest.mark.asyncio
async def test_pacing_delay_applies_per_slot():
    limiter = RateLimiter(max_concurrent=1, delay_ms=50)

    async def op() -> None:
        return None

    t0 = time.monotonic()
    await asyncio.gather(*[limiter.submit(op) for _ in range(3)])
    elapsed = time.monotonic() - t0
    # the 2nd and 3rd operations each wait for one delay
    assert elapsed >= 0.09
    await limiter.join()


@pytest.mark.asyncio
async def test_operation_error_propagates_unchanged():
    limiter = RateLimiter(max_concurrent=1, delay_ms=0)

    class Boom(Exception):
        pass

    async def failing() -> None:
        raise Boom("upstream down")

    async def ok() -> str:
        return "ok"

    bad = limiter.submit(failing)
    good = limiter.submit(ok)
    with pytest.raises(Boom, match="upstream down"):
        await bad
    # a failure does not block the queue
    assert await good == "ok"
    await limiter.join()


@pytest.mark.asyncio
async def test_clear_rejects_queued_and_keeps_running():
    limiter = RateLimiter(max_concurrent=1, delay_ms=0)
    release = asyncio.Event()

    async def slow() -> str:
        await release.wait()
        return "done"

    running = limiter.submit(slow)
    queued = [limiter.submit(slow) for _ in range(3)]
    await asyncio.sleep(0)

    assert limiter.clear() == 3
    assert limiter.pending_count == 0
    for fut in queued:
        with pytest.raises(RateLimiterCleared):
            await fut

    release.set()
    assert await running == "done"
    await limiter.join()


@pytest.mark.asyncio
async def test_clear_on_empty_queue_returns_zero():
    limiter = RateLimiter()
    assert limiter.clear() == 0


@pytest.mark.asyncio
async def test_cancelled_waiter_is_skipped():
    limiter = RateLimiter(max_concurrent=1, delay_ms=0)
    release = asyncio.Event()
    calls: list[str] = []

    async def blocker() -> None:
        await release.wait()

    async def op(name: str) -> str:
        calls.append(name)
        return name

    first = limiter.submit(blocker)
    skipped = limiter.submit(lambda: op("skipped"))
    kept = limiter.submit(lambda: op("kept"))
    skipped.cancel()

    release.set()
    await first
    assert await kept == "kept"
    assert calls == ["kept"]
    await limiter.join()


@pytest.mark.asyncio
async def test_five_operations_two_slots_take_two_delays():
    limiter = RateLimiter(max_concurrent=2, delay_ms=50)
    peak = 0

    async def op() -> None:
        nonlocal peak
        peak = max(peak, limiter.running_count)

    t0 = time.monotonic()
    await asyncio.gather(*[limiter.submit(op) for _ in range(5)])
    elapsed = time.monotonic() - t0
    await limiter.join()

    assert peak <= 2
    assert elapsed >= 0.09


@pytest.mark.asyncio
async def test_cancelled_slot_still_admits_queued_operations():
    limiter = RateLimiter(max_concurrent=1, delay_ms=0)
    never = asyncio.Event()

    async def op(name: str) -> str:
        return name

    stuck = limiter.submit(never.wait)
    queued = limiter.submit(lambda: op("queued"))
    await asyncio.sleep(0)
    assert limiter.running_count == 1
    assert limiter.pending_count == 1

    for slot in list(limiter._slots):
        slot.cancel()

    assert await asyncio.wait_for(queued, timeout=1) == "queued"
    assert stuck.cancelled()
    await limiter.join()
    assert limiter.running_count == 0
