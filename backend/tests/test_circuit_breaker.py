"""Tests for the circuit breaker module."""

import pytest

from app.core.circuit_breaker import CircuitBreaker, CircuitBreakerOpen, CircuitState


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return _Clock()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker("test", failure_threshold=3, cooldown_seconds=60, clock=clock)


async def _succeed():
    return "ok"


async def _fail():
    raise RuntimeError("boom")


async def _trip(breaker: CircuitBreaker):
    for _ in range(3):
        with pytest.raises(RuntimeError):
            await breaker.call(_fail)


# -------------------------------------------------------------------
# State transitions
# -------------------------------------------------------------------


async def test_starts_closed(breaker: CircuitBreaker):
    assert breaker.state == CircuitState.CLOSED


async def test_stays_closed_on_success(breaker: CircuitBreaker):
    result = await breaker.call(_succeed)
    assert result == "ok"
    assert breaker.state == CircuitState.CLOSED


async def test_passes_arguments(breaker: CircuitBreaker):
    async def _add(a, b=0):
        return a + b

    assert await breaker.call(_add, 2, b=3) == 5


async def test_opens_after_threshold_failures(breaker: CircuitBreaker):
    await _trip(breaker)
    assert breaker.state == CircuitState.OPEN


async def test_rejects_when_open_without_calling(breaker: CircuitBreaker):
    await _trip(breaker)
    calls = []

    async def _tracked():
        calls.append(1)

    with pytest.raises(CircuitBreakerOpen):
        await breaker.call(_tracked)
    assert calls == []


async def test_half_open_after_cooldown(breaker: CircuitBreaker, clock):
    await _trip(breaker)
    clock.now += 60
    assert breaker.state == CircuitState.HALF_OPEN


async def test_half_open_success_closes(breaker: CircuitBreaker, clock):
    await _trip(breaker)
    clock.now += 60

    result = await breaker.call(_succeed)
    assert result == "ok"
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 0


async def test_half_open_failure_reopens(breaker: CircuitBreaker, clock):
    await _trip(breaker)
    clock.now += 60

    with pytest.raises(RuntimeError):
        await breaker.call(_fail)

    assert breaker.state == CircuitState.OPEN


async def test_reset(breaker: CircuitBreaker):
    await _trip(breaker)
    breaker.reset()
    assert breaker.state == CircuitState.CLOSED


async def test_failures_below_threshold_stay_closed(breaker: CircuitBreaker):
    for _ in range(2):
        with pytest.raises(RuntimeError):
            await breaker.call(_fail)

    assert breaker.state == CircuitState.CLOSED


async def test_success_resets_failure_count(breaker: CircuitBreaker):
    for _ in range(2):
        with pytest.raises(RuntimeError):
            await breaker.call(_fail)
    await breaker.call(_succeed)
    with pytest.raises(RuntimeError):
        await breaker.call(_fail)

    assert breaker.state == CircuitState.CLOSED
