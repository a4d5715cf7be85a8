from __future__ import annotations

import asyncio

import pytest

from artindex.domain.ingest_pipeline import (
    RateLimitedError,
    RateLimiter,
    RateLimiterConfig,
    RateLimitPressure,
    TransientNetworkError,
    is_rate_limit_error,
)
from tests.support.providers import SleepRecorder


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _limiter(config: RateLimiterConfig, **kwargs: object) -> tuple[RateLimiter, SleepRecorder]:
    sleep = SleepRecorder()
    limiter = RateLimiter(config, sleep=sleep, clock=lambda: 0.0, **kwargs)  # type: ignore[arg-type]
    return limiter, sleep


def test_successful_call_returns_value_after_one_attempt() -> None:
    limiter, sleep = _limiter(RateLimiterConfig(base_delay=0.5, max_delay=4.0))

    async def operation() -> str:
        return "ok"

    result = asyncio.run(limiter.execute_call(operation))

    assert result.success
    assert result.value == "ok"
    assert result.attempts == 1
    assert result.error is None
    assert sleep.calls == [0.5]


def test_persistent_rate_limit_gives_up_at_max_delay() -> None:
    config = RateLimiterConfig(base_delay=1.0, max_delay=4.0, backoff_multiplier=2.0, max_retries=3)
    limiter, _sleep = _limiter(config)

    async def operation() -> str:
        raise RateLimitedError

    result = asyncio.run(limiter.execute_call(operation, "listing"))

    assert not result.success
    assert isinstance(result.error, RateLimitedError)
    assert result.attempts == 3
    assert result.final_delay == pytest.approx(4.0)
    assert limiter.pressure.hits == 3


def test_delay_stays_within_configured_bounds() -> None:
    config = RateLimiterConfig(base_delay=1.0, max_delay=3.0, backoff_multiplier=2.0, max_retries=5)
    limiter, sleep = _limiter(config)

    async def operation() -> str:
        raise RateLimitedError

    asyncio.run(limiter.execute_call(operation))

    assert all(delay <= config.max_delay for delay in sleep.calls)
    assert config.base_delay <= limiter.current_delay <= config.max_delay


def test_recovers_after_rate_limit_and_decays_on_success_streak() -> None:
    config = RateLimiterConfig(
        base_delay=1.0,
        max_delay=10.0,
        backoff_multiplier=2.0,
        max_retries=3,
        adaptive_threshold=2,
    )
    limiter, _sleep = _limiter(config)
    calls = 0

    async def flaky() -> int:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise TransientNetworkError("Too Many Requests", status_code=429)
        return calls

    async def steady() -> int:
        return 0

    first = asyncio.run(limiter.execute_call(flaky))
    assert first.success
    assert first.attempts == 2
    assert limiter.current_delay == pytest.approx(2.0)

    asyncio.run(limiter.execute_call(steady))
    assert limiter.current_delay == pytest.approx(1.6)
    assert limiter.stats().consecutive_successes == 0


def test_ordinary_failures_raise_delay_once_threshold_reached() -> None:
    config = RateLimiterConfig(
        base_delay=1.0,
        max_delay=10.0,
        backoff_multiplier=2.0,
        max_retries=3,
        adaptive_threshold=2,
    )
    limiter, _sleep = _limiter(config)

    async def operation() -> None:
        raise ValueError("boom")

    result = asyncio.run(limiter.execute_call(operation))

    assert not result.success
    assert isinstance(result.error, ValueError)
    assert result.final_delay == pytest.approx(2.0)
    assert limiter.pressure.hits == 0
    assert limiter.stats().consecutive_failures == 1


def test_shared_pressure_penalizes_other_limiters() -> None:
    pressure = RateLimitPressure(threshold=1, penalty=2.0, clock=lambda: 0.0)
    pressure.record_hit()
    pressure.record_hit()
    limiter, sleep = _limiter(RateLimiterConfig(base_delay=1.0, max_delay=10.0), pressure=pressure)

    async def operation() -> str:
        return "ok"

    result = asyncio.run(limiter.execute_call(operation))

    assert result.success
    assert sleep.calls == [2.0]
    assert limiter.stats().pressure_hits == 2


def test_pressure_window_resets_after_expiry() -> None:
    clock = FakeClock()
    pressure = RateLimitPressure(window_seconds=60.0, threshold=1, clock=clock)
    pressure.record_hit()
    pressure.record_hit()
    assert pressure.under_pressure()

    clock.now = 61.0

    assert pressure.hits == 0
    assert not pressure.under_pressure()


def test_execute_batch_pauses_between_batches() -> None:
    limiter, sleep = _limiter(RateLimiterConfig(base_delay=1.0, max_delay=10.0, batch_size=2))

    def make(value: int):  # noqa: ANN202
        async def operation() -> int:
            return value

        return operation

    results = asyncio.run(limiter.execute_batch([make(1), make(2), make(3)]))

    assert [result.value for result in results] == [1, 2, 3]
    assert all(result.success for result in results)
    # two calls, one inter-batch pause, one call
    assert sleep.calls == [1.0, 1.0, 1.0, 1.0]


def test_pause_ignores_non_positive_durations() -> None:
    limiter, sleep = _limiter(RateLimiterConfig(base_delay=0.0, max_delay=1.0))

    asyncio.run(limiter.pause(0))
    asyncio.run(limiter.pause(1.5))

    assert sleep.calls == [1.5]


def test_reset_restores_base_delay() -> None:
    config = RateLimiterConfig(base_delay=1.0, max_delay=8.0, backoff_multiplier=2.0, max_retries=2)
    limiter, _sleep = _limiter(config)

    async def operation() -> None:
        raise RateLimitedError

    asyncio.run(limiter.execute_call(operation))
    assert limiter.current_delay > config.base_delay

    limiter.reset()

    stats = limiter.stats()
    assert stats.current_delay == config.base_delay
    assert stats.consecutive_failures == 0
    assert stats.average_response_time is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_delay": -1.0},
        {"base_delay": 5.0, "max_delay": 1.0},
        {"backoff_multiplier": 0.5},
        {"max_retries": 0},
        {"decay_factor": 0.0},
    ],
)
def test_config_rejects_invalid_values(kwargs: dict[str, float]) -> None:
    with pytest.raises(ValueError):  # noqa: PT011
        RateLimiterConfig(**kwargs)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (RateLimitedError(), True),
        (TransientNetworkError("upstream", status_code=429), True),
        (RuntimeError("Rate limit exceeded"), True),
        (TransientNetworkError("upstream", status_code=503), False),
        (ValueError("bad"), False),
    ],
)
def test_is_rate_limit_error(error: BaseException, expected: bool) -> None:
    assert is_rate_limit_error(error) is expected


def test_sibling_shares_pressure_and_sleep_but_not_delay() -> None:
    limiter, sleep = _limiter(RateLimiterConfig(base_delay=1.0, max_delay=8.0, max_retries=1))
    sibling = limiter.sibling("enrichment", RateLimiterConfig(base_delay=0.5, max_delay=4.0, max_retries=1))

    async def operation() -> str:
        raise RateLimitedError

    asyncio.run(sibling.execute_call(operation))

    assert sibling.name == "enrichment"
    assert sibling.pressure is limiter.pressure
    assert limiter.pressure.hits == 1
    assert sibling.current_delay == pytest.approx(0.75)
    assert limiter.current_delay == pytest.approx(1.0)
    assert sleep.calls == [0.5]
