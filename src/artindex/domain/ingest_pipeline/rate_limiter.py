"""Adaptive delay and backoff around remote provider calls.

Every call goes through :meth:`RateLimiter.execute_call`, which sleeps the
current delay before each attempt, retries failures up to ``max_retries`` and
adapts the delay to what the provider tells us: rate-limit responses push the
delay up immediately, a streak of ordinary failures pushes it up once the
streak reaches the adaptive threshold, and a streak of successes lets it decay
back towards ``base_delay``.

Independent limiter instances (one per provider or per ingestion session) are
coupled through an injected :class:`RateLimitPressure` counter. When more than
``threshold`` rate-limit hits are recorded inside one window, each limiter
applies an extra penalty to its own delay the next time it starts a call.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections import deque
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import is_rate_limit_error

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

log = getLogger(__name__)

type Sleep = Callable[[float], Awaitable[None]]
type Clock = Callable[[], float]

_SLOW_RESPONSE_SECONDS = 2.0
_MODERATE_RESPONSE_SECONDS = 1.0


@dataclass(slots=True, frozen=True)
class RateLimiterConfig:
    """Tuning knobs for :class:`RateLimiter`. Delays are in seconds."""

    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_multiplier: float = 1.5
    max_retries: int = 5
    batch_size: int = 10
    adaptive_threshold: int = 5
    history_size: int = 10
    decay_factor: float = 0.8

    def __post_init__(self) -> None:
        if self.base_delay < 0 or self.max_delay < self.base_delay:
            raise ValueError("Expected 0 <= base_delay <= max_delay")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")
        if not 0 < self.decay_factor <= 1:
            raise ValueError("decay_factor must be in (0, 1]")
        if min(self.max_retries, self.batch_size, self.adaptive_threshold, self.history_size) < 1:
            raise ValueError("max_retries, batch_size, adaptive_threshold and history_size must be >= 1")


class RateLimitPressure:
    """Thread-safe count of rate-limit hits inside a fixed time window.

    One instance is shared by every limiter of a process run. The window resets
    on the first access after ``window_seconds`` have elapsed.
    """

    def __init__(
        self,
        *,
        window_seconds: float = 60.0,
        threshold: int = 10,
        penalty: float = 1.5,
        clock: Clock = time.monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self.threshold = threshold
        self.penalty = penalty
        self._clock = clock
        self._lock = threading.Lock()
        self._hits = 0
        self._window_started = clock()

    def _roll_window(self) -> None:
        now = self._clock()
        if now - self._window_started >= self.window_seconds:
            self._hits = 0
            self._window_started = now

    def record_hit(self) -> int:
        with self._lock:
            self._roll_window()
            self._hits += 1
            return self._hits

    @property
    def hits(self) -> int:
        with self._lock:
            self._roll_window()
            return self._hits

    def under_pressure(self) -> bool:
        return self.hits > self.threshold

    def reset(self) -> None:
        with self._lock:
            self._hits = 0
            self._window_started = self._clock()


@dataclass(slots=True, frozen=True)
class CallResult[T]:
    success: bool
    value: T | None = None
    error: BaseException | None = None
    attempts: int = 0
    final_delay: float = 0.0


@dataclass(slots=True, frozen=True)
class LimiterStats:
    current_delay: float
    consecutive_successes: int
    consecutive_failures: int
    average_response_time: float | None
    pressure_hits: int


class RateLimiter:
    def __init__(
        self,
        config: RateLimiterConfig | None = None,
        *,
        pressure: RateLimitPressure | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
        name: str = "provider",
    ) -> None:
        self.config = config or RateLimiterConfig()
        self.pressure = pressure or RateLimitPressure()
        self.name = name
        self._sleep = sleep
        self._clock = clock
        self._current_delay = self.config.base_delay
        self._consecutive_successes = 0
        self._consecutive_failures = 0
        self._response_times: deque[float] = deque(maxlen=self.config.history_size)

    @property
    def current_delay(self) -> float:
        return self._current_delay

    def sibling(self, name: str, config: RateLimiterConfig | None = None) -> RateLimiter:
        """Return a limiter with its own adaptive delay that shares this one's pressure, sleep and clock."""

        return RateLimiter(
            config or self.config,
            pressure=self.pressure,
            sleep=self._sleep,
            clock=self._clock,
            name=name,
        )

    async def execute_call[T](
        self,
        operation: Callable[[], Awaitable[T]],
        label: str = "call",
    ) -> CallResult[T]:
        """Run ``operation`` with adaptive delay and bounded retries. Never raises."""

        self._apply_pressure_penalty()
        last_error: BaseException | None = None
        max_retries = self.config.max_retries

        for attempt in range(1, max_retries + 1):
            await self._sleep(self._current_delay)
            started = self._clock()
            try:
                value = await operation()
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                if is_rate_limit_error(exc):
                    hits = self.pressure.record_hit()
                    self._consecutive_failures += 1
                    self._consecutive_successes = 0
                    self._increase_delay()
                    log.warning(
                        "[%s] %s rate limited (attempt %d/%d, window hits %d); delay now %.2fs",
                        self.name,
                        label,
                        attempt,
                        max_retries,
                        hits,
                        self._current_delay,
                    )
                    if attempt < max_retries:
                        await self._sleep(self._backoff_delay(attempt))
                else:
                    self._record_failure()
                    log.warning(
                        "[%s] %s failed (attempt %d/%d): %s",
                        self.name,
                        label,
                        attempt,
                        max_retries,
                        exc,
                    )
                    if attempt < max_retries:
                        await self._sleep(self._current_delay)
                continue

            self._record_success(self._clock() - started)
            return CallResult(
                success=True,
                value=value,
                attempts=attempt,
                final_delay=self._current_delay,
            )

        log.error("[%s] %s gave up after %d attempts: %s", self.name, label, max_retries, last_error)
        return CallResult(
            success=False,
            error=last_error,
            attempts=max_retries,
            final_delay=self._current_delay,
        )

    async def execute_batch[T](
        self,
        operations: Sequence[Callable[[], Awaitable[T]]],
        label: str = "batch",
    ) -> list[CallResult[T]]:
        """Run ``operations`` sequentially in fixed-size batches with latency-aware pauses."""

        results: list[CallResult[T]] = []
        batch_size = self.config.batch_size
        for start in range(0, len(operations), batch_size):
            batch = operations[start : start + batch_size]
            batch_results = [
                await self.execute_call(operation, f"{label}[{start + offset}]")
                for offset, operation in enumerate(batch)
            ]
            results.extend(batch_results)

            if any(
                not result.success and result.error is not None and is_rate_limit_error(result.error)
                for result in batch_results
            ):
                self._increase_delay()

            if start + batch_size < len(operations):
                pause = self._batch_delay()
                log.debug("[%s] pausing %.2fs between %s batches", self.name, pause, label)
                await self._sleep(pause)
        return results

    async def pause(self, seconds: float) -> None:
        """Suspend for ``seconds`` using the limiter's clock; callers never sleep directly."""

        if seconds > 0:
            await self._sleep(seconds)

    def stats(self) -> LimiterStats:
        return LimiterStats(
            current_delay=self._current_delay,
            consecutive_successes=self._consecutive_successes,
            consecutive_failures=self._consecutive_failures,
            average_response_time=self._average_response_time(),
            pressure_hits=self.pressure.hits,
        )

    def reset(self) -> None:
        self._current_delay = self.config.base_delay
        self._consecutive_successes = 0
        self._consecutive_failures = 0
        self._response_times.clear()

    def _clamp(self, delay: float) -> float:
        return min(max(delay, self.config.base_delay), self.config.max_delay)

    def _increase_delay(self) -> None:
        self._current_delay = self._clamp(self._current_delay * self.config.backoff_multiplier)

    def _backoff_delay(self, attempt: int) -> float:
        return min(
            self._current_delay * self.config.backoff_multiplier**attempt,
            self.config.max_delay,
        )

    def _record_success(self, elapsed: float) -> None:
        self._response_times.append(max(elapsed, 0.0))
        self._consecutive_successes += 1
        self._consecutive_failures = 0
        if self._consecutive_successes >= self.config.adaptive_threshold:
            self._current_delay = self._clamp(self._current_delay * self.config.decay_factor)
            self._consecutive_successes = 0

    def _record_failure(self) -> None:
        self._consecutive_failures += 1
        self._consecutive_successes = 0
        if self._consecutive_failures >= self.config.adaptive_threshold:
            self._increase_delay()
            self._consecutive_failures = 0

    def _apply_pressure_penalty(self) -> None:
        if not self.pressure.under_pressure():
            return
        self._current_delay = self._clamp(self._current_delay * self.pressure.penalty)
        log.warning(
            "[%s] shared rate-limit pressure high (%d hits); delay now %.2fs",
            self.name,
            self.pressure.hits,
            self._current_delay,
        )

    def _average_response_time(self) -> float | None:
        if not self._response_times:
            return None
        return sum(self._response_times) / len(self._response_times)

    def _batch_delay(self) -> float:
        average = self._average_response_time()
        if average is None:
            return self._current_delay * 1.2
        if average > _SLOW_RESPONSE_SECONDS:
            return self._current_delay * 1.5
        if average > _MODERATE_RESPONSE_SECONDS:
            return self._current_delay * 1.2
        return self._current_delay
