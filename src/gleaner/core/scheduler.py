# src/gleaner/core/scheduler.py
"""Concurrency- and spacing-gated execution of external calls with retries.

A :class:`CallScheduler` admits a call only while fewer than
``max_concurrent`` calls are in flight *and* at least ``min_start_spacing``
seconds have passed since the last admitted start. Both counters live on the
instance and are only touched while holding one ``asyncio.Condition``, so the
check-and-increment is a single critical section for every task sharing the
scheduler.

Retryable failures are retried with exponential backoff
(``min_start_spacing * backoff_multiplier ** attempt_index``). The slot is
released before backing off and every retry goes through admission again.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from gleaner.models.configuration import DEFAULT_CALL_CONFIG, CallConfig

from .errors import RetryExhaustedError, is_retryable
from .logs import EventType, get_event_logger

T = TypeVar("T")

event_logger = get_event_logger()


@dataclass(slots=True)
class SchedulerStats:
    """Counters describing what a scheduler has admitted so far."""

    admitted: int = 0
    retries: int = 0
    in_flight: int = 0
    peak_in_flight: int = 0


class CallScheduler:
    """Gate and retry calls under one :class:`CallConfig`.

    One instance is meant to serve a single orchestration run. It is not
    shared across runs and holds no global state.
    """

    def __init__(
        self,
        call_config: CallConfig | None = None,
        *,
        is_retryable: Callable[[BaseException], bool] = is_retryable,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        run_id: str | None = None,
    ) -> None:
        self.call_config = call_config or DEFAULT_CALL_CONFIG
        self.stats = SchedulerStats()
        self._is_retryable = is_retryable
        self._sleep = sleep
        self._run_id = run_id
        self._condition = asyncio.Condition()
        self._last_start: float | None = None

    @property
    def in_flight(self) -> int:
        return self.stats.in_flight

    def _spacing_remaining(self, now: float) -> float:
        if self._last_start is None:
            return 0.0
        return self.call_config.min_start_spacing - (now - self._last_start)

    async def acquire(self) -> None:
        """Wait until a call may start, then take a slot."""
        async with self._condition:
            while True:
                timeout: float | None = None
                if self.stats.in_flight < self.call_config.max_concurrent:
                    now = time.monotonic()
                    remaining = self._spacing_remaining(now)
                    if remaining <= 0:
                        self._admit(now)
                        return
                    timeout = remaining
                # Woken early by a release, or by the timeout once spacing elapses
                try:
                    await asyncio.wait_for(self._condition.wait(), timeout)
                except TimeoutError:
                    pass

    def _admit(self, now: float) -> None:
        stats = self.stats
        stats.in_flight += 1
        stats.admitted += 1
        stats.peak_in_flight = max(stats.peak_in_flight, stats.in_flight)
        self._last_start = now
        event_logger.debug(
            f"Admitted call {stats.admitted} ({stats.in_flight} in flight)",
            event_type=EventType.SCHEDULER,
            component=__name__,
            run_id=self._run_id,
            metadata={"in_flight": stats.in_flight, "admitted": stats.admitted},
        )

    async def release(self) -> None:
        """Give back a slot and wake waiting callers."""
        async with self._condition:
            self.stats.in_flight -= 1
            self._condition.notify_all()

    async def _run_attempt(self, task: Callable[[], Awaitable[T]]) -> T:
        await self.acquire()
        try:
            return await task()
        finally:
            await self.release()

    def _before_sleep(self, label: str) -> Callable[[RetryCallState], None]:
        max_attempts = self.call_config.max_retries + 1

        def _log(retry_state: RetryCallState) -> None:
            self.stats.retries += 1
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            error = retry_state.outcome.exception() if retry_state.outcome else None
            event_logger.log_retry_attempt(
                retry_state.attempt_number,
                max_attempts,
                delay * 1000,
                component=__name__,
                run_id=self._run_id,
                metadata={"operation": label, "error": str(error)},
            )

        return _log

    async def execute(self, task: Callable[[], Awaitable[T]], label: str) -> T:
        """Run ``task`` under admission control, retrying retryable failures.

        Non-retryable failures propagate unchanged from the first attempt.
        When the retry budget runs out a :class:`RetryExhaustedError` carrying
        ``label`` and the last failure is raised.
        """
        cfg = self.call_config
        retrying = AsyncRetrying(
            stop=stop_after_attempt(cfg.max_retries + 1),
            wait=wait_exponential(
                multiplier=cfg.min_start_spacing, exp_base=cfg.backoff_multiplier
            ),
            retry=retry_if_exception(self._is_retryable),
            sleep=self._sleep,
            before_sleep=self._before_sleep(label),
            reraise=False,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._run_attempt(task)
        except RetryError as exc:
            last_attempt = exc.last_attempt
            last_error = last_attempt.exception()
            event_logger.log_retry_exhausted(
                last_attempt.attempt_number,
                component=__name__,
                run_id=self._run_id,
                metadata={"operation": label, "error": str(last_error)},
            )
            raise RetryExhaustedError(
                label, last_attempt.attempt_number, last_error
            ) from last_error

        raise RuntimeError("Unreachable")  # pragma: no cover - safety


__all__ = ["CallScheduler", "SchedulerStats"]
