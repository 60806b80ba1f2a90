"""
Retry Policy - Bounded retries with linear backoff.

Each retry waits ``base_delay * n`` where ``n`` is the number of attempts
made so far: with the defaults a command is tried three times with 0.5s
and 1.0s pauses in between.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from oled_bridge.core.logging_utils import get_module_logger

logger = get_module_logger("RetryPolicy")

SleepFunc = Callable[[float], Awaitable[None]]


class RetryOutcome(Enum):
    """Outcome of a retry operation."""
    SUCCESS = "success"
    EXHAUSTED = "exhausted"  # All attempts failed
    ABORTED = "aborted"      # keep_trying() turned false between attempts


@dataclass
class RetryAttempt:
    """Record of a single attempt."""
    attempt_number: int
    started_at: float
    duration_ms: float
    success: bool
    delay_before: float = 0.0
    error: Optional[BaseException] = None


@dataclass
class RetryResult:
    """Result of a retry operation."""
    outcome: RetryOutcome
    attempts: List[RetryAttempt] = field(default_factory=list)
    total_duration_ms: float = 0.0
    final_error: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.outcome is RetryOutcome.SUCCESS

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def delays(self) -> List[float]:
        """Backoff delays actually waited, in order."""
        return [a.delay_before for a in self.attempts if a.delay_before > 0]


class RetryPolicy:
    """
    Retry an async operation a bounded number of times.

    The operation signals failure by raising one of ``retry_on``; anything
    else propagates immediately. ``asyncio.CancelledError`` is never
    swallowed.

    Usage:
        policy = RetryPolicy(max_attempts=3, base_delay=0.5)
        result = await policy.execute(
            lambda: link.write(payload),
            retry_on=(LinkWriteError,),
            on_retry=lambda attempt, error: logger.warning(
                "Retry %d: %s", attempt, error
            ),
        )
        if not result.success:
            raise DeliveryFailedError(command, result.attempt_count, result.final_error)
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Args:
            max_attempts: Total attempts including the first one
            base_delay: Linear backoff unit in seconds
            sleep: Awaitable used for the backoff wait
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    def get_delay(self, attempt: int) -> float:
        """
        Delay to wait before ``attempt`` (1-based).

        The first attempt never waits; attempt ``n`` waits
        ``base_delay * (n - 1)``.
        """
        if attempt <= 1:
            return 0.0
        return max(0.0, self.base_delay * (attempt - 1))

    async def execute(
        self,
        operation: Callable[[], Awaitable[object]],
        retry_on: tuple = (Exception,),
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
        keep_trying: Optional[Callable[[], bool]] = None,
    ) -> RetryResult:
        """
        Run ``operation`` until it returns or attempts run out.

        Args:
            operation: Zero-argument coroutine factory
            retry_on: Exception types that count as a retryable failure
            on_retry: Called with (next_attempt, last_error) before each wait
            keep_trying: Checked before and after each wait; a False result
                ends the run as ABORTED without another attempt

        Returns:
            RetryResult with the attempt history
        """
        attempts: List[RetryAttempt] = []
        start_time = time.monotonic()
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            delay = 0.0
            if attempt > 1:
                if keep_trying is not None and not keep_trying():
                    return self._aborted(attempts, start_time, last_error)
                delay = self.get_delay(attempt)
                if on_retry and last_error is not None:
                    on_retry(attempt, last_error)
                logger.debug(
                    "Retry attempt %d/%d after %.2fs delay",
                    attempt, self.max_attempts, delay,
                )
                await self._sleep(delay)
                if keep_trying is not None and not keep_trying():
                    return self._aborted(attempts, start_time, last_error)

            attempt_start = time.monotonic()
            try:
                await operation()
            except asyncio.CancelledError:
                raise
            except retry_on as e:
                last_error = e
                attempts.append(RetryAttempt(
                    attempt_number=attempt,
                    started_at=attempt_start,
                    duration_ms=(time.monotonic() - attempt_start) * 1000,
                    success=False,
                    delay_before=delay,
                    error=e,
                ))
                logger.debug("Attempt %d failed: %s", attempt, e)
                continue

            attempts.append(RetryAttempt(
                attempt_number=attempt,
                started_at=attempt_start,
                duration_ms=(time.monotonic() - attempt_start) * 1000,
                success=True,
                delay_before=delay,
            ))
            return RetryResult(
                outcome=RetryOutcome.SUCCESS,
                attempts=attempts,
                total_duration_ms=(time.monotonic() - start_time) * 1000,
            )

        return RetryResult(
            outcome=RetryOutcome.EXHAUSTED,
            attempts=attempts,
            total_duration_ms=(time.monotonic() - start_time) * 1000,
            final_error=last_error,
        )

    def _aborted(
        self,
        attempts: List[RetryAttempt],
        start_time: float,
        last_error: Optional[BaseException],
    ) -> RetryResult:
        logger.debug("Retry abandoned after %d attempt(s)", len(attempts))
        return RetryResult(
            outcome=RetryOutcome.ABORTED,
            attempts=attempts,
            total_duration_ms=(time.monotonic() - start_time) * 1000,
            final_error=last_error,
        )
