"""
Reconnect Handler - Fixed-interval reconnection schedule.

The link is usually down because someone unplugged the display, so the
schedule waits a constant interval between attempts and keeps trying
until an attempt succeeds or the schedule is disarmed.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

from oled_bridge.core.logging_utils import get_module_logger

logger = get_module_logger("ReconnectHandler")

AttemptFunc = Callable[[], Awaitable[bool]]
SleepFunc = Callable[[float], Awaitable[None]]


class ReconnectSchedule:
    """
    One reconnect loop per owner, running as a background task.

    Usage:
        schedule = ReconnectSchedule(interval=5.0, device_id="/dev/ttyACM0")
        schedule.arm(self._attempt_open)   # no-op if already armed
        ...
        await schedule.disarm()

    ``attempt`` returns True once the connection is back; exceptions it
    raises count as a failed attempt.
    """

    def __init__(
        self,
        interval: float,
        device_id: str = "",
        sleep: SleepFunc = asyncio.sleep,
    ):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self.device_id = device_id
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._attempt = 0
        self._next_attempt_at: Optional[float] = None

    @property
    def is_armed(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def attempt(self) -> int:
        """Attempts made since the schedule was last armed."""
        return self._attempt

    @property
    def next_attempt_at(self) -> Optional[float]:
        """``time.monotonic()`` of the next attempt, or None when idle."""
        return self._next_attempt_at

    def arm(self, attempt: AttemptFunc) -> bool:
        """Start the reconnect loop; returns False if it was already armed."""
        if self.is_armed:
            return False
        self._attempt = 0
        self._task = asyncio.create_task(self._run(attempt), name=f"reconnect:{self.device_id}")
        logger.info(
            "Reconnect armed for %s, first attempt in %.1fs",
            self.device_id, self.interval,
        )
        return True

    async def disarm(self) -> None:
        """Cancel a pending reconnect loop and wait for it to finish."""
        task = self._task
        self._task = None
        self._next_attempt_at = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Reconnect disarmed for %s", self.device_id)

    async def _run(self, attempt: AttemptFunc) -> None:
        try:
            while True:
                self._next_attempt_at = time.monotonic() + self.interval
                await self._sleep(self.interval)
                self._next_attempt_at = None
                self._attempt += 1

                try:
                    reconnected = await attempt()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(
                        "Reconnect attempt %d for %s raised: %s",
                        self._attempt, self.device_id, e,
                    )
                    reconnected = False

                if reconnected:
                    logger.info(
                        "Reconnected %s after %d attempt(s)",
                        self.device_id, self._attempt,
                    )
                    return

                logger.debug(
                    "Reconnect attempt %d for %s failed, next in %.1fs",
                    self._attempt, self.device_id, self.interval,
                )
        finally:
            self._next_attempt_at = None
