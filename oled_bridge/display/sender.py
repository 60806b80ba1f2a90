"""
Command Sender

Puts display commands on the wire one at a time. Every command passes
through the CommandQueue so that ordering holds across reconnects and a
single drain loop is the only writer on the link.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from oled_bridge.core.connection import CommandQueue, RetryPolicy
from oled_bridge.core.errors import DeliveryFailedError, LinkWriteError, QueueAbandonedError
from oled_bridge.core.logging_utils import get_module_logger
from .protocols import (
    COMMAND_SETTLE_DELAY,
    LINE_ENDING,
    WRITE_MAX_ATTEMPTS,
    WRITE_RETRY_BASE_DELAY,
    validate_command,
)
from .transports import BaseLink

logger = get_module_logger("CommandSender")


def _task_exception_handler(task: asyncio.Task) -> None:
    """Log exceptions from fire-and-forget drain tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Unhandled exception in drain task: %s", exc)


class CommandSender:
    """
    Retrying, queue-backed command writer for a display link.

    ``send`` is what callers use: it returns once the command has been
    written and the settle delay has passed, raises DeliveryFailedError if
    every attempt failed, or QueueAbandonedError if the owner shut down
    before the link came back.
    """

    def __init__(
        self,
        link: BaseLink,
        queue: CommandQueue,
        retry_policy: Optional[RetryPolicy] = None,
        settle_delay: float = COMMAND_SETTLE_DELAY,
        is_ready: Optional[Callable[[], bool]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            link: Link the commands are written to
            queue: Queue shared with the connection supervisor
            retry_policy: Write retry policy (3 attempts, 0.5s linear backoff)
            settle_delay: Pause after each successful write
            is_ready: Predicate gating the drain loop (defaults to link.is_open)
            sleep: Awaitable used for the settle delay
        """
        self.link = link
        self.queue = queue
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=WRITE_MAX_ATTEMPTS,
            base_delay=WRITE_RETRY_BASE_DELAY,
            sleep=sleep,
        )
        self.settle_delay = settle_delay
        self._is_ready = is_ready or (lambda: link.is_open)
        self._sleep = sleep
        self._drain_task: Optional[asyncio.Task] = None

        self.delivered_count = 0
        self.failed_count = 0

    @property
    def is_ready(self) -> bool:
        return self._is_ready()

    async def send(self, command: str) -> None:
        """Queue ``command`` and wait until it has been delivered."""
        validate_command(command)
        pending = self.queue.enqueue(command)

        if self._is_ready():
            self.request_drain()
        else:
            logger.warning(
                "Not connected, queuing command: %s (%d pending)",
                command, len(self.queue),
            )

        await pending.future

    def request_drain(self) -> Optional[asyncio.Task]:
        """Start a background drain unless one is already running."""
        if self.queue.is_draining or not self.queue:
            return None
        if self._drain_task is not None and not self._drain_task.done():
            return self._drain_task
        self._drain_task = asyncio.create_task(self.drain(), name=f"drain:{self.link.port}")
        self._drain_task.add_done_callback(_task_exception_handler)
        return self._drain_task

    async def drain(self) -> int:
        """
        Deliver queued commands in FIFO order while the link stays ready.

        Returns the number delivered. A second concurrent call returns 0
        immediately. Commands left behind when the link drops stay queued.
        """
        if not self.queue.begin_drain():
            return 0

        delivered = 0
        try:
            if len(self.queue) > 1:
                logger.info("Processing %d queued commands", len(self.queue))

            while self._is_ready():
                pending = self.queue.drain_one()
                if pending is None:
                    break

                try:
                    await self.deliver(pending.command, keep_trying=self._is_ready)
                except DeliveryFailedError as e:
                    pending.reject(e)
                    continue
                except asyncio.CancelledError:
                    pending.reject(QueueAbandonedError(pending.command, "drain cancelled"))
                    raise

                pending.resolve()
                delivered += 1
        finally:
            self.queue.end_drain()

        if self.queue and not self._is_ready():
            logger.info("Drain paused with %d command(s) still queued", len(self.queue))
        return delivered

    async def deliver(self, command: str, keep_trying: Optional[Callable[[], bool]] = None) -> None:
        """
        Write one command immediately, retrying on write errors.

        Bypasses the queue; the supervisor uses it for the reset sequence
        before the link is declared ready. Retries stop early once
        ``keep_trying`` returns False, so a stale writer never touches a
        link that has since been reopened.
        """
        validate_command(command)
        payload = f"{command}{LINE_ENDING}".encode('utf-8')
        max_attempts = self.retry_policy.max_attempts

        logger.debug("Sending command: %s", command)
        result = await self.retry_policy.execute(
            lambda: self.link.write(payload),
            retry_on=(LinkWriteError,),
            on_retry=lambda attempt, error: logger.warning(
                "Retrying command (%d/%d): %s (%s)", attempt, max_attempts, command, error
            ),
            keep_trying=keep_trying,
        )

        if not result.success:
            self.failed_count += 1
            logger.error(
                "Failed to send command after %d attempts: %s (%s)",
                result.attempt_count, command, result.final_error,
            )
            raise DeliveryFailedError(command, result.attempt_count, result.final_error)

        self.delivered_count += 1
        # Controller needs this long to process a line before the next one.
        await self._sleep(self.settle_delay)

    async def stop(self) -> None:
        """Cancel a background drain, if any."""
        task, self._drain_task = self._drain_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
