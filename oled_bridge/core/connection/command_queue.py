"""
Command Queue - FIFO buffer of outbound commands awaiting a usable link.

Producers only append; a single drain loop removes entries. Each entry
carries a future that is resolved exactly once: on delivery, on terminal
delivery failure, or when the queue is abandoned at shutdown. An abandoned
queue stays closed and rejects new commands straight away.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

from oled_bridge.core.errors import QueueAbandonedError
from oled_bridge.core.logging_utils import get_module_logger

logger = get_module_logger("CommandQueue")


def _new_future() -> asyncio.Future:
    return asyncio.get_running_loop().create_future()


@dataclass
class PendingCommand:
    """A command waiting to be written to the link."""
    command: str
    enqueued_at: float = field(default_factory=time.monotonic)
    future: asyncio.Future = field(default_factory=_new_future)

    @property
    def done(self) -> bool:
        return self.future.done()

    def waited_ms(self) -> float:
        return (time.monotonic() - self.enqueued_at) * 1000

    def resolve(self) -> None:
        if not self.future.done():
            self.future.set_result(None)

    def reject(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


class CommandQueue:
    """Unbounded FIFO of PendingCommand with a drain-in-progress flag."""

    def __init__(self):
        self._entries: Deque[PendingCommand] = deque()
        self._draining = False
        self._closed_reason: Optional[str] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def enqueue(self, command: str) -> PendingCommand:
        """Append ``command`` to the tail and return its pending entry.

        Raises QueueAbandonedError once the queue has been abandoned.
        """
        if self._closed_reason is not None:
            raise QueueAbandonedError(command, self._closed_reason)
        pending = PendingCommand(command)
        self._entries.append(pending)
        logger.debug("Queued %r (depth %d)", command, len(self._entries))
        return pending

    def drain_one(self) -> Optional[PendingCommand]:
        """Remove and return the head entry, or None when empty."""
        while self._entries:
            pending = self._entries.popleft()
            # Caller was cancelled while waiting; nobody needs this write.
            if pending.future.cancelled():
                logger.debug("Skipping cancelled command %r", pending.command)
                continue
            return pending
        return None

    def begin_drain(self) -> bool:
        """Claim the drain loop; False if another drain is already running."""
        if self._draining:
            return False
        self._draining = True
        return True

    def end_drain(self) -> None:
        self._draining = False

    def abandon_all(self, reason: str = "shutdown") -> int:
        """Reject every queued entry with QueueAbandonedError and close the queue."""
        self._closed_reason = reason
        abandoned = 0
        while self._entries:
            pending = self._entries.popleft()
            if not pending.done:
                pending.reject(QueueAbandonedError(pending.command, reason))
                abandoned += 1
        if abandoned:
            logger.warning("Abandoned %d queued command(s): %s", abandoned, reason)
        return abandoned
