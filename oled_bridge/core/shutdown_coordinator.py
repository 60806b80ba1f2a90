"""
Shutdown Coordinator - Single point of control for graceful shutdown.

Cleanup callbacks run once, newest first, so components registered after
their dependencies are torn down before them (HTTP server before the
display supervisor, for example).
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, List

from .logging_utils import get_module_logger

logger = get_module_logger("ShutdownCoordinator")

CleanupCallback = Callable[[], Awaitable[None]]


class ShutdownState(Enum):
    """States of the shutdown process."""
    RUNNING = "running"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class ShutdownCoordinator:
    """Coordinates shutdown across all components."""

    def __init__(self):
        self._state = ShutdownState.RUNNING
        self._requested_event = asyncio.Event()
        self._cleanup_callbacks: List[CleanupCallback] = []
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ShutdownState:
        return self._state

    @property
    def is_complete(self) -> bool:
        return self._state is ShutdownState.COMPLETE

    def register_cleanup(self, callback: CleanupCallback) -> None:
        """Register an async cleanup callback; executed in reverse order."""
        self._cleanup_callbacks.append(callback)
        logger.debug("Registered cleanup callback: %s", getattr(callback, "__name__", callback))

    def request_shutdown(self, source: str = "unknown") -> None:
        """Wake anything blocked in wait_for_request(); safe from signal handlers."""
        if not self._requested_event.is_set():
            logger.info("Shutdown requested by %s", source)
            self._requested_event.set()

    async def wait_for_request(self) -> None:
        await self._requested_event.wait()

    async def initiate_shutdown(self, source: str = "unknown") -> None:
        """
        Run all cleanup callbacks.

        If shutdown is already in progress or complete this call is a no-op.

        Args:
            source: Description of what triggered shutdown (for logging)
        """
        async with self._lock:
            if self._state is not ShutdownState.RUNNING:
                logger.debug(
                    "Shutdown already initiated (state=%s), ignoring request from %s",
                    self._state.value, source,
                )
                return
            self._state = ShutdownState.IN_PROGRESS

        self._requested_event.set()
        shutdown_start = time.perf_counter()
        logger.info("Shutdown initiated by %s", source)

        callbacks = list(reversed(self._cleanup_callbacks))
        for index, callback in enumerate(callbacks, 1):
            name = getattr(callback, "__name__", repr(callback))
            started = time.perf_counter()
            try:
                await callback()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Error in cleanup callback %s: %s", name, e, exc_info=True)
                continue
            logger.debug(
                "Cleanup %d/%d %s finished in %.3fs",
                index, len(callbacks), name, time.perf_counter() - started,
            )

        async with self._lock:
            self._state = ShutdownState.COMPLETE

        logger.info("Shutdown complete in %.3fs", time.perf_counter() - shutdown_start)
