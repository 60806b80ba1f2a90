"""
Connection Supervisor

Owns the display link, the outbound command queue and the reconnect
schedule. Opens the link, runs the device reset sequence after every open,
drains queued commands once the device is ready, and keeps reopening the
link after it drops.
"""

from __future__ import annotations

import asyncio
import contextlib
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from oled_bridge.core.connection import CommandQueue, ReconnectSchedule, RetryPolicy
from oled_bridge.core.errors import DeliveryFailedError, LinkOpenError
from oled_bridge.core.logging_utils import get_module_logger
from .protocols import (
    BOOT_SETTLE_DELAY,
    COMMAND_SETTLE_DELAY,
    RECONNECT_INTERVAL,
    RESET_SEQUENCE,
)
from .sender import CommandSender
from .transports import BaseLink, LinkEvent, SerialLink

if TYPE_CHECKING:
    from oled_bridge.config import BridgeConfig

logger = get_module_logger("ConnectionSupervisor")


class SupervisorState(Enum):
    UNINITIALIZED = "uninitialized"
    OPENING = "opening"
    OPEN = "open"
    CLOSED = "closed"
    SHUTDOWN = "shutdown"


class ConnectionSupervisor:
    """
    Single owner of the display connection.

    Consumers get the supervisor (or its ``sender``) injected; nothing else
    touches the link.

    Example:
        supervisor = ConnectionSupervisor(SerialLink("/dev/ttyACM0"))
        await supervisor.start()
        await supervisor.sender.send("clear")
        ...
        await supervisor.shutdown()
    """

    def __init__(
        self,
        link: BaseLink,
        *,
        auto_reconnect: bool = True,
        reconnect_interval: float = RECONNECT_INTERVAL,
        boot_settle_delay: float = BOOT_SETTLE_DELAY,
        command_settle_delay: float = COMMAND_SETTLE_DELAY,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.link = link
        self.link.on_event = self._on_link_event
        self.auto_reconnect = auto_reconnect
        self.boot_settle_delay = boot_settle_delay
        self._sleep = sleep

        self.queue = CommandQueue()
        self.sender = CommandSender(
            link,
            self.queue,
            retry_policy=retry_policy,
            settle_delay=command_settle_delay,
            is_ready=lambda: self.is_ready,
            sleep=sleep,
        )
        self.schedule = ReconnectSchedule(reconnect_interval, device_id=link.port, sleep=sleep)

        self._state = SupervisorState.UNINITIALIZED
        self._ready = False
        self._init_task: Optional[asyncio.Task] = None
        self._open_attempts = 0
        self._failed_open_attempts = 0
        self._last_open_error: Optional[LinkOpenError] = None

    @classmethod
    def from_config(cls, config: "BridgeConfig") -> "ConnectionSupervisor":
        link = SerialLink(config.serial_port, config.baud_rate)
        retry_policy = RetryPolicy(
            max_attempts=config.max_attempts,
            base_delay=config.retry_base_delay,
        )
        return cls(
            link,
            auto_reconnect=config.auto_reconnect,
            reconnect_interval=config.reconnect_interval,
            boot_settle_delay=config.boot_settle_delay,
            command_settle_delay=config.command_settle_delay,
            retry_policy=retry_policy,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def is_ready(self) -> bool:
        """Link open and reset sequence completed."""
        return self._ready and self.link.is_open

    @property
    def display_connected(self) -> bool:
        return self.link.is_open

    @property
    def queued_commands(self) -> int:
        return len(self.queue)

    @property
    def failed_open_attempts(self) -> int:
        return self._failed_open_attempts

    def _set_state(self, state: SupervisorState) -> None:
        if state is self._state:
            return
        logger.debug("State %s -> %s", self._state.value, state.value)
        self._state = state

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "port": self.link.port,
            "baudRate": self.link.baudrate,
            "displayConnected": self.display_connected,
            "ready": self.is_ready,
            "queuedCommands": self.queued_commands,
            "reconnectArmed": self.schedule.is_armed,
            "openAttempts": self._open_attempts,
            "failedOpenAttempts": self._failed_open_attempts,
            "lastError": self.link.last_error,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """
        Open the link and run the reset sequence.

        Returns True when the device is ready. With auto-reconnect a failed
        open arms the reconnect schedule and returns False; without it the
        LinkOpenError is raised.
        """
        if self._state is not SupervisorState.UNINITIALIZED:
            logger.warning("start() called in state %s", self._state.value)
            return self.is_ready

        logger.info(
            "Initializing serial connection to %s at %d baud",
            self.link.port, self.link.baudrate,
        )

        if await self._attempt_open():
            if self._init_task is not None:
                await asyncio.wait({self._init_task})
            return self.is_ready

        if not self.auto_reconnect:
            raise self._last_open_error or LinkOpenError(
                f"Failed to open {self.link.port}", self.link.port
            )

        self.schedule.arm(self._attempt_open)
        return False

    async def shutdown(self) -> None:
        """Stop reconnecting, reject queued commands and close the link."""
        if self._state is SupervisorState.SHUTDOWN:
            return

        logger.info("Shutting down display connection on %s", self.link.port)
        self._set_state(SupervisorState.SHUTDOWN)
        self._ready = False

        await self.schedule.disarm()

        init_task, self._init_task = self._init_task, None
        if init_task is not None and not init_task.done():
            init_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await init_task

        await self.sender.stop()
        abandoned = self.queue.abandon_all("shutdown")
        await self.link.close()

        logger.info("Display connection closed (%d queued command(s) abandoned)", abandoned)

    async def _attempt_open(self) -> bool:
        """One open attempt; used by start() and by the reconnect schedule."""
        if self._state is SupervisorState.SHUTDOWN:
            return True
        if self.link.is_open:
            return True

        self._set_state(SupervisorState.OPENING)
        self._open_attempts += 1

        try:
            await self.link.open()
        except LinkOpenError as e:
            self._failed_open_attempts += 1
            self._last_open_error = e
            self._set_state(SupervisorState.CLOSED)
            logger.warning("Open attempt %d failed: %s", self._open_attempts, e)
            return False

        self._set_state(SupervisorState.OPEN)
        self._init_task = asyncio.create_task(
            self._initialize_device(), name=f"device-init:{self.link.port}"
        )
        return True

    async def _initialize_device(self) -> None:
        # The controller reboots on open and drops anything sent before it is up.
        logger.debug("Waiting %.1fs for device boot", self.boot_settle_delay)
        await self._sleep(self.boot_settle_delay)

        try:
            for command in RESET_SEQUENCE:
                if not self.link.is_open:
                    return
                await self.sender.deliver(command, keep_trying=lambda: self.link.is_open)
        except DeliveryFailedError as e:
            logger.error("Device reset failed on %s: %s", self.link.port, e)
            await self.link.close()
            return

        if self._state is not SupervisorState.OPEN or not self.link.is_open:
            return

        self._ready = True
        logger.info("Display ready on %s", self.link.port)
        self.sender.request_drain()

    async def _on_link_event(self, event: LinkEvent, error: Optional[BaseException]) -> None:
        if event is LinkEvent.OPENED:
            logger.debug("Link opened: %s", self.link.port)
            return

        if event is LinkEvent.FAULT:
            logger.error("Serial port error on %s: %s", self.link.port, error)

        self._ready = False

        init_task = self._init_task
        if (
            init_task is not None
            and not init_task.done()
            and init_task is not asyncio.current_task()
        ):
            init_task.cancel()

        if self._state in (SupervisorState.OPENING, SupervisorState.OPEN):
            self._set_state(SupervisorState.CLOSED)
            logger.warning("Serial port closed: %s", self.link.port)

        if self.auto_reconnect and self._state is SupervisorState.CLOSED:
            self.schedule.arm(self._attempt_open)
