"""
Serial Link

pyserial-asyncio link to the display microcontroller. Inbound lines are
read by a background task only so that drops are noticed promptly; their
content is logged at DEBUG and otherwise ignored.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Optional

import serial
import serial_asyncio

from oled_bridge.core.errors import LinkOpenError, LinkWriteError
from oled_bridge.core.logging_utils import get_module_logger
from .base_transport import BaseLink, LinkEvent
from ..protocols import DEFAULT_BAUD_RATE

logger = get_module_logger("SerialLink")

_IO_ERRORS = (serial.SerialException, OSError)


class SerialLink(BaseLink):
    """
    Serial link to an Arduino-class display controller.

    Example:
        link = SerialLink("/dev/ttyACM0", 9600)
        async with link:
            await link.write(b"clear\n")
    """

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUD_RATE,
        close_timeout: float = 1.0,
    ):
        super().__init__(port, baudrate)
        self.close_timeout = close_timeout
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        return self._open and self._writer is not None

    async def open(self) -> None:
        if self.is_open:
            logger.debug("Already open on %s", self.port)
            return

        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self.port,
                baudrate=self.baudrate,
            )
        except asyncio.CancelledError:
            raise
        except (*_IO_ERRORS, ValueError) as exc:
            self._reader = None
            self._writer = None
            self._last_error = str(exc)
            raise LinkOpenError(f"Failed to open {self.port}: {exc}", self.port) from exc

        self._open = True
        self._last_error = None
        self._read_task = asyncio.create_task(self._read_loop(), name=f"link-reader:{self.port}")
        logger.info("Opened %s at %d baud", self.port, self.baudrate)
        await self._emit(LinkEvent.OPENED)

    async def close(self) -> None:
        was_open = self._open
        await self._teardown()
        if was_open:
            logger.info("Closed %s", self.port)
            await self._emit(LinkEvent.CLOSED)

    async def write(self, data: bytes) -> None:
        if not self.is_open:
            raise LinkWriteError(f"Cannot write to {self.port}: not open", self.port)

        try:
            self._writer.write(data)
            await self._writer.drain()
        except asyncio.CancelledError:
            raise
        except _IO_ERRORS as exc:
            self._last_error = str(exc)
            raise LinkWriteError(f"Write error on {self.port}: {exc}", self.port) from exc

        logger.debug("Wrote to %s: %r", self.port, data)

    async def _read_loop(self) -> None:
        error: Optional[BaseException] = None
        try:
            while self._open and self._reader is not None:
                line = await self._reader.readline()
                if not line:
                    logger.warning("Serial stream ended on %s (EOF)", self.port)
                    break
                reply = line.decode('utf-8', errors='replace').strip()
                if reply:
                    logger.debug("Received from %s: %s", self.port, reply)
        except asyncio.CancelledError:
            raise
        except _IO_ERRORS as exc:
            error = exc
            logger.error("Read error on %s: %s", self.port, exc)

        if not self._open:
            return

        self._last_error = str(error) if error else "Stream ended (EOF)"
        await self._teardown()
        if error is not None:
            await self._emit(LinkEvent.FAULT, error)
        await self._emit(LinkEvent.CLOSED)

    async def _teardown(self) -> None:
        self._open = False
        read_task, self._read_task = self._read_task, None
        writer, self._writer = self._writer, None
        self._reader = None

        if read_task is not None and read_task is not asyncio.current_task() and not read_task.done():
            read_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await read_task

        if writer is None:
            return

        with contextlib.suppress(*_IO_ERRORS):
            writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=self.close_timeout)
        except asyncio.TimeoutError:
            logger.debug("Timeout waiting for serial close on %s", self.port)
        except _IO_ERRORS as exc:
            logger.debug("Error closing serial on %s: %s", self.port, exc)
