"""Connection lifecycle for the WebSocket transport.

The Connection owns exactly one transport and is the only component that
changes the open/closed state. Everything else talks to it through
:meth:`Connection.send` and the signals on :attr:`Connection.events`:

- ``"opened"``: the transport became ready
- ``"closed"`` (error): the connection closed; ``error`` says why
- ``"message"`` (frame): every inbound text frame, before any routing
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from contextlib import suppress
from enum import Enum

from aria2ws.error import RpcError
from aria2ws.events import EventEmitter
from aria2ws.transports import Transport

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle state of a connection."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value


class Connection:
    """Owns one transport and its open/closed lifecycle.

    A fresh connection is CLOSED until :meth:`open` is called. Sends issued
    while CONNECTING wait for the transport and are released in the order
    they arrived.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self.state = ConnectionState.CLOSED
        self.events = EventEmitter()
        self._open_waiters: deque[asyncio.Future[None]] = deque()
        self._reader_task: asyncio.Task[None] | None = None

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def open(self) -> None:
        """Start connecting in the background. Does not block.

        No-op if the connection is already CONNECTING or OPEN.
        """
        if self.state is not ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CONNECTING
        logger.debug("Connecting")
        self._reader_task = asyncio.get_running_loop().create_task(self._run())

    async def wait_opened(self) -> None:
        """Suspend until the connection is open.

        Raises:
            RpcError: NOT_CONNECTED if the connection is closed, or the error
                that closed it while waiting
        """
        if self.state is ConnectionState.OPEN:
            return
        if self.state is ConnectionState.CLOSED:
            msg = "Connection is not open"
            raise RpcError.not_connected(msg)

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._open_waiters.append(waiter)
        await waiter

    async def send(self, frame: str) -> None:
        """Send one text frame, waiting for the connection to open if needed.

        Raises:
            RpcError: NOT_CONNECTED once closed, TRANSPORT if the write fails
        """
        if self.state is ConnectionState.CONNECTING:
            await self.wait_opened()
        if self.state is not ConnectionState.OPEN:
            msg = "Connection is not open"
            raise RpcError.not_connected(msg)

        logger.debug("Sending frame: %s", frame[:200])
        try:
            await self._transport.send(frame)
        except (ConnectionError, RuntimeError, OSError) as e:
            msg = f"Send failed: {e}"
            raise RpcError.transport(msg) from e

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection.

        The ``"closed"`` signal fires before this coroutine first yields, so
        every pending call is rejected in the same event-loop turn. Safe to
        call more than once.
        """
        self._mark_closed(RpcError.connection_closed("Connection closed"))

        task, self._reader_task = self._reader_task, None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        await self._transport.close(code, reason)

    async def _run(self) -> None:
        """Connect, release waiters, then pump inbound frames."""
        try:
            await self._transport.connect()
        except Exception as e:
            logger.warning("Failed to connect: %s", e)
            self._mark_closed(RpcError.transport(f"Failed to connect: {e}"))
            return

        self.state = ConnectionState.OPEN
        logger.debug("Connection open")
        self.events.emit("opened")
        while self._open_waiters:
            waiter = self._open_waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)

        await self._read_loop()

    async def _read_loop(self) -> None:
        while self.state is ConnectionState.OPEN:
            try:
                frame = await self._transport.receive()
            except ValueError as e:
                logger.warning("Dropping unreadable frame: %s", e)
                continue
            except Exception as e:
                logger.debug("Transport closed: %s", e)
                self._mark_closed(RpcError.connection_closed(f"Connection lost: {e}"))
                with suppress(Exception):
                    await self._transport.close()
                return

            logger.debug("Received frame: %s", frame[:200])
            self.events.emit("message", frame)

    def _mark_closed(self, error: RpcError) -> None:
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        logger.debug("Connection closed: %s", error)

        while self._open_waiters:
            waiter = self._open_waiters.popleft()
            if not waiter.done():
                waiter.set_exception(error)
        self.events.emit("closed", error)
