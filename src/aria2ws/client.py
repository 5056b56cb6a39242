"""Client implementations for the aria2 JSON-RPC interface."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence
from typing import Any, Self

import aiohttp

from aria2ws.batch import MulticallBatcher, MulticallItem, fan_out
from aria2ws.config import ClientConfig
from aria2ws.connection import Connection, ConnectionState
from aria2ws.correlator import RequestCorrelator
from aria2ws.error import RpcError
from aria2ws.events import EventEmitter, Listener
from aria2ws.methods import Aria2Methods
from aria2ws.router import NotificationRouter
from aria2ws.transports import HttpTransport, Transport, create_transport
from aria2ws.wire import JsonRpcResponse, build_request

logger = logging.getLogger(__name__)


class WebSocketClient(Aria2Methods):
    """aria2 client over a persistent WebSocket.

    Supports concurrent calls on one connection, server-pushed notifications
    and multicall batches.

    Client events (on :attr:`events`):

    - ``ws.open``, ``ws.close`` (error), ``ws.message`` (raw frame)

    Notifications (via :meth:`on` / :meth:`once`), e.g.
    ``aria2.onDownloadStart``, ``aria2.onDownloadComplete``.

    Example:
        ```python
        async with WebSocketClient(ClientConfig(secret="s3cr3t")) as aria2:
            aria2.on("aria2.onDownloadComplete", lambda event: print(event["gid"]))
            gid = await aria2.add_uri("https://example.com/file.iso")
        ```
    """

    def __init__(
        self, config: ClientConfig | None = None, transport: Transport | None = None
    ) -> None:
        self.config = config or ClientConfig()
        self.events = EventEmitter()
        self.connection = Connection(transport or create_transport(self.config, "websocket"))
        self.connection.events.on("opened", lambda: self.events.emit("ws.open"))
        self.connection.events.on("message", lambda frame: self.events.emit("ws.message", frame))
        self.correlator = RequestCorrelator(self.connection, self.config.token())
        self.router = NotificationRouter(self.connection, self.correlator)
        self.batcher = MulticallBatcher(self.correlator)
        self.connection.events.on("closed", lambda error: self.events.emit("ws.close", error))
        self._started = False

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    def open(self) -> None:
        """Start connecting without waiting. Calls issued meanwhile are queued."""
        self._started = True
        self.connection.open()

    async def connect(self) -> None:
        """Open the connection and wait until it is ready.

        Raises:
            RpcError: If the connection cannot be established
        """
        self.open()
        await self.connection.wait_opened()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection. Pending calls are rejected with CONNECTION_CLOSED."""
        await self.connection.close(code, reason)

    def _ensure_started(self) -> None:
        # the first call opens the connection; after close() it stays closed
        if not self._started:
            self.open()

    async def call(self, method: str, *params: Any) -> Any:
        """Call a remote procedure.

        Args:
            method: The method name, e.g. "aria2.tellStatus"
            *params: Positional params; the secret token is added automatically

        Returns:
            The ``result`` of the response

        Raises:
            RpcError: SERVER if the daemon returned an error, or a
                connection error
        """
        self._ensure_started()
        return await self.correlator.call(method, list(params))

    async def multicall(self, items: Sequence[MulticallItem]) -> list[asyncio.Future[Any]]:
        """Send several calls in one frame.

        Returns:
            One future per item, in the same order

        Example:
            ```python
            futures = await aria2.multicall([
                MulticallItem("aria2.getVersion"),
                MulticallItem("aria2.tellStatus", [gid]),
            ])
            version, status = await asyncio.gather(*futures)
            ```
        """
        self._ensure_started()
        return await self.batcher.batch(items)

    async def raw_send(self, data: str) -> None:
        """Send a raw text frame without correlation."""
        self._ensure_started()
        await self.connection.send(data)

    # Notifications

    def on(self, event: str, listener: Listener) -> Listener:
        """Subscribe to a notification; listener receives the notification params."""
        return self.router.subscribe(event, listener)

    def once(self, event: str, listener: Listener) -> Listener:
        return self.router.subscribe_once(event, listener)

    def off(self, event: str, listener: Listener) -> bool:
        return self.router.unsubscribe(event, listener)

    def when(self, event: str) -> asyncio.Future[tuple[Any, ...]]:
        """Future resolved with the params of the next ``event`` notification."""
        return self.router.wait_for(event)


class HttpClient(Aria2Methods):
    """aria2 client over HTTP GET.

    Every call is an independent request, so server-pushed notifications
    are not available.
    """

    def __init__(
        self, config: ClientConfig | None = None, transport: HttpTransport | None = None
    ) -> None:
        self.config = config or ClientConfig()
        self._transport = transport or create_transport(self.config, "http")
        self._closed = False

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self._open()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session. Later calls fail with NOT_CONNECTED."""
        self._closed = True
        await self._transport.close()

    async def _open(self) -> None:
        if self._closed:
            msg = "Client is closed"
            raise RpcError.not_connected(msg)
        await self._transport.connect()

    async def _request(self, method: str, identifier: str, params: Any) -> Any:
        await self._open()
        try:
            return await self._transport.request(method, identifier, params)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            msg = f"Transport error: {e}"
            raise RpcError.transport(msg) from e

    async def call(self, method: str, *params: Any) -> Any:
        """Call a remote procedure with one GET request.

        Raises:
            RpcError: SERVER if the daemon returned an error, TRANSPORT on
                HTTP failure
        """
        identifier = str(uuid.uuid4())
        request = build_request(method, list(params), identifier, self.config.token())
        logger.debug("HTTP call %s (id=%s)", method, identifier)

        response = await self._request(method, identifier, request.params)
        if not isinstance(response, dict):
            msg = f"Expected a single response for {method}"
            raise RpcError.protocol_violation(msg, response)
        return JsonRpcResponse.from_json(response).unwrap()

    async def multicall(self, items: Sequence[MulticallItem]) -> list[asyncio.Future[Any]]:
        """Send several calls in one GET request.

        Returns:
            One future per item, in the same order, already settled
        """
        if not items:
            return []

        token = self.config.token()
        requests = [
            build_request(item.method, item.params, str(uuid.uuid4()), token)
            for item in items
        ]
        loop = asyncio.get_running_loop()
        futures: list[asyncio.Future[Any]] = [loop.create_future() for _ in requests]

        response = await self._request("", "", [request.to_json() for request in requests])
        fan_out(futures, response)
        return futures
