"""Transport implementations for the aria2 JSON-RPC interface.

This module provides the two channels aria2 exposes: a persistent WebSocket
(requests, responses and server-pushed notifications) and plain HTTP GET
(one request per call, no notifications). Clients receive a transport at
construction; :func:`create_transport` builds the default one for a config.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Literal, Protocol, Self

import aiohttp

from aria2ws.config import ClientConfig
from aria2ws.error import RpcError
from aria2ws.wire import decode_frame


class Transport(Protocol):
    """A bidirectional text channel."""

    async def connect(self) -> None:
        """Establish the channel."""
        ...

    async def send(self, data: str) -> None:
        """Send one text frame."""
        ...

    async def receive(self) -> str:
        """Receive one text frame; raise ConnectionError once closed."""
        ...

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the channel. Safe to call more than once."""
        ...


class WebSocketTransport:
    """WebSocket transport implementation.

    Provides bidirectional streaming RPC over a WebSocket connection.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        heartbeat: float | None = None,
    ) -> None:
        """Initialize the WebSocket transport.

        Args:
            url: The WebSocket URL (e.g., "ws://localhost:6800/jsonrpc")
            headers: Extra handshake headers
            heartbeat: Ping interval in seconds, or None to disable
        """
        self.url = url
        self.headers = headers or {}
        self.heartbeat = heartbeat
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    async def connect(self) -> None:
        """Open the WebSocket.

        Raises:
            aiohttp.ClientError: If the handshake fails
        """
        self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(
                self.url, headers=self.headers, heartbeat=self.heartbeat
            )
        except BaseException:
            await self._session.close()
            self._session = None
            raise

    async def send(self, data: str) -> None:
        """Send a text frame over the WebSocket.

        Raises:
            RuntimeError: If transport is not connected
        """
        if not self._ws:
            msg = "WebSocket not connected"
            raise RuntimeError(msg)

        await self._ws.send_str(data)

    async def receive(self) -> str:
        """Receive a text frame from the WebSocket.

        Returns:
            Received frame as text

        Raises:
            RuntimeError: If transport is not connected
            ConnectionError: If WebSocket is closed
        """
        if not self._ws:
            msg = "WebSocket not connected"
            raise RuntimeError(msg)

        msg = await self._ws.receive()

        if msg.type == aiohttp.WSMsgType.TEXT:
            return msg.data
        if msg.type == aiohttp.WSMsgType.BINARY:
            return msg.data.decode("utf-8")
        if msg.type in (
            aiohttp.WSMsgType.CLOSE,
            aiohttp.WSMsgType.CLOSING,
            aiohttp.WSMsgType.CLOSED,
        ):
            msg = "WebSocket closed"
            raise ConnectionError(msg)
        if msg.type == aiohttp.WSMsgType.ERROR:
            msg = f"WebSocket error: {self._ws.exception()}"
            raise ConnectionError(msg)
        msg = f"Unexpected message type: {msg.type}"
        raise ValueError(msg)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the WebSocket connection."""
        if self._ws:
            await self._ws.close(code=code, message=reason.encode("utf-8"))
            self._ws = None
        if self._session:
            await self._session.close()
            self._session = None


class HttpTransport:
    """HTTP GET transport implementation.

    Each call is one GET request carrying ``method``, ``id`` and a
    base64-encoded JSON ``params`` array as query parameters.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the HTTP transport.

        Args:
            url: The JSON-RPC endpoint (e.g., "http://localhost:6800/jsonrpc")
            timeout: Request timeout in seconds
            headers: Extra request headers
        """
        self.url = url
        self.timeout = timeout
        self.headers = headers or {}
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    async def connect(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()

    @staticmethod
    def encode_params(params: Any) -> str:
        """Encode a JSON value as the base64 ``params`` query parameter."""
        return base64.b64encode(json.dumps(params).encode("utf-8")).decode("ascii")

    async def request(self, method: str, id: str, params: Any) -> Any:
        """Perform one GET and return the decoded JSON body.

        Args:
            method: JSON-RPC method name ("" for a batch)
            id: Request identifier ("" for a batch)
            params: Params array, or the whole batch array

        Raises:
            RuntimeError: If transport is not open
            aiohttp.ClientError: If request fails
        """
        if not self._session:
            msg = "Transport not open"
            raise RuntimeError(msg)

        query = {"method": method, "id": id, "params": self.encode_params(params)}
        async with self._session.get(
            self.url,
            params=query,
            headers=self.headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            text = await response.text()
            # aria2 answers JSON-RPC errors with a 4xx status and a JSON body
            try:
                return decode_frame(text)
            except RpcError:
                response.raise_for_status()
                raise

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None


def create_transport(
    config: ClientConfig, kind: Literal["websocket", "http"] = "websocket"
) -> WebSocketTransport | HttpTransport:
    """Factory function to create the transport for a config.

    Args:
        config: Client configuration
        kind: "websocket" or "http"

    Returns:
        Appropriate transport implementation

    Examples:
        >>> transport = create_transport(ClientConfig(port=6800))
        >>> transport = create_transport(ClientConfig(port=6800), "http")
    """
    if kind == "websocket":
        return WebSocketTransport(
            config.websocket_url(), headers=dict(config.headers), heartbeat=config.heartbeat
        )
    if kind == "http":
        return HttpTransport(config.http_url(), timeout=config.timeout, headers=dict(config.headers))
    msg = f"Unsupported transport kind: {kind}"
    raise ValueError(msg)
