"""Request/response correlation over one shared connection."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from aria2ws.connection import Connection
from aria2ws.error import ErrorCode, RpcError
from aria2ws.wire import JsonRpcRequest, JsonRpcResponse, build_request, serialize_frame

logger = logging.getLogger(__name__)


@dataclass
class PendingCall:
    """A call whose response has not arrived yet."""

    identifier: str
    method: str
    settle: Callable[[Any], None]  # receives the raw inbound payload
    abandon: Callable[[RpcError], None]
    created_at: float = field(default_factory=time.monotonic)


class RequestCorrelator:
    """Single-flight bookkeeping for concurrent calls on one connection.

    Identifiers are random UUIDs, so they are never reused, not even after
    the connection is closed and reopened.
    """

    def __init__(self, connection: Connection, token: str | None = None) -> None:
        self._connection = connection
        self._token = token
        self._pending: dict[str, PendingCall] = {}
        connection.events.on("closed", self.abandon_all)

    @staticmethod
    def new_identifier() -> str:
        return str(uuid.uuid4())

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, identifier: Any) -> bool:
        return isinstance(identifier, str) and identifier in self._pending

    def build_request(self, method: str, params: list[Any], identifier: str) -> JsonRpcRequest:
        """Build a request envelope, with the secret token as first param."""
        return build_request(method, params, identifier, self._token)

    def register(
        self,
        identifier: str,
        settle: Callable[[Any], None],
        abandon: Callable[[RpcError], None],
        method: str = "",
    ) -> PendingCall:
        """Register a pending call under ``identifier``."""
        if identifier in self._pending:
            msg = f"Identifier already pending: {identifier}"
            raise ValueError(msg)
        pending = PendingCall(identifier, method, settle, abandon)
        self._pending[identifier] = pending
        return pending

    def discard(self, identifier: str) -> None:
        self._pending.pop(identifier, None)

    async def send(self, frame: str) -> None:
        await self._connection.send(frame)

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Call a remote procedure and return its result.

        Waits for the connection to open if it is still connecting.

        Raises:
            RpcError: SERVER with the daemon's error value as ``data``,
                CONNECTION_CLOSED if the connection closes first, or the
                connection's send error
        """
        identifier = self.new_identifier()
        request = self.build_request(method, params or [], identifier)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def settle(payload: Any) -> None:
            if future.done():
                return
            if not isinstance(payload, dict):
                msg = f"Expected a single response for {method}"
                future.set_exception(RpcError.protocol_violation(msg, payload))
                return
            try:
                future.set_result(JsonRpcResponse.from_json(payload).unwrap())
            except RpcError as e:
                future.set_exception(e)

        def abandon(error: RpcError) -> None:
            if not future.done():
                future.set_exception(error)

        self.register(identifier, settle, abandon, method)
        logger.debug("Calling %s (id=%s)", method, identifier)

        try:
            await self.send(serialize_frame(request))
            return await future
        finally:
            self.discard(identifier)
            if future.done() and not future.cancelled():
                # a close that broke the send also rejected the future
                future.exception()

    def resolve(self, identifier: Any, payload: Any) -> bool:
        """Settle the pending call for ``identifier`` with ``payload``.

        Returns:
            False if no call is pending under ``identifier``
        """
        if not self.is_pending(identifier):
            return False
        pending = self._pending.pop(identifier)
        logger.debug(
            "Resolved %s (id=%s) after %.3fs",
            pending.method,
            identifier,
            time.monotonic() - pending.created_at,
        )
        pending.settle(payload)
        return True

    def abandon_all(self, error: RpcError | None = None) -> None:
        """Reject every pending call."""
        if error is None or error.code is not ErrorCode.CONNECTION_CLOSED:
            cause = str(error) if error is not None else "Connection closed"
            error = RpcError.connection_closed(cause, error)
        pending, self._pending = self._pending, {}
        if pending:
            logger.debug("Abandoning %d pending calls: %s", len(pending), error)
        for call in pending.values():
            call.abandon(error)
