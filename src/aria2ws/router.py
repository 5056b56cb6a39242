"""Inbound frame classification and notification dispatch."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from aria2ws.connection import Connection
from aria2ws.correlator import RequestCorrelator
from aria2ws.error import RpcError
from aria2ws.events import EventEmitter, Listener
from aria2ws.wire import JsonRpcRequest, decode_frame

logger = logging.getLogger(__name__)

ON_DOWNLOAD_START = "aria2.onDownloadStart"
ON_DOWNLOAD_PAUSE = "aria2.onDownloadPause"
ON_DOWNLOAD_STOP = "aria2.onDownloadStop"
ON_DOWNLOAD_COMPLETE = "aria2.onDownloadComplete"
ON_DOWNLOAD_ERROR = "aria2.onDownloadError"
ON_BT_DOWNLOAD_COMPLETE = "aria2.onBtDownloadComplete"

NOTIFICATIONS = (
    ON_DOWNLOAD_START,
    ON_DOWNLOAD_PAUSE,
    ON_DOWNLOAD_STOP,
    ON_DOWNLOAD_COMPLETE,
    ON_DOWNLOAD_ERROR,
    ON_BT_DOWNLOAD_COMPLETE,
)


class NotificationRouter:
    """Routes every inbound frame to the correlator or to subscribers.

    Classification, in order:

    1. an array whose first element carries a pending id is a batch response
    2. an object whose id is pending is a response
    3. an object with a method (and no pending id) is a notification;
       subscribers of that method name are called with ``*params``
    4. anything else is malformed: logged and dropped
    """

    def __init__(self, connection: Connection, correlator: RequestCorrelator) -> None:
        self._correlator = correlator
        self._subscribers = EventEmitter()
        connection.events.on("message", self.route)

    def subscribe(self, event: str, listener: Listener) -> Listener:
        return self._subscribers.on(event, listener)

    def subscribe_once(self, event: str, listener: Listener) -> Listener:
        return self._subscribers.once(event, listener)

    def unsubscribe(self, event: str, listener: Listener) -> bool:
        return self._subscribers.off(event, listener)

    def wait_for(self, event: str) -> asyncio.Future[tuple[Any, ...]]:
        """Future resolved with the params of the next ``event`` notification."""
        return self._subscribers.wait_for(event)

    def route(self, frame: str | bytes) -> None:
        """Classify one raw inbound frame. Never raises."""
        try:
            self._route(decode_frame(frame))
        except RpcError as e:
            logger.warning("Dropping malformed frame: %s", e)

    def _route(self, message: Any) -> None:
        if isinstance(message, list):
            if message and isinstance(message[0], dict):
                leading_id = message[0].get("id")
                if self._correlator.resolve(leading_id, message):
                    return
            msg = "Batch response does not match any pending call"
            raise RpcError.malformed_frame(msg, message)

        if not isinstance(message, dict):
            msg = f"Unexpected frame type: {type(message).__name__}"
            raise RpcError.malformed_frame(msg, message)

        if self._correlator.resolve(message.get("id"), message):
            return

        if "method" in message:
            notification = JsonRpcRequest.from_json(message)
            logger.debug("Notification %s: %s", notification.method, notification.params)
            if not self._subscribers.emit(notification.method, *notification.params):
                logger.debug("No subscribers for %s", notification.method)
            return

        msg = f"Response for unknown id: {message.get('id')!r}"
        raise RpcError.malformed_frame(msg, message)
