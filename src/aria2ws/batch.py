"""Multicall support: several calls in one wire round trip.

The daemon answers a batch with an array of responses. Per-item ids are not
guaranteed to survive, so responses are paired with requests by position.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from aria2ws.correlator import RequestCorrelator
from aria2ws.error import RpcError
from aria2ws.wire import JsonRpcRequest, serialize_frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MulticallItem:
    """One call in a multicall batch."""

    method: str
    params: list[Any] = field(default_factory=list)


def _settle_item(future: asyncio.Future[Any], item: Any) -> None:
    if future.done():
        return
    if not isinstance(item, dict):
        msg = "Batch element is not a response object"
        future.set_exception(RpcError.protocol_violation(msg, item))
    elif item.get("error") is not None:
        future.set_exception(RpcError.server(item["error"]))
    elif "result" in item:
        future.set_result(item["result"])
    else:
        msg = "Batch element has neither result nor error"
        future.set_exception(RpcError.protocol_violation(msg, item))


def fan_out(futures: Sequence[asyncio.Future[Any]], response: Any) -> None:
    """Settle ``futures`` from a batch ``response``, pairing by position.

    Futures without a matching element are rejected with PROTOCOL_VIOLATION.
    A single error object instead of an array rejects every future with it.
    """
    if not isinstance(response, list):
        if isinstance(response, dict) and response.get("error") is not None:
            error = RpcError.server(response["error"])
        else:
            error = RpcError.protocol_violation("Batch response is not an array", response)
        for future in futures:
            if not future.done():
                future.set_exception(error)
        return

    if len(response) != len(futures):
        logger.warning(
            "Batch response has %d elements for %d calls", len(response), len(futures)
        )

    for index, future in enumerate(futures):
        if index < len(response):
            _settle_item(future, response[index])
        elif not future.done():
            msg = f"Batch response has no element {index} ({len(response)} received)"
            future.set_exception(RpcError.protocol_violation(msg, response))


class MulticallBatcher:
    """Packs calls into one batch frame under a single correlation key."""

    def __init__(self, correlator: RequestCorrelator) -> None:
        self._correlator = correlator

    def build_requests(
        self, items: Sequence[MulticallItem], key: str
    ) -> list[JsonRpcRequest]:
        """Build one request per item; the first one carries ``key`` as its id."""
        identifiers = [key] + [self._correlator.new_identifier() for _ in items[1:]]
        return [
            self._correlator.build_request(item.method, item.params, identifier)
            for item, identifier in zip(items, identifiers, strict=True)
        ]

    async def batch(self, items: Sequence[MulticallItem]) -> list[asyncio.Future[Any]]:
        """Send ``items`` as one batch.

        Returns:
            One future per item, in item order, settled when the batch
            response arrives
        """
        if not items:
            return []

        loop = asyncio.get_running_loop()
        key = self._correlator.new_identifier()
        requests = self.build_requests(items, key)
        futures: list[asyncio.Future[Any]] = [loop.create_future() for _ in requests]

        def abandon(error: RpcError) -> None:
            for future in futures:
                if not future.done():
                    future.set_exception(error)

        self._correlator.register(
            key, lambda response: fan_out(futures, response), abandon, "multicall"
        )
        logger.debug("Sending batch of %d calls (id=%s)", len(requests), key)

        try:
            await self._correlator.send(serialize_frame(requests))
        except RpcError:
            self._correlator.discard(key)
            for future in futures:
                if future.done():
                    future.exception()
            raise

        return futures
