"""Wire envelopes for aria2's JSON-RPC 2.0 interface.

A frame on the wire is one of:

- a request:  ``{"jsonrpc": "2.0", "id": "...", "method": "...", "params": [...]}``
- a response: ``{"jsonrpc": "2.0", "id": "...", "result": ...}`` or ``"error"``
- a batch: a JSON array of requests or responses

Server-pushed notifications are request-shaped and carry no ``id``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from aria2ws.error import RpcError

JSONRPC_VERSION = "2.0"


@dataclass(frozen=True)
class JsonRpcRequest:
    """Request (or notification) envelope."""

    method: str
    params: list[Any] = field(default_factory=list)
    id: str | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None

    def to_json(self) -> dict[str, Any]:
        """Convert to a JSON object."""
        result: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION}
        if self.id is not None:
            result["id"] = self.id
        result["method"] = self.method
        result["params"] = list(self.params)
        return result

    @staticmethod
    def from_json(obj: dict[str, Any]) -> JsonRpcRequest:
        """Parse from a JSON object."""
        method = obj.get("method")
        if not isinstance(method, str):
            msg = "Request envelope requires a string method"
            raise RpcError.malformed_frame(msg, obj)
        params = obj.get("params", [])
        if params is None:
            params = []
        if not isinstance(params, list):
            msg = "Request params must be an array"
            raise RpcError.malformed_frame(msg, obj)
        return JsonRpcRequest(method, params, obj.get("id"))


@dataclass(frozen=True)
class JsonRpcResponse:
    """Response envelope. Exactly one of ``result`` / ``error`` is meaningful."""

    id: str | None
    result: Any = None
    error: Any = None
    has_error: bool = False

    def to_json(self) -> dict[str, Any]:
        """Convert to a JSON object."""
        result: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id}
        if self.has_error:
            result["error"] = self.error
        else:
            result["result"] = self.result
        return result

    @staticmethod
    def from_json(obj: dict[str, Any]) -> JsonRpcResponse:
        """Parse from a JSON object."""
        if "error" in obj and obj["error"] is not None:
            return JsonRpcResponse(obj.get("id"), error=obj["error"], has_error=True)
        if "result" in obj:
            return JsonRpcResponse(obj.get("id"), result=obj["result"])
        msg = "Response envelope requires a result or an error"
        raise RpcError.malformed_frame(msg, obj)

    def unwrap(self) -> Any:
        """Return the result, or raise the daemon's error."""
        if self.has_error:
            raise RpcError.server(self.error)
        return self.result


Envelope = JsonRpcRequest | JsonRpcResponse


def envelope_from_json(obj: Any) -> Envelope:
    """Parse one JSON object into a request or response envelope."""
    if not isinstance(obj, dict):
        msg = f"Envelope must be a JSON object, got {type(obj).__name__}"
        raise RpcError.malformed_frame(msg, obj)
    if "method" in obj:
        return JsonRpcRequest.from_json(obj)
    return JsonRpcResponse.from_json(obj)


def decode_frame(text: str | bytes) -> Any:
    """Decode a raw frame into plain JSON data.

    Raises:
        RpcError: MALFORMED_FRAME when the frame is not valid JSON
    """
    try:
        return json.loads(text)
    except (ValueError, UnicodeDecodeError) as e:
        msg = f"Frame is not valid JSON: {e}"
        raise RpcError.malformed_frame(msg, text) from e


def serialize_frame(message: Envelope | list[Envelope]) -> str:
    """Serialize an envelope or a batch of envelopes into a text frame."""
    if isinstance(message, list):
        return json.dumps([item.to_json() for item in message])
    return json.dumps(message.to_json())


def parse_frame(text: str | bytes) -> Envelope | list[Envelope]:
    """Parse a text frame into an envelope or a batch of envelopes."""
    data = decode_frame(text)
    if isinstance(data, list):
        return [envelope_from_json(item) for item in data]
    return envelope_from_json(data)


def build_request(
    method: str, params: list[Any], identifier: str, token: str | None = None
) -> JsonRpcRequest:
    """Build a request envelope, with ``token`` as the first param when set."""
    if token is not None:
        params = [token, *params]
    return JsonRpcRequest(method, list(params), identifier)
