"""aria2ws - asyncio client for the aria2 JSON-RPC interface

This module provides WebSocket and HTTP clients for aria2's JSON-RPC 2.0
interface, with concurrent call correlation, server-pushed notifications,
multicall batches and a codec for aria2's string-encoded values.
"""

from aria2ws.batch import MulticallItem
from aria2ws.client import HttpClient, WebSocketClient
from aria2ws.codec import ValueKind, decode_value, encode_value
from aria2ws.config import ClientConfig
from aria2ws.connection import ConnectionState
from aria2ws.error import ErrorCode, RpcError

__version__ = "0.1.0"

__all__ = [
    # Clients
    "WebSocketClient",
    "HttpClient",
    "ClientConfig",
    "MulticallItem",
    "ConnectionState",
    # Codec
    "ValueKind",
    "encode_value",
    "decode_value",
    # Errors
    "RpcError",
    "ErrorCode",
]
