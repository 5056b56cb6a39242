"""Error types for the aria2 JSON-RPC client."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Client-side error codes."""

    NOT_CONNECTED = "not_connected"
    CONNECTION_CLOSED = "connection_closed"
    TRANSPORT = "transport"
    SERVER = "server"
    PROTOCOL_VIOLATION = "protocol_violation"
    UNSUPPORTED_VALUE = "unsupported_value"
    MALFORMED_FRAME = "malformed_frame"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RpcError(Exception):
    """RPC error with code, message, and optional data.

    For ``ErrorCode.SERVER`` the ``data`` field holds the ``error`` member of
    the daemon's response exactly as it was received.
    """

    code: ErrorCode
    message: str
    data: Any | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    @staticmethod
    def not_connected(message: str, data: Any | None = None) -> RpcError:
        """Create a NOT_CONNECTED error."""
        return RpcError(ErrorCode.NOT_CONNECTED, message, data)

    @staticmethod
    def connection_closed(message: str, data: Any | None = None) -> RpcError:
        """Create a CONNECTION_CLOSED error."""
        return RpcError(ErrorCode.CONNECTION_CLOSED, message, data)

    @staticmethod
    def transport(message: str, data: Any | None = None) -> RpcError:
        """Create a TRANSPORT error."""
        return RpcError(ErrorCode.TRANSPORT, message, data)

    @staticmethod
    def server(error: Any) -> RpcError:
        """Create a SERVER error carrying the daemon's error value unaltered."""
        if isinstance(error, dict) and "message" in error:
            message = str(error["message"])
        else:
            message = str(error)
        return RpcError(ErrorCode.SERVER, message, error)

    @staticmethod
    def protocol_violation(message: str, data: Any | None = None) -> RpcError:
        """Create a PROTOCOL_VIOLATION error."""
        return RpcError(ErrorCode.PROTOCOL_VIOLATION, message, data)

    @staticmethod
    def unsupported_value(message: str, data: Any | None = None) -> RpcError:
        """Create an UNSUPPORTED_VALUE error."""
        return RpcError(ErrorCode.UNSUPPORTED_VALUE, message, data)

    @staticmethod
    def malformed_frame(message: str, data: Any | None = None) -> RpcError:
        """Create a MALFORMED_FRAME error."""
        return RpcError(ErrorCode.MALFORMED_FRAME, message, data)

    @property
    def server_code(self) -> int | None:
        """Numeric JSON-RPC error code reported by the daemon, if any."""
        if self.code is ErrorCode.SERVER and isinstance(self.data, dict):
            value = self.data.get("code")
            if isinstance(value, int):
                return value
        return None
