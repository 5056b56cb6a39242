"""Client configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any
from urllib.parse import urlsplit

DEFAULT_PATH = "/jsonrpc"
DEFAULT_PORT = 6800


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for the aria2 clients.

    Validated once at construction and never mutated afterwards.
    """

    host: str = "localhost"
    port: int = DEFAULT_PORT
    path: str = DEFAULT_PATH
    secret: str | None = None
    secure: bool = False  # wss:// and https://
    timeout: float = 30.0  # HTTP request timeout in seconds
    heartbeat: float | None = None  # WebSocket ping interval in seconds
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.host:
            msg = "host must not be empty"
            raise ValueError(msg)
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            msg = f"port must be an integer, got {self.port!r}"
            raise ValueError(msg)
        if not 0 < self.port < 65536:
            msg = f"port out of range: {self.port}"
            raise ValueError(msg)
        if not self.path.startswith("/"):
            msg = f"path must start with '/': {self.path!r}"
            raise ValueError(msg)
        if self.timeout <= 0:
            msg = f"timeout must be positive: {self.timeout}"
            raise ValueError(msg)
        if self.heartbeat is not None and self.heartbeat <= 0:
            msg = f"heartbeat must be positive: {self.heartbeat}"
            raise ValueError(msg)
        # frozen: bypass __setattr__ to store a read-only copy
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @staticmethod
    def from_url(url: str, secret: str | None = None, **kwargs: Any) -> ClientConfig:
        """Build a config from a ``ws://``, ``wss://``, ``http://`` or ``https://`` URL.

        Examples:
            >>> ClientConfig.from_url("ws://localhost:6800/jsonrpc").port
            6800
        """
        parts = urlsplit(url)
        if parts.scheme not in ("ws", "wss", "http", "https"):
            msg = f"Unsupported URL scheme: {url}"
            raise ValueError(msg)
        return ClientConfig(
            host=parts.hostname or "",
            port=parts.port or DEFAULT_PORT,
            path=parts.path or DEFAULT_PATH,
            secret=secret,
            secure=parts.scheme in ("wss", "https"),
            **kwargs,
        )

    def websocket_url(self) -> str:
        scheme = "wss" if self.secure else "ws"
        return f"{scheme}://{self.host}:{self.port}{self.path}"

    def http_url(self) -> str:
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.host}:{self.port}{self.path}"

    def token(self) -> str | None:
        """Return the ``token:<secret>`` parameter, or None without a secret."""
        if self.secret is None:
            return None
        return f"token:{self.secret}"
