"""Wrappers for the aria2 remote procedures.

Each wrapper builds the positional params aria2 expects, encodes option
dictionaries with :mod:`aria2ws.codec`, and decodes known result structures
field by field. Business semantics are the daemon's; these only marshal.
"""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

from aria2ws import codec

Options = Mapping[str, Any]


class PositionHow(Enum):
    """``how`` argument of ``aria2.changePosition``."""

    SET = "POS_SET"
    CUR = "POS_CUR"
    END = "POS_END"


def _options_and_position(
    options: Options | None, position: int | None
) -> list[Any]:
    params: list[Any] = []
    if options is not None or position is not None:
        params.append(codec.encode_options(options or {}))
    if position is not None:
        params.append(position)
    return params


def _b64(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    return base64.b64encode(data).decode("ascii")


class Aria2Methods(ABC):
    """Mixin of aria2 procedure wrappers.

    Subclasses provide ``async def call(method, *params)``.
    """

    @abstractmethod
    async def call(self, method: str, *params: Any) -> Any:
        """Send one call and return its result."""

    # Session

    async def get_version(self) -> dict[str, Any]:
        return await self.call("aria2.getVersion")

    async def get_session_info(self) -> dict[str, Any]:
        return await self.call("aria2.getSessionInfo")

    async def shutdown(self) -> str:
        return await self.call("aria2.shutdown")

    async def force_shutdown(self) -> str:
        return await self.call("aria2.forceShutdown")

    async def save_session(self) -> str:
        return await self.call("aria2.saveSession")

    # Adding downloads

    async def add_uri(
        self,
        uris: str | Sequence[str],
        options: Options | None = None,
        position: int | None = None,
    ) -> str:
        """Add a new download and return its GID."""
        if isinstance(uris, str):
            uris = [uris]
        return await self.call(
            "aria2.addUri", list(uris), *_options_and_position(options, position)
        )

    async def add_torrent(
        self,
        torrent: bytes | str,
        uris: str | Sequence[str] | None = None,
        options: Options | None = None,
        position: int | None = None,
    ) -> str:
        """Add a BitTorrent download.

        ``torrent`` is the raw .torrent content, or an already base64-encoded
        string.
        """
        if isinstance(uris, str):
            uris = [uris]
        return await self.call(
            "aria2.addTorrent",
            _b64(torrent),
            list(uris or []),
            *_options_and_position(options, position),
        )

    async def add_metalink(
        self,
        metalink: bytes | str,
        options: Options | None = None,
        position: int | None = None,
    ) -> list[str]:
        return await self.call(
            "aria2.addMetalink", _b64(metalink), *_options_and_position(options, position)
        )

    # Controlling downloads

    async def remove(self, gid: str) -> str:
        return await self.call("aria2.remove", gid)

    async def force_remove(self, gid: str) -> str:
        return await self.call("aria2.forceRemove", gid)

    async def pause(self, gid: str) -> str:
        return await self.call("aria2.pause", gid)

    async def force_pause(self, gid: str) -> str:
        return await self.call("aria2.forcePause", gid)

    async def pause_all(self) -> str:
        return await self.call("aria2.pauseAll")

    async def force_pause_all(self) -> str:
        return await self.call("aria2.forcePauseAll")

    async def unpause(self, gid: str) -> str:
        return await self.call("aria2.unpause", gid)

    async def unpause_all(self) -> str:
        return await self.call("aria2.unpauseAll")

    async def change_position(self, gid: str, pos: int, how: PositionHow) -> int:
        return await self.call("aria2.changePosition", gid, pos, PositionHow(how).value)

    async def change_uri(
        self,
        gid: str,
        file_index: int,
        del_uris: Sequence[str],
        add_uris: Sequence[str],
        position: int | None = None,
    ) -> list[int]:
        params: list[Any] = [gid, file_index, list(del_uris), list(add_uris)]
        if position is not None:
            params.append(position)
        return await self.call("aria2.changeUri", *params)

    # Status

    async def tell_status(self, gid: str, keys: Sequence[str] | None = None) -> dict[str, Any]:
        params: list[Any] = [gid]
        if keys is not None:
            params.append(list(keys))
        return codec.decode_download_status(await self.call("aria2.tellStatus", *params))

    async def tell_active(self, keys: Sequence[str] | None = None) -> list[dict[str, Any]]:
        params = [list(keys)] if keys is not None else []
        result = await self.call("aria2.tellActive", *params)
        return [codec.decode_download_status(item) for item in result]

    async def tell_waiting(
        self, offset: int, num: int, keys: Sequence[str] | None = None
    ) -> list[dict[str, Any]]:
        params: list[Any] = [offset, num]
        if keys is not None:
            params.append(list(keys))
        result = await self.call("aria2.tellWaiting", *params)
        return [codec.decode_download_status(item) for item in result]

    async def tell_stopped(
        self, offset: int, num: int, keys: Sequence[str] | None = None
    ) -> list[dict[str, Any]]:
        params: list[Any] = [offset, num]
        if keys is not None:
            params.append(list(keys))
        result = await self.call("aria2.tellStopped", *params)
        return [codec.decode_download_status(item) for item in result]

    async def get_uris(self, gid: str) -> list[dict[str, Any]]:
        return await self.call("aria2.getUris", gid)

    async def get_files(self, gid: str) -> list[dict[str, Any]]:
        result = await self.call("aria2.getFiles", gid)
        return [codec.decode_file_status(item) for item in result]

    async def get_peers(self, gid: str) -> list[dict[str, Any]]:
        result = await self.call("aria2.getPeers", gid)
        return [codec.decode_peer_info(item) for item in result]

    async def get_servers(self, gid: str) -> list[dict[str, Any]]:
        result = await self.call("aria2.getServers", gid)
        return [codec.decode_servers_item(item) for item in result]

    async def get_global_stat(self) -> dict[str, Any]:
        return codec.decode_global_stat(await self.call("aria2.getGlobalStat"))

    # Options

    async def get_option(
        self, gid: str, kinds: Mapping[str, codec.ValueKind] | None = None
    ) -> dict[str, Any]:
        return codec.decode_options(await self.call("aria2.getOption", gid), kinds)

    async def change_option(self, gid: str, options: Options) -> str:
        return await self.call("aria2.changeOption", gid, codec.encode_options(options))

    async def get_global_option(
        self, kinds: Mapping[str, codec.ValueKind] | None = None
    ) -> dict[str, Any]:
        return codec.decode_options(await self.call("aria2.getGlobalOption"), kinds)

    async def change_global_option(self, options: Options) -> str:
        return await self.call("aria2.changeGlobalOption", codec.encode_options(options))

    # Results

    async def purge_download_result(self) -> str:
        return await self.call("aria2.purgeDownloadResult")

    async def remove_download_result(self, gid: str) -> str:
        return await self.call("aria2.removeDownloadResult", gid)

    # Introspection

    async def list_methods(self) -> list[str]:
        return await self.call("system.listMethods")

    async def list_notifications(self) -> list[str]:
        return await self.call("system.listNotifications")
