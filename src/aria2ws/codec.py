"""Value codec for aria2's string-encoded scalars.

aria2 transmits every scalar inside option dictionaries and status
structures as a JSON string: ``"true"``, ``"1048576"``, ``"0.5"``. This module
converts between those strings and Python values.

Decoding is field-directed. A string such as ``"2089b05ecca3d829"`` (a GID)
or ``"6800"`` might be meant to stay a string, so callers say which
:class:`ValueKind` they expect for each field instead of relying on the
content of the string.
"""

from __future__ import annotations

import math
import re
import sys
from collections.abc import Mapping
from enum import Enum
from typing import Any

from aria2ws.error import RpcError

_BOOLEAN_RE = re.compile(r"true|false")
_INTEGER_RE = re.compile(r"[+-]?\d+")


def _digit_limit_message() -> str:
    return f"Integer exceeds the {sys.get_int_max_str_digits()} digit conversion limit"


class ValueKind(Enum):
    """Target type of a wire scalar."""

    BOOLEAN = "boolean"
    NUMBER = "number"
    INTEGER = "integer"
    STRING = "string"


def kind_of(value: Any) -> ValueKind:
    """Return the kind a supported Python value encodes as."""
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    msg = f"Unsupported value type: {type(value).__name__}"
    raise RpcError.unsupported_value(msg, value)


def encode_value(value: Any) -> str:
    """Encode a Python scalar into its wire string."""
    match kind_of(value):
        case ValueKind.BOOLEAN:
            return "true" if value else "false"
        case ValueKind.INTEGER:
            try:
                return str(value)
            except ValueError:
                msg = _digit_limit_message()
                raise RpcError.unsupported_value(msg, value) from None
        case ValueKind.NUMBER:
            if not math.isfinite(value):
                msg = f"Non-finite number: {value!r}"
                raise RpcError.unsupported_value(msg, value)
            return repr(value)
        case _:
            return value


def decode_value(text: Any, kind: ValueKind) -> Any:
    """Decode a wire string into the Python type named by ``kind``."""
    if not isinstance(text, str):
        msg = f"Expected a wire string for {kind.value}, got {type(text).__name__}"
        raise RpcError.unsupported_value(msg, text)

    match kind:
        case ValueKind.BOOLEAN:
            if not _BOOLEAN_RE.fullmatch(text):
                msg = f"Unknown boolean value: {text!r}"
                raise RpcError.unsupported_value(msg, text)
            return text == "true"
        case ValueKind.INTEGER:
            try:
                return int(text)
            except ValueError:
                if _INTEGER_RE.fullmatch(text):
                    msg = _digit_limit_message()
                else:
                    msg = f"Unknown integer value: {text!r}"
                raise RpcError.unsupported_value(msg, text) from None
        case ValueKind.NUMBER:
            try:
                number = float(text)
            except ValueError:
                msg = f"Unknown number value: {text!r}"
                raise RpcError.unsupported_value(msg, text) from None
            if not math.isfinite(number):
                msg = f"Non-finite number: {text!r}"
                raise RpcError.unsupported_value(msg, text)
            return number
        case _:
            return text


def encode_options(options: Mapping[str, Any]) -> dict[str, str]:
    """Encode an option dictionary, dropping keys whose value is ``None``."""
    return {key: encode_value(value) for key, value in options.items() if value is not None}


def decode_options(
    options: Mapping[str, Any], kinds: Mapping[str, ValueKind] | None = None
) -> dict[str, Any]:
    """Decode an option dictionary.

    Keys missing from ``kinds`` are left as strings.
    """
    kinds = kinds or {}
    return {
        key: decode_value(value, kinds.get(key, ValueKind.STRING))
        for key, value in options.items()
    }


# Field schemas of the structures returned by the daemon

DOWNLOAD_STATUS_FIELDS: dict[str, ValueKind] = {
    "totalLength": ValueKind.INTEGER,
    "completedLength": ValueKind.INTEGER,
    "uploadLength": ValueKind.INTEGER,
    "downloadSpeed": ValueKind.INTEGER,
    "uploadSpeed": ValueKind.INTEGER,
    "numSeeders": ValueKind.INTEGER,
    "seeder": ValueKind.BOOLEAN,
    "pieceLength": ValueKind.INTEGER,
    "numPieces": ValueKind.INTEGER,
    "connections": ValueKind.INTEGER,
    "errorCode": ValueKind.INTEGER,
    "verifiedLength": ValueKind.INTEGER,
    "verifyIntegrityPending": ValueKind.BOOLEAN,
}

FILE_STATUS_FIELDS: dict[str, ValueKind] = {
    "index": ValueKind.INTEGER,
    "length": ValueKind.INTEGER,
    "completedLength": ValueKind.INTEGER,
    "selected": ValueKind.BOOLEAN,
}

PEER_INFO_FIELDS: dict[str, ValueKind] = {
    "amChoking": ValueKind.BOOLEAN,
    "peerChoking": ValueKind.BOOLEAN,
    "seeder": ValueKind.BOOLEAN,
    "downloadSpeed": ValueKind.INTEGER,
    "uploadSpeed": ValueKind.INTEGER,
    "port": ValueKind.INTEGER,
}

SERVER_INFO_FIELDS: dict[str, ValueKind] = {
    "downloadSpeed": ValueKind.INTEGER,
}

GLOBAL_STAT_FIELDS: dict[str, ValueKind] = {
    "downloadSpeed": ValueKind.INTEGER,
    "uploadSpeed": ValueKind.INTEGER,
    "numActive": ValueKind.INTEGER,
    "numWaiting": ValueKind.INTEGER,
    "numStopped": ValueKind.INTEGER,
    "numStoppedTotal": ValueKind.INTEGER,
}


def decode_fields(value: Mapping[str, Any], fields: Mapping[str, ValueKind]) -> dict[str, Any]:
    """Decode the keys of ``value`` named in ``fields``; copy the rest as-is.

    Keys named in ``fields`` but absent from ``value`` are skipped, since the
    daemon only returns the keys that were asked for.
    """
    decoded = dict(value)
    for key, kind in fields.items():
        if key in decoded:
            decoded[key] = decode_value(decoded[key], kind)
    return decoded


def decode_file_status(value: Mapping[str, Any]) -> dict[str, Any]:
    return decode_fields(value, FILE_STATUS_FIELDS)


def decode_download_status(value: Mapping[str, Any]) -> dict[str, Any]:
    """Decode a ``tellStatus`` structure, including nested files."""
    decoded = decode_fields(value, DOWNLOAD_STATUS_FIELDS)
    if "files" in decoded:
        decoded["files"] = [decode_file_status(item) for item in decoded["files"]]
    bittorrent = decoded.get("bittorrent")
    # some daemon builds already send creationDate as a JSON integer
    if isinstance(bittorrent, Mapping) and isinstance(bittorrent.get("creationDate"), str):
        decoded["bittorrent"] = {
            **bittorrent,
            "creationDate": decode_value(bittorrent["creationDate"], ValueKind.INTEGER),
        }
    return decoded


def decode_peer_info(value: Mapping[str, Any]) -> dict[str, Any]:
    return decode_fields(value, PEER_INFO_FIELDS)


def decode_server_info(value: Mapping[str, Any]) -> dict[str, Any]:
    return decode_fields(value, SERVER_INFO_FIELDS)


def decode_servers_item(value: Mapping[str, Any]) -> dict[str, Any]:
    """Decode one entry of a ``getServers`` result."""
    decoded = decode_fields(value, {"index": ValueKind.INTEGER})
    if "servers" in decoded:
        decoded["servers"] = [decode_server_info(item) for item in decoded["servers"]]
    return decoded


def decode_global_stat(value: Mapping[str, Any]) -> dict[str, Any]:
    return decode_fields(value, GLOBAL_STAT_FIELDS)
