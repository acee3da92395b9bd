"""Minimal uncompressed NBT writer for the client ``servers.dat`` file."""

from __future__ import annotations

import struct
from typing import Any

TAG_END = 0
TAG_BYTE = 1
TAG_INT = 3
TAG_STRING = 8
TAG_LIST = 9
TAG_COMPOUND = 10


def _tag_type(value: Any) -> int:
    if isinstance(value, bool):
        return TAG_BYTE
    if isinstance(value, int):
        return TAG_INT
    if isinstance(value, str):
        return TAG_STRING
    if isinstance(value, list):
        return TAG_LIST
    if isinstance(value, dict):
        return TAG_COMPOUND
    msg = f"Unsupported NBT value type: {type(value).__name__}"
    raise TypeError(msg)


def _encode_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return struct.pack(">H", len(raw)) + raw


def _encode_payload(value: Any) -> bytes:
    tag = _tag_type(value)
    if tag == TAG_BYTE:
        return struct.pack(">b", int(value))
    if tag == TAG_INT:
        return struct.pack(">i", value)
    if tag == TAG_STRING:
        return _encode_string(value)
    if tag == TAG_LIST:
        element_type = _tag_type(value[0]) if value else TAG_END
        if any(_tag_type(item) != element_type for item in value):
            raise TypeError("NBT list elements must share one type")
        body = b"".join(_encode_payload(item) for item in value)
        return struct.pack(">bi", element_type, len(value)) + body
    parts = [
        struct.pack(">b", _tag_type(item)) + _encode_string(key) + _encode_payload(item)
        for key, item in value.items()
    ]
    return b"".join(parts) + struct.pack(">b", TAG_END)


def encode_root(value: dict[str, Any], name: str = "") -> bytes:
    """Encode a dict as a named root compound tag."""
    return struct.pack(">b", TAG_COMPOUND) + _encode_string(name) + _encode_payload(value)


def servers_dat(servers: list[tuple[str, str]]) -> bytes:
    """Build a ``servers.dat`` payload listing (name, address) pairs."""
    entries = [{"name": name, "ip": address, "icon": ""} for name, address in servers]
    return encode_root({"servers": entries})
