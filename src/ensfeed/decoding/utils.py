"""Decoding utilities: hex handling and typed topic parsers."""

from __future__ import annotations

from typing import Any

from .specs import TopicFieldSpec


def strip_0x(h: str) -> str:
    return h[2:] if h.lower().startswith("0x") else h


def hex_to_bytes(h: str) -> bytes:
    """Decode a (possibly 0x-prefixed) hex string; raises ValueError if malformed."""
    body = strip_0x(h)
    return bytes.fromhex(body) if body else b""


def parse_topic_field(topic_hex: str, spec: TopicFieldSpec) -> Any:
    """Parse one indexed topic according to the declared type."""
    t = spec.type
    h = topic_hex.lower()
    if t == "address":
        return "0x" + h[-40:]
    if t == "bool":
        return int(h, 16) != 0
    if t.startswith("uint"):
        return int(h, 16)
    if t.startswith("int"):
        v = int(h, 16)
        bits = int(t[3:]) if t != "int" else 256
        if v >= 2 ** (bits - 1):
            v -= 2**bits
        return v
    # Dynamic types (string, bytes, arrays) arrive as their content hash
    return h

