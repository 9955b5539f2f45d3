"""Generic decoders for event logs and transaction call data.

`decode_event` translates raw logs into `ParsedEvent` using an `EventRegistry`;
indexed fields come from topics, non-indexed fields from the ABI-encoded data
tuple (decoded with eth_abi so dynamic `string` values are supported).

`decode_call` matches the 4-byte selector of transaction input against a
`FunctionRegistry` and decodes its positional arguments.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from ensfeed.core.errors import DecodeFailure
from ensfeed.decoding.specs import EventRegistry, EventSpec, FunctionRegistry
from ensfeed.decoding.utils import hex_to_bytes, parse_topic_field

# ---------- parsed records ----------


@dataclass(slots=True)
class ParsedEvent:
    """Decoded event; `values` are keyed by ABI parameter name."""

    name: str
    values: dict[str, Any]


@dataclass(slots=True)
class ParsedCall:
    """Decoded call; `args` are in declaration order."""

    name: str
    args: tuple[Any, ...]


# ---------- helper functions ----------


def _validate_and_get_spec(topics: Sequence[str], registry: EventRegistry) -> EventSpec | None:
    """Validate topics and retrieve event spec from registry.

    Returns None if topics are invalid or spec not found.
    """
    if not topics:
        return None
    return registry.get(topics[0].lower())


def _normalize_value(abi_type: str, v: Any) -> Any:
    if abi_type == "address" and isinstance(v, str):
        return v.lower()
    if isinstance(v, bytes):
        return "0x" + v.hex()
    return v


# ---------- event decoder ----------


def decode_event(
    *,
    topics: Sequence[str],
    data: bytes,
    registry: EventRegistry,
) -> ParsedEvent | None:
    """Decode raw log (topics + data) into a `ParsedEvent` or return None if unknown/malformed."""
    spec = _validate_and_get_spec(topics, registry)
    if spec is None:
        return None

    values: dict[str, Any] = {}
    for tf in spec.topic_fields:
        if tf.index >= len(topics):
            return None
        values[tf.name] = parse_topic_field(topics[tf.index], tf)

    if spec.data_fields:
        try:
            decoded = abi_decode(spec.data_types, data)
        except (DecodingError, ValueError, OverflowError):
            return None
        for df in spec.data_fields:
            values[df.name] = _normalize_value(df.type, decoded[df.position])

    return ParsedEvent(name=spec.name, values=values)


# ---------- call-data decoder ----------


def decode_call(input_hex: str, functions: FunctionRegistry) -> ParsedCall:
    """Decode transaction input against known functions.

    Raises
    ------
    DecodeFailure
        Unknown selector, malformed hex, or arguments that do not decode.
    """
    try:
        raw = hex_to_bytes(input_hex)
    except ValueError as e:
        raise DecodeFailure(f"malformed call data: {e}") from e
    if len(raw) < 4:
        raise DecodeFailure("call data shorter than a selector")

    selector = "0x" + raw[:4].hex()
    spec = functions.get(selector)
    if spec is None:
        raise DecodeFailure(f"unknown function selector {selector}")

    try:
        args = abi_decode(spec.input_types, raw[4:])
    except (DecodingError, ValueError, OverflowError) as e:
        raise DecodeFailure(f"cannot decode {spec.name} arguments: {e}") from e

    return ParsedCall(
        name=spec.name,
        args=tuple(_normalize_value(t, a) for t, a in zip(spec.input_types, args)),
    )
