"""Event / function specification primitives and registry typing.

Defines lightweight dataclasses to describe how to decode contract ABI items:
- `TopicFieldSpec` / `DataFieldSpec`: typed sources for indexed topics / data tuple
- `EventSpec`: one event rule (topic0, name, fields)
- `FunctionSpec`: one callable rule (4-byte selector, name, positional inputs)
- `EventRegistry` / `FunctionRegistry`: lookup tables keyed by topic0 / selector
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class TopicFieldSpec:
    """Describe one indexed topic field (by 0-based topic index and ABI type)."""

    name: str
    index: int
    type: str  # e.g., "address", "uint256", "string" (hashed on the wire)


@dataclass(frozen=True)
class DataFieldSpec:
    """Describe one non-indexed field by its position in the ABI-encoded data tuple."""

    name: str
    position: int
    type: str  # e.g., "address", "uint256", "string"


@dataclass(frozen=True)
class EventSpec:
    """One event decoding rule."""

    topic0: str
    name: str
    topic_fields: list[TopicFieldSpec]
    data_fields: list[DataFieldSpec]

    @property
    def data_types(self) -> list[str]:
        return [df.type for df in sorted(self.data_fields, key=lambda df: df.position)]


@dataclass(frozen=True)
class FunctionSpec:
    """One function decoding rule; `inputs` are (name, abi_type) in call order."""

    selector: str  # lowercased 0x + 8 hex digits
    name: str
    inputs: list[tuple[str, str]]

    @property
    def input_types(self) -> list[str]:
        return [t for (_, t) in self.inputs]


# The full registries keyed by topic0 / selector (lowercased 0x-hex).
EventRegistry = dict[str, EventSpec]
FunctionRegistry = dict[str, FunctionSpec]


def get_event_specs_topic0s(event_specs: Iterable[EventSpec]) -> list[str]:
    return [event_spec.topic0 for event_spec in event_specs]


def get_event_registry_topic0s(registry: EventRegistry) -> list[str]:
    return get_event_specs_topic0s(registry.values())
