"""ABI decoding for the name-registry contract.

This package provides:
- Event / function specification system (EventSpec, FunctionSpec, field specs)
- Generic decoders for logs and transaction call data
- Signature-based registry builders and the contract's registries
"""

from ensfeed.decoding.decoder import ParsedCall, ParsedEvent, decode_call, decode_event
from ensfeed.decoding.registries import (
    make_name_registry_events,
    make_name_registry_functions,
    topic0_for_kind,
)
from ensfeed.decoding.registry_builder import (
    event_spec_from_signature,
    function_spec_from_signature,
    make_event_registry,
    make_function_registry,
)
from ensfeed.decoding.specs import (
    DataFieldSpec,
    EventRegistry,
    EventSpec,
    FunctionRegistry,
    FunctionSpec,
    TopicFieldSpec,
)

__all__ = [
    "ParsedCall",
    "ParsedEvent",
    "decode_call",
    "decode_event",
    "make_name_registry_events",
    "make_name_registry_functions",
    "topic0_for_kind",
    "event_spec_from_signature",
    "function_spec_from_signature",
    "make_event_registry",
    "make_function_registry",
    "DataFieldSpec",
    "EventRegistry",
    "EventSpec",
    "FunctionRegistry",
    "FunctionSpec",
    "TopicFieldSpec",
]
