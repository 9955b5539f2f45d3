"""Registries for the name-registry contract.

Available registries:
- Events: make_name_registry_events()  (NameRegistered/NameTransferred/NameUpdated)
- Functions: make_name_registry_functions()  (the four mutating calls)

`EVENT_NAME_BY_KIND` maps the feed's kinds onto the contract's event names.
"""

from __future__ import annotations

from ensfeed.core.models import EventKind

from .registry_builder import make_event_registry, make_function_registry
from .specs import EventRegistry, FunctionRegistry

NAME_REGISTERED_SIG = "NameRegistered(string indexed name, address indexed owner, string imageHash)"
NAME_TRANSFERRED_SIG = "NameTransferred(string indexed name, address indexed oldOwner, address indexed newOwner)"
NAME_UPDATED_SIG = "NameUpdated(string indexed name, address indexed newAddress, string newImageHash)"

REGISTER_NAME_SIG = "registerName(string name, string imageHash, address targetAddr)"
TRANSFER_NAME_SIG = "transferName(string name, address newOwner)"
UPDATE_ADDRESS_SIG = "updateAddress(string name, address newAddress)"
UPDATE_IMAGE_SIG = "updateImage(string name, string imageHash)"

EVENT_NAME_BY_KIND: dict[EventKind, str] = {
    "Registered": "NameRegistered",
    "Transferred": "NameTransferred",
    "Updated": "NameUpdated",
}


def make_name_registry_events() -> EventRegistry:
    """Return registry for the three name-registry events."""
    return make_event_registry([
        NAME_REGISTERED_SIG,
        NAME_TRANSFERRED_SIG,
        NAME_UPDATED_SIG,
    ])


def make_name_registry_functions() -> FunctionRegistry:
    """Return registry for the mutating calls whose first argument is the plaintext name."""
    return make_function_registry([
        REGISTER_NAME_SIG,
        TRANSFER_NAME_SIG,
        UPDATE_ADDRESS_SIG,
        UPDATE_IMAGE_SIG,
    ])


def topic0_for_kind(registry: EventRegistry, kind: EventKind) -> str:
    """Return the topic0 of the event backing `kind`; KeyError if absent."""
    event_name = EVENT_NAME_BY_KIND[kind]
    for topic0, spec in registry.items():
        if spec.name == event_name:
            return topic0
    raise KeyError(event_name)
