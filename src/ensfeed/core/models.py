"""Core data models for the event feed.

This module defines:
- `EventLog`: wire log as fetched from RPC, minimally normalized.
- `RawLog`: one decoded log of a known kind, handed to the normalizer.
- `DomainEvent`: canonical feed record with a kind-specific payload.

Design notes
------------
- Hashes and addresses on the wire are lowercased; payload addresses are
  checksummed when the event is normalized.
- `DomainEvent.id` is `"<tx_hash>-<log_index>"` and is the dedup key.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

EventKind = Literal["Registered", "Transferred", "Updated"]

EVENT_KINDS: tuple[EventKind, ...] = ("Registered", "Transferred", "Updated")

FeedState = Literal["Uninitialized", "Backfilling", "Live"]


# === RPC record ===


@dataclass(slots=True, frozen=True)
class EventLog:
    """Raw log as fetched from RPC, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data_hex: str  # "0x..."
    block_number: int
    tx_hash: str  # lowercased 0x...
    log_index: int


@dataclass(slots=True, frozen=True)
class RawLog:
    """A log of one known kind with its ABI arguments decoded."""

    tx_hash: str
    log_index: int
    block_number: int
    args: dict[str, Any] = field(default_factory=dict)


# === Payloads ===


@dataclass(slots=True, frozen=True)
class RegisteredPayload:
    name: str
    owner: str
    image_hash: str


@dataclass(slots=True, frozen=True)
class TransferredPayload:
    name: str
    old_owner: str
    new_owner: str


@dataclass(slots=True, frozen=True)
class UpdatedPayload:
    name: str
    new_address: str
    new_image_hash: str


Payload = Union[RegisteredPayload, TransferredPayload, UpdatedPayload]


# === Feed record ===


def event_id(tx_hash: str, log_index: int) -> str:
    """Deterministic feed id for one log position."""
    return f"{tx_hash}-{log_index}"


@dataclass(slots=True, frozen=True)
class DomainEvent:
    """One entry of the feed.

    `observed_at` is the ingestion wall-clock time (epoch seconds) and is only
    used for display. `block_number` / `log_index` are kept so the feed can be
    sorted by chain position when configured to.
    """

    id: str
    kind: EventKind
    payload: Payload
    observed_at: float
    block_number: int = 0
    log_index: int = 0
