from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from typing import Any

from eth_utils import to_checksum_address

from ensfeed.core.models import (
    DomainEvent,
    EventKind,
    Payload,
    RawLog,
    RegisteredPayload,
    TransferredPayload,
    UpdatedPayload,
    event_id,
)
from ensfeed.core.use_cases.resolve_name import NameResolver


def _address(v: Any) -> str:
    """Checksum an address argument; anything that is not an address is kept as text."""
    if not v:
        return ""
    try:
        return to_checksum_address(v)
    except (TypeError, ValueError):
        return str(v)


def _text(v: Any) -> str:
    return "" if v is None else str(v)


def _payload(kind: EventKind, name: str, args: dict[str, Any]) -> Payload:
    if kind == "Registered":
        return RegisteredPayload(
            name=name,
            owner=_address(args.get("owner")),
            image_hash=_text(args.get("imageHash")),
        )
    if kind == "Transferred":
        return TransferredPayload(
            name=name,
            old_owner=_address(args.get("oldOwner")),
            new_owner=_address(args.get("newOwner")),
        )
    if kind == "Updated":
        return UpdatedPayload(
            name=name,
            new_address=_address(args.get("newAddress")),
            new_image_hash=_text(args.get("newImageHash")),
        )
    raise ValueError(f"unknown event kind: {kind!r}")


class EventNormalizer:
    """Map RawLog records of any kind into DomainEvent feed records.

    Normalization cannot fail for a known kind: the resolver always yields a
    usable name, and missing arguments become empty strings.
    """

    def __init__(self, resolver: NameResolver, *, clock: Callable[[], float] = time.time) -> None:
        self._resolver = resolver
        self._clock = clock

    async def normalize(self, kind: EventKind, raw: RawLog) -> DomainEvent:
        name = await self._resolver.resolve(_text(raw.args.get("name")), raw.tx_hash)
        return DomainEvent(
            id=event_id(raw.tx_hash, raw.log_index),
            kind=kind,
            payload=_payload(kind, name, raw.args),
            observed_at=self._clock(),
            block_number=raw.block_number,
            log_index=raw.log_index,
        )

    async def normalize_many(self, kind: EventKind, raws: Sequence[RawLog]) -> list[DomainEvent]:
        """Normalize one kind's logs concurrently; output keeps input order."""
        return list(await asyncio.gather(*(self.normalize(kind, r) for r in raws)))
