from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any

from ensfeed.core.config import OrderBy
from ensfeed.core.errors import SourceUnavailable
from ensfeed.core.interfaces import IEventSource, ISubscription
from ensfeed.core.models import EVENT_KINDS, DomainEvent, EventKind, FeedState, RawLog
from ensfeed.core.use_cases.normalize import EventNormalizer
from ensfeed.core.use_cases.resolve_name import NameResolver

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Domain configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconcileConfig:
    """
    Domain-level configuration for the feed reconciler.

    This config is intentionally free of infrastructure concerns
    (no RPC URL, no polling cadence).
    """

    scan_window: int = 50_000
    capacity: int = 50
    order_by: OrderBy = "id"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def compute_scan_window(height: int, window: int) -> tuple[int, int]:
    """Inclusive [from, to] covering the last `window` blocks, clamped at genesis."""
    return max(0, height - window), height


def order_key(order_by: OrderBy) -> Callable[[DomainEvent], Any]:
    """Sort key whose descending order is the feed's newest-first order.

    "id" compares `"<tx_hash>-<log_index>"` strings: a total order that only
    approximates chronology across transactions. "block" uses chain position.
    """
    if order_by == "id":
        return lambda ev: ev.id
    if order_by == "block":
        return lambda ev: (ev.block_number, ev.log_index)
    raise ValueError(f"unknown order_by: {order_by!r}")


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------


class Feed:
    """Bounded, deduplicated, newest-first sequence of DomainEvent.

    `merge` is the only mutation and performs no I/O, so on a single asyncio
    loop concurrent callers can never interleave inside it.
    """

    def __init__(self, *, capacity: int = 50, order_by: OrderBy = "id") -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._key = order_key(order_by)
        self._events: list[DomainEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[DomainEvent]:
        return iter(tuple(self._events))

    def snapshot(self) -> tuple[DomainEvent, ...]:
        return tuple(self._events)

    def ids(self) -> list[str]:
        return [ev.id for ev in self._events]

    def merge(self, new_events: Sequence[DomainEvent]) -> int:
        """Prepend events whose id is not already present; return how many were kept.

        Re-delivered ids are dropped (idempotent). The new batch is ordered
        newest-first and goes in front of the existing entries; the feed is then
        truncated to `capacity` by dropping the tail, i.e. the oldest entries.
        """
        seen = {ev.id for ev in self._events}
        fresh: list[DomainEvent] = []
        for ev in new_events:
            if ev.id in seen:
                continue
            seen.add(ev.id)
            fresh.append(ev)
        if not fresh:
            return 0

        fresh.sort(key=self._key, reverse=True)
        self._events = (fresh + self._events)[: self.capacity]
        return min(len(fresh), self.capacity)


# ---------------------------------------------------------------------------
# Domain service - FeedReconciler
# ---------------------------------------------------------------------------


class FeedReconciler:
    """
    Owns the feed and reconciles historical backfill with live subscriptions.

    States: Uninitialized -> Backfilling -> Live. Teardown (`aclose`) stops the
    subscriptions and discards any backfill still in flight; it never applies
    part of a cancelled backfill.

    Failures are absorbed here: an unreachable source for one kind leaves that
    kind's history empty, an unresolved name stays as its hash. Nothing is
    raised to the caller.
    """

    def __init__(
        self,
        source: IEventSource,
        *,
        config: ReconcileConfig | None = None,
        normalizer: EventNormalizer | None = None,
    ) -> None:
        self._source = source
        self.config = config or ReconcileConfig()
        self._normalizer = normalizer or EventNormalizer(NameResolver(source))
        self._key = order_key(self.config.order_by)
        self.feed = Feed(capacity=self.config.capacity, order_by=self.config.order_by)
        self._state: FeedState = "Uninitialized"
        self._subscriptions: list[ISubscription] = []
        self._cancelled = False

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def events(self) -> tuple[DomainEvent, ...]:
        """Read-only, newest-first view for rendering."""
        return self.feed.snapshot()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def __aenter__(self) -> FeedReconciler:
        await self.activate()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- activation ----------------------------------------------------------

    async def activate(self, *, subscribe: bool = True) -> None:
        """Backfill history and (unless `subscribe=False`) start live listeners."""
        if self._state != "Uninitialized":
            raise RuntimeError(f"reconciler already activated (state={self._state})")
        self._state = "Backfilling"

        height = await self._current_height()

        if subscribe:
            # live polling picks up right after the backfill window
            start = None if height is None else height + 1
            for kind in EVENT_KINDS:
                self._subscriptions.append(
                    self._source.subscribe(kind, partial(self.on_live_batch, kind), from_block=start)
                )

        historical = [] if height is None else await self._backfill(height)

        if self._cancelled:
            logger.debug("backfill finished after teardown; discarding %d events", len(historical))
            return
        self._state = "Live"
        added = self.feed.merge(historical)
        logger.info("backfill merged %d events (feed size %d)", added, len(self.feed))

    async def _current_height(self) -> int | None:
        try:
            return await self._source.current_block_height()
        except SourceUnavailable as e:
            logger.warning("cannot read block height, skipping backfill: %s", e)
            return None

    async def _backfill(self, height: int) -> list[DomainEvent]:
        from_block, to_block = compute_scan_window(height, self.config.scan_window)
        logger.info("backfilling blocks [%d, %d]", from_block, to_block)

        per_kind = await asyncio.gather(
            *(self._backfill_kind(kind, from_block, to_block) for kind in EVENT_KINDS)
        )
        events = [ev for batch in per_kind for ev in batch]
        events.sort(key=self._key, reverse=True)
        return events

    async def _backfill_kind(self, kind: EventKind, from_block: int, to_block: int) -> list[DomainEvent]:
        try:
            raws = await self._source.fetch_historical(kind, from_block, to_block)
        except SourceUnavailable as e:
            logger.warning("historical %s fetch failed, continuing without it: %s", kind, e)
            return []
        return await self._normalizer.normalize_many(kind, raws)

    # -- live path -----------------------------------------------------------

    async def on_live_batch(self, kind: EventKind, raws: Sequence[RawLog]) -> None:
        """Normalize one subscription delivery and merge it."""
        events = await self._normalizer.normalize_many(kind, raws)
        if self._cancelled:
            return
        added = self.feed.merge(events)
        if added:
            logger.debug("live %s batch merged %d/%d events", kind, added, len(events))

    # -- teardown ------------------------------------------------------------

    async def aclose(self) -> None:
        """Stop all subscriptions and discard any in-flight backfill. Idempotent."""
        self._cancelled = True
        subs, self._subscriptions = self._subscriptions, []
        if subs:
            await asyncio.gather(*(s.stop() for s in subs))
