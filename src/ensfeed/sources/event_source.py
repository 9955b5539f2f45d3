"""Event Source Adapter for the name-registry contract.

`ContractEventSource` turns an `IEvmLogsProvider` into the per-kind view the
feed engine consumes:

- `fetch_historical(kind, a, b)`: ranged `eth_getLogs` for one event kind
- `subscribe(kind, on_batch)`: a `PollingSubscription` that follows the head
- `fetch_transaction_input(tx_hash)` / `current_block_height()`: passthroughs

Wire logs are decoded into `RawLog` here, so downstream components never see
topics or ABI-encoded data.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from ensfeed.core.errors import SourceUnavailable
from ensfeed.core.interfaces import BatchCallback, IEvmLogsProvider
from ensfeed.core.models import EventKind, EventLog, RawLog
from ensfeed.decoding.decoder import decode_event
from ensfeed.decoding.registries import make_name_registry_events, topic0_for_kind
from ensfeed.decoding.specs import EventRegistry
from ensfeed.decoding.utils import hex_to_bytes

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 4.0


def decode_logs(logs: Sequence[EventLog], registry: EventRegistry) -> list[RawLog]:
    """Decode wire logs into RawLog records, skipping anything that does not match."""
    out: list[RawLog] = []
    for ev in logs:
        try:
            data = hex_to_bytes(ev.data_hex)
        except ValueError:
            logger.debug("skipping log %s-%d: malformed data", ev.tx_hash, ev.log_index)
            continue
        pe = decode_event(topics=ev.topics, data=data, registry=registry)
        if pe is None:
            logger.debug("skipping log %s-%d: no matching event spec", ev.tx_hash, ev.log_index)
            continue
        out.append(
            RawLog(
                tx_hash=ev.tx_hash,
                log_index=ev.log_index,
                block_number=ev.block_number,
                args=pe.values,
            )
        )
    return out


class PollingSubscription:
    """Live listener for one event kind, backed by a polling asyncio task.

    With `from_block` the first tick scans from that block; otherwise the first
    poll anchors the cursor at the current head. Every tick fetches
    `[cursor + 1, head]` and hands non-empty batches to `on_batch`.
    Poll failures are logged and retried on the next tick.
    """

    def __init__(
        self,
        source: ContractEventSource,
        kind: EventKind,
        on_batch: BatchCallback,
        *,
        poll_interval_s: float,
        from_block: int | None = None,
    ) -> None:
        self.kind = kind
        self._source = source
        self._on_batch = on_batch
        self._poll_interval_s = poll_interval_s
        self._cursor: int | None = None if from_block is None else from_block - 1
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"ensfeed-subscription-{self.kind}")

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to unwind. Idempotent."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def poll_once(self) -> None:
        """Run one polling tick."""
        head = await self._source.current_block_height()
        if self._cursor is None:
            self._cursor = head
            return
        if head <= self._cursor:
            return
        batch = await self._source.fetch_historical(self.kind, self._cursor + 1, head)
        self._cursor = head
        if batch:
            await self._on_batch(batch)

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except SourceUnavailable as e:
                logger.warning("%s subscription poll failed: %s", self.kind, e)
            except Exception:
                logger.exception("%s subscription batch handler failed", self.kind)
            await asyncio.sleep(self._poll_interval_s)


class ContractEventSource:
    """Event Source Adapter over one contract address.

    Parameters
    ----------
    provider : IEvmLogsProvider
        Ledger-query capability (usually `ensfeed.clients.rpc.RPC`).
    address : str
        Contract emitting the name-registry events.
    registry : EventRegistry | None
        Event specs; defaults to the name-registry events.
    poll_interval_s : float
        Head polling cadence for live subscriptions.
    """

    def __init__(
        self,
        provider: IEvmLogsProvider,
        address: str,
        *,
        registry: EventRegistry | None = None,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
    ) -> None:
        self._provider = provider
        self.address = address.lower()
        self.registry = registry if registry is not None else make_name_registry_events()
        self.poll_interval_s = poll_interval_s

    async def fetch_historical(self, kind: EventKind, from_block: int, to_block: int) -> list[RawLog]:
        """Return every decodable log of `kind` in the inclusive range (arbitrary order)."""
        logs = await self._provider.get_logs(
            address=self.address,
            topic0s=[topic0_for_kind(self.registry, kind)],
            from_block=from_block,
            to_block=to_block,
        )
        return decode_logs(logs, self.registry)

    def subscribe(
        self, kind: EventKind, on_batch: BatchCallback, *, from_block: int | None = None
    ) -> PollingSubscription:
        """Start a live listener for `kind`; the caller owns the returned handle."""
        topic0_for_kind(self.registry, kind)  # fail fast on an unknown kind
        sub = PollingSubscription(
            self, kind, on_batch, poll_interval_s=self.poll_interval_s, from_block=from_block
        )
        sub.start()
        return sub

    async def fetch_transaction_input(self, tx_hash: str) -> str | None:
        return await self._provider.get_transaction_input(tx_hash)

    async def current_block_height(self) -> int:
        return await self._provider.latest_block()
