"""Wiring for the feed engine.

This module provides two layers:

1) `FeedReconciler` (in `ensfeed.core.use_cases`):
   - Pure application-layer use case.
   - Depends ONLY on the IEventSource interface.
   - Does NOT manage the RPC client lifecycle.

2) `open_feed(...)` (convenience wrapper):
   - Wires concrete implementations (RPC, ContractEventSource) from a
     `FeedConfig` for typical CLI / script usage.
   - Activates the reconciler, and on exit stops subscriptions and closes RPC.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from ensfeed.clients.rpc import RPC
from ensfeed.core.config import FeedConfig
from ensfeed.core.use_cases.reconcile_feed import FeedReconciler, ReconcileConfig
from ensfeed.sources.event_source import ContractEventSource


@dataclass(kw_only=True)
class FeedRuntime:
    """Concrete objects behind one running feed."""

    rpc: RPC
    source: ContractEventSource
    reconciler: FeedReconciler

    async def aclose(self) -> None:
        try:
            await self.reconciler.aclose()
        finally:
            await self.rpc.aclose()


def build_feed(config: FeedConfig) -> FeedRuntime:
    """Instantiate RPC client, event source and reconciler (not yet activated)."""
    rpc = RPC(config.rpc_url, timeout_s=config.timeout_s, max_connections=config.max_connections)
    source = ContractEventSource(rpc, config.address, poll_interval_s=config.poll_interval_s)
    reconciler = FeedReconciler(
        source,
        config=ReconcileConfig(
            scan_window=config.scan_window,
            capacity=config.capacity,
            order_by=config.order_by,
        ),
    )
    return FeedRuntime(rpc=rpc, source=source, reconciler=reconciler)


@asynccontextmanager
async def open_feed(config: FeedConfig, *, subscribe: bool = True) -> AsyncIterator[FeedReconciler]:
    """Build, activate and yield a reconciler; tear everything down on exit."""
    runtime = build_feed(config)
    try:
        await runtime.reconciler.activate(subscribe=subscribe)
        yield runtime.reconciler
    finally:
        await runtime.aclose()
