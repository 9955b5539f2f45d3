from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import List, Optional, Protocol, runtime_checkable

from ensfeed.core.models import EventKind, EventLog, RawLog

BatchCallback = Callable[[Sequence[RawLog]], Awaitable[None]]


# ---------------------------------------------------------------------------
# IEvmLogsProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class IEvmLogsProvider(Protocol):
    """
    Abstract ledger-query provider.

    Domain expectations:
    - It returns EventLog objects already mapped into internal domain models.
    - It hides the underlying RPC / archive technology.
    - Every failure to service a request surfaces as `SourceUnavailable`.
    """

    async def get_logs(
        self,
        *,
        address: str,
        topic0s: list[str],
        from_block: int,
        to_block: int,
    ) -> List[EventLog]:
        """Return all logs for (address, topic0s) over the inclusive block range."""
        ...

    async def latest_block(self) -> int:
        """Return the current chain head height."""
        ...

    async def get_transaction_input(self, tx_hash: str) -> Optional[str]:
        """Return the 0x-hex call data of a transaction, or None if unknown."""
        ...


# ---------------------------------------------------------------------------
# ISubscription
# ---------------------------------------------------------------------------

@runtime_checkable
class ISubscription(Protocol):
    """Handle to one live listener. The owner must stop it on teardown."""

    async def stop(self) -> None:
        ...


# ---------------------------------------------------------------------------
# IEventSource
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventSource(Protocol):
    """
    Event Source Adapter for the three name-registry event kinds.

    Domain expectations:
    - Historical fetches return RawLog records in arbitrary order.
    - `subscribe` never terminates on its own; the returned handle does.
    - All operations are read-only against the ledger.
    """

    async def fetch_historical(
        self, kind: EventKind, from_block: int, to_block: int
    ) -> List[RawLog]:
        ...

    def subscribe(
        self, kind: EventKind, on_batch: BatchCallback, *, from_block: Optional[int] = None
    ) -> ISubscription:
        """Start a listener; `from_block` is the first block to scan (default: next head)."""
        ...

    async def fetch_transaction_input(self, tx_hash: str) -> Optional[str]:
        ...

    async def current_block_height(self) -> int:
        ...
