"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- Helper utilities to format block numbers and topics

It returns `EventLog` records ready for downstream decoding. Every transport
or node-side failure is raised as `SourceUnavailable`.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from ensfeed.core.errors import SourceUnavailable
from ensfeed.core.models import EventLog

logger = logging.getLogger(__name__)


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(x)


def topics_param(topic0s: Sequence[str]) -> list[list[str]]:
    """Format topic0 signatures for eth_getLogs RPC call."""
    return [[t.lower() for t in topic0s]]


def _hex_int(v: Any) -> int:
    if isinstance(v, int):
        return v
    return int(v, 16)


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    client : httpx.AsyncClient | None
        Pre-built client (custom transport, proxies); overrides the two above.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 16,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self._ids = itertools.count(1)
        self.client = client if client is not None else httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
        )

    async def _call(self, method: str, params: list[Any]) -> Any:
        """POST one JSON-RPC request and return its `result` member."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            r = await self.client.post(self.url, json=payload)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SourceUnavailable(f"{method} failed: {type(e).__name__}: {e}") from e

        if not isinstance(data, dict):
            raise SourceUnavailable(f"{method} returned a non-object response")
        if "error" in data:
            e = data["error"]
            if isinstance(e, dict):
                raise SourceUnavailable(f"RPC error: {e.get('code')} {e.get('message')}")
            raise SourceUnavailable(f"RPC error: {e}")
        return data.get("result")

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        result = await self._call("eth_blockNumber", [])
        try:
            return _hex_int(result)
        except (TypeError, ValueError) as e:
            raise SourceUnavailable(f"eth_blockNumber returned {result!r}") from e

    async def get_logs(
        self,
        *,
        address: str,
        topic0s: Sequence[str],
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        """Fetch logs for an address and a set of topic0 signatures within a block range."""
        params = [
            {
                "address": address.lower(),
                "fromBlock": to_hex_block(from_block),
                "toBlock": to_hex_block(to_block),
                "topics": topics_param(topic0s),
            }
        ]
        result = await self._call("eth_getLogs", params)
        if result is None:
            result = []
        if not isinstance(result, list):
            raise SourceUnavailable(f"eth_getLogs returned {type(result).__name__}, expected a list")

        out: list[EventLog] = []
        for rl in result:
            if not isinstance(rl, dict):
                raise SourceUnavailable(f"malformed log entry: {rl!r}")
            if rl.get("removed"):
                # reorged out; the node will deliver the canonical log separately
                continue
            if rl.get("blockNumber") is None or rl.get("logIndex") is None:
                # pending; no position in the chain yet
                continue
            try:
                topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in rl.get("topics", []))
                out.append(
                    EventLog(
                        address=rl["address"].lower(),
                        topics=topics,
                        data_hex=str(rl.get("data") or "0x"),
                        block_number=_hex_int(rl["blockNumber"]),
                        tx_hash=(rl.get("transactionHash") or rl.get("transaction_hash") or "").lower(),
                        log_index=_hex_int(rl["logIndex"]),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise SourceUnavailable(f"malformed log entry: {type(e).__name__}: {e}") from e
        logger.debug("eth_getLogs [%d, %d] -> %d logs", from_block, to_block, len(out))
        return out

    async def get_transaction_input(self, tx_hash: str) -> str | None:
        """Return the 0x-hex input of a transaction, or None if the node does not know it."""
        tx = await self._call("eth_getTransactionByHash", [tx_hash])
        if not tx:
            return None
        return tx.get("input") or tx.get("data")

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
