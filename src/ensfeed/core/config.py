from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

OrderBy = Literal["id", "block"]


@dataclass(frozen=True)
class FeedConfig:
    """Configuration for the event feed engine."""

    rpc_url: str
    address: str
    scan_window: int = 50_000
    capacity: int = 50
    poll_interval_s: float = 4.0
    timeout_s: int = 20
    max_connections: int = 16
    # "id" keeps the (tx_hash, log_index) string ordering; "block" sorts by chain position
    order_by: OrderBy = "id"
