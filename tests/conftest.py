from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest
from eth_abi import encode
from eth_utils import keccak

from ensfeed.core.errors import SourceUnavailable
from ensfeed.core.models import EventLog, RawLog
from ensfeed.decoding.registries import (
    NAME_REGISTERED_SIG,
    NAME_TRANSFERRED_SIG,
    NAME_UPDATED_SIG,
    REGISTER_NAME_SIG,
)
from ensfeed.decoding.registry_builder import event_spec_from_signature, function_spec_from_signature

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
ALICE = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
BOB = "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"


def name_hash(name: str) -> str:
    return "0x" + keccak(text=name).hex()


def address_topic(addr: str) -> str:
    return "0x" + "0" * 24 + addr[2:].lower()


def tx_hash(n: int) -> str:
    return "0x" + f"{n:064x}"


def call_data(signature: str, args: list[Any]) -> str:
    spec = function_spec_from_signature(signature)
    return spec.selector + encode(spec.input_types, args).hex()


def registered_log(name: str, owner: str, image: str, *, tx: str, log_index: int = 0, block: int = 1) -> EventLog:
    spec = event_spec_from_signature(NAME_REGISTERED_SIG)
    return EventLog(
        address=CONTRACT.lower(),
        topics=(spec.topic0, name_hash(name), address_topic(owner)),
        data_hex="0x" + encode(["string"], [image]).hex(),
        block_number=block,
        tx_hash=tx,
        log_index=log_index,
    )


def transferred_log(name: str, old: str, new: str, *, tx: str, log_index: int = 0, block: int = 1) -> EventLog:
    spec = event_spec_from_signature(NAME_TRANSFERRED_SIG)
    return EventLog(
        address=CONTRACT.lower(),
        topics=(spec.topic0, name_hash(name), address_topic(old), address_topic(new)),
        data_hex="0x",
        block_number=block,
        tx_hash=tx,
        log_index=log_index,
    )


def updated_log(name: str, new_address: str, image: str, *, tx: str, log_index: int = 0, block: int = 1) -> EventLog:
    spec = event_spec_from_signature(NAME_UPDATED_SIG)
    return EventLog(
        address=CONTRACT.lower(),
        topics=(spec.topic0, name_hash(name), address_topic(new_address)),
        data_hex="0x" + encode(["string"], [image]).hex(),
        block_number=block,
        tx_hash=tx,
        log_index=log_index,
    )


def raw_registered(name: str, *, tx: str, log_index: int = 0, block: int = 1) -> RawLog:
    return RawLog(
        tx_hash=tx,
        log_index=log_index,
        block_number=block,
        args={"name": name, "owner": ALICE, "imageHash": "ipfs://img"},
    )


def raw_transferred(name: str, *, tx: str, log_index: int = 0, block: int = 1) -> RawLog:
    return RawLog(
        tx_hash=tx,
        log_index=log_index,
        block_number=block,
        args={"name": name, "oldOwner": ALICE, "newOwner": BOB},
    )


def raw_updated(name: str, *, tx: str, log_index: int = 0, block: int = 1) -> RawLog:
    return RawLog(
        tx_hash=tx,
        log_index=log_index,
        block_number=block,
        args={"name": name, "newAddress": BOB, "newImageHash": "ipfs://new"},
    )


class FakeSubscription:
    def __init__(self, kind: str, on_batch: Any, from_block: int | None = None) -> None:
        self.kind = kind
        self.on_batch = on_batch
        self.from_block = from_block
        self.stopped = False

    async def deliver(self, raws: list[RawLog]) -> None:
        await self.on_batch(raws)

    async def stop(self) -> None:
        self.stopped = True


class FakeSource:
    """In-memory IEventSource; `fail_kinds` raise SourceUnavailable on backfill."""

    def __init__(
        self,
        *,
        height: int | Exception = 100_000,
        logs: dict[str, list[RawLog]] | None = None,
        fail_kinds: tuple[str, ...] = (),
        tx_inputs: dict[str, Any] | None = None,
    ) -> None:
        self.height = height
        self.logs = logs or {}
        self.fail_kinds = set(fail_kinds)
        self.tx_inputs = tx_inputs or {}
        self.historical_calls: list[tuple[str, int, int]] = []
        self.tx_lookups: list[str] = []
        self.subscriptions: dict[str, FakeSubscription] = {}

    async def fetch_historical(self, kind: str, from_block: int, to_block: int) -> list[RawLog]:
        self.historical_calls.append((kind, from_block, to_block))
        if kind in self.fail_kinds:
            raise SourceUnavailable(f"{kind} range unavailable")
        return list(self.logs.get(kind, []))

    def subscribe(self, kind: str, on_batch: Any, *, from_block: int | None = None) -> FakeSubscription:
        sub = FakeSubscription(kind, on_batch, from_block)
        self.subscriptions[kind] = sub
        return sub

    async def fetch_transaction_input(self, tx: str) -> str | None:
        self.tx_lookups.append(tx)
        value = self.tx_inputs.get(tx)
        if isinstance(value, Exception):
            raise value
        return value

    async def current_block_height(self) -> int:
        if isinstance(self.height, Exception):
            raise self.height
        return self.height


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.get_logs = AsyncMock(return_value=[])
    rpc.latest_block = AsyncMock(return_value=100)
    rpc.get_transaction_input = AsyncMock(return_value=None)
    rpc.aclose = AsyncMock()
    return rpc


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def register_call() -> str:
    return call_data(REGISTER_NAME_SIG, ["alice.eth", "ipfs://img", ALICE])
