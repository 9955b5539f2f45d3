import asyncio
import random

import pytest

from conftest import FakeSource, raw_registered, raw_transferred, raw_updated, tx_hash
from ensfeed.core.errors import SourceUnavailable
from ensfeed.core.models import DomainEvent, RegisteredPayload, event_id
from ensfeed.core.use_cases.reconcile_feed import Feed, FeedReconciler, ReconcileConfig, compute_scan_window


def _event(tx: str, log_index: int = 0, block: int = 0) -> DomainEvent:
    return DomainEvent(
        id=event_id(tx, log_index),
        kind="Registered",
        payload=RegisteredPayload(name="n.eth", owner="", image_hash=""),
        observed_at=0.0,
        block_number=block,
        log_index=log_index,
    )


# ---------------------------------------------------------------------------
# Feed.merge
# ---------------------------------------------------------------------------


def test_merge_is_idempotent() -> None:
    feed = Feed()
    ev = _event(tx_hash(7))

    assert feed.merge([ev]) == 1
    once = feed.snapshot()
    assert feed.merge([ev]) == 0

    assert feed.snapshot() == once
    assert feed.ids() == [ev.id]


def test_merge_dedupes_within_a_batch() -> None:
    feed = Feed()
    ev = _event(tx_hash(1))

    assert feed.merge([ev, ev, _event(tx_hash(2))]) == 2
    assert len(feed) == 2


def test_low_hash_event_merged_into_full_feed_lands_at_head() -> None:
    feed = Feed(capacity=50)
    existing = [_event("0x" + "ff" * 31 + f"{i:02x}") for i in range(50)]
    feed.merge(existing)
    oldest = feed.ids()[-1]

    newcomer = _event("0x0011" + "00" * 30)
    assert feed.merge([newcomer]) == 1

    assert feed.ids()[0] == newcomer.id
    assert len(feed) == 50
    assert oldest not in feed.ids()


def test_merge_caps_feed_and_drops_the_oldest_entries() -> None:
    feed = Feed(capacity=50)
    batches = [[_event(tx_hash(b * 10 + i)) for i in range(7)] for b in range(18)]

    for batch in batches:
        feed.merge(batch)
        assert len(feed) <= 50

    # later batches sit in front; only the most recent ones survive
    kept = [ev.id for batch in reversed(batches) for ev in sorted(batch, key=lambda e: e.id, reverse=True)]
    assert feed.ids() == kept[:50]


def test_merge_of_oversized_batch_reports_kept_count() -> None:
    feed = Feed(capacity=50)

    assert feed.merge([_event(tx_hash(i)) for i in range(80)]) == 50
    assert feed.ids()[0] == f"{tx_hash(79)}-0"


def test_merge_orders_each_batch_newest_first() -> None:
    feed = Feed(capacity=20)
    rng = random.Random(11)

    for _ in range(15):
        batch = [_event(tx_hash(rng.randrange(1_000)), rng.randrange(3)) for _ in range(4)]
        before = feed.ids()
        added = feed.merge(batch)
        ids = feed.ids()
        assert ids[:added] == sorted(ids[:added], reverse=True)
        assert ids[added:] == before[: len(ids) - added]
        assert len(set(ids)) == len(ids)


def test_event_id_keeps_tx_hash_as_given() -> None:
    tx = "0x" + "AA" * 32

    assert event_id(tx, 0) == tx + "-0"


def test_block_ordering_sorts_by_chain_position() -> None:
    feed = Feed(order_by="block")
    early = _event(tx_hash(0xFF), log_index=0, block=10)
    late = _event(tx_hash(0x01), log_index=2, block=12)

    feed.merge([early, late])

    assert feed.ids() == [late.id, early.id]


def test_feed_rejects_bad_capacity() -> None:
    with pytest.raises(ValueError):
        Feed(capacity=0)


# ---------------------------------------------------------------------------
# Scan window
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "height, expected",
    [(100_000, (50_000, 100_000)), (10_000, (0, 10_000)), (50_000, (0, 50_000)), (0, (0, 0))],
)
def test_compute_scan_window(height: int, expected: tuple[int, int]) -> None:
    assert compute_scan_window(height, 50_000) == expected


@pytest.mark.asyncio
@pytest.mark.parametrize("height, window", [(100_000, (50_000, 100_000)), (10_000, (0, 10_000))])
async def test_activate_scans_window_for_every_kind(height: int, window: tuple[int, int]) -> None:
    source = FakeSource(height=height)

    await FeedReconciler(source).activate()

    assert sorted(source.historical_calls) == sorted(
        [("Registered", *window), ("Transferred", *window), ("Updated", *window)]
    )


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_activate_merges_history_and_starts_subscriptions() -> None:
    source = FakeSource(
        logs={
            "Registered": [raw_registered("a.eth", tx=tx_hash(1))],
            "Transferred": [raw_transferred("a.eth", tx=tx_hash(2))],
            "Updated": [raw_updated("a.eth", tx=tx_hash(3))],
        }
    )
    reconciler = FeedReconciler(source)
    assert reconciler.state == "Uninitialized"

    await reconciler.activate()

    assert reconciler.state == "Live"
    assert [e.id for e in reconciler.events] == [f"{tx_hash(i)}-0" for i in (3, 2, 1)]
    assert set(source.subscriptions) == {"Registered", "Transferred", "Updated"}


@pytest.mark.asyncio
async def test_partial_backfill_keeps_successful_kinds() -> None:
    source = FakeSource(
        logs={
            "Registered": [raw_registered("a.eth", tx=tx_hash(1))],
            "Transferred": [raw_transferred("a.eth", tx=tx_hash(2))],
            "Updated": [raw_updated("a.eth", tx=tx_hash(3))],
        },
        fail_kinds=("Transferred",),
    )
    reconciler = FeedReconciler(source)

    await reconciler.activate()

    assert {e.kind for e in reconciler.events} == {"Registered", "Updated"}
    assert reconciler.state == "Live"


@pytest.mark.asyncio
async def test_unreachable_source_leaves_feed_empty_without_error() -> None:
    source = FakeSource(height=SourceUnavailable("offline"), fail_kinds=("Registered", "Transferred", "Updated"))
    reconciler = FeedReconciler(source)

    await reconciler.activate()

    assert reconciler.events == ()
    assert source.historical_calls == []


@pytest.mark.asyncio
async def test_activate_twice_is_rejected(fake_source: FakeSource) -> None:
    reconciler = FeedReconciler(fake_source)
    await reconciler.activate()

    with pytest.raises(RuntimeError):
        await reconciler.activate()


@pytest.mark.asyncio
async def test_activate_without_subscriptions(fake_source: FakeSource) -> None:
    reconciler = FeedReconciler(fake_source)

    await reconciler.activate(subscribe=False)

    assert fake_source.subscriptions == {}
    assert reconciler.state == "Live"


@pytest.mark.asyncio
async def test_backfill_respects_capacity() -> None:
    source = FakeSource(logs={"Registered": [raw_registered("a.eth", tx=tx_hash(i)) for i in range(80)]})
    reconciler = FeedReconciler(source, config=ReconcileConfig(capacity=50))

    await reconciler.activate()

    assert len(reconciler.events) == 50
    assert reconciler.events[0].id == f"{tx_hash(79)}-0"


# ---------------------------------------------------------------------------
# End-to-end: same transaction, two log positions, then a live replay
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_same_tx_two_logs_then_live_replay_is_noop() -> None:
    tx = "0x" + "aa" * 32
    registered = raw_registered("a.eth", tx=tx, log_index=0)
    updated = raw_updated("a.eth", tx=tx, log_index=1)
    source = FakeSource(logs={"Registered": [registered], "Updated": [updated]})
    reconciler = FeedReconciler(source)

    await reconciler.activate()
    before = reconciler.events

    assert [e.id for e in before] == [f"{tx}-1", f"{tx}-0"]

    await source.subscriptions["Registered"].deliver([registered])

    assert reconciler.events == before


@pytest.mark.asyncio
async def test_live_batch_merges_new_events(fake_source: FakeSource) -> None:
    reconciler = FeedReconciler(fake_source)
    await reconciler.activate()

    await fake_source.subscriptions["Transferred"].deliver(
        [raw_transferred("x.eth", tx=tx_hash(5)), raw_transferred("y.eth", tx=tx_hash(6))]
    )

    assert [e.payload.name for e in reconciler.events] == ["y.eth", "x.eth"]


# ---------------------------------------------------------------------------
# Teardown
# ---------------------------------------------------------------------------


class _GatedSource(FakeSource):
    """Backfill blocks until `gate` is set."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.gate = asyncio.Event()

    async def fetch_historical(self, kind: str, from_block: int, to_block: int):
        await self.gate.wait()
        return await super().fetch_historical(kind, from_block, to_block)


@pytest.mark.asyncio
async def test_teardown_discards_inflight_backfill() -> None:
    source = _GatedSource(logs={"Registered": [raw_registered("a.eth", tx=tx_hash(1))]})
    reconciler = FeedReconciler(source)

    task = asyncio.create_task(reconciler.activate())
    await asyncio.sleep(0)
    assert reconciler.state == "Backfilling"

    await reconciler.aclose()
    source.gate.set()
    await task

    assert reconciler.events == ()
    assert all(sub.stopped for sub in source.subscriptions.values())
    assert reconciler.cancelled


@pytest.mark.asyncio
async def test_live_batch_after_teardown_is_ignored(fake_source: FakeSource) -> None:
    reconciler = FeedReconciler(fake_source)
    await reconciler.activate()
    sub = fake_source.subscriptions["Registered"]

    await reconciler.aclose()
    await reconciler.aclose()
    await sub.deliver([raw_registered("late.eth", tx=tx_hash(9))])

    assert reconciler.events == ()
    assert sub.stopped


@pytest.mark.asyncio
async def test_async_context_manager_activates_and_closes(fake_source: FakeSource) -> None:
    async with FeedReconciler(fake_source) as reconciler:
        assert reconciler.state == "Live"

    assert all(sub.stopped for sub in fake_source.subscriptions.values())


@pytest.mark.asyncio
async def test_subscriptions_resume_right_after_backfill_window() -> None:
    source = FakeSource(height=100_000)

    await FeedReconciler(source).activate()

    assert {kind: sub.from_block for kind, sub in source.subscriptions.items()} == {
        "Registered": 100_001,
        "Transferred": 100_001,
        "Updated": 100_001,
    }


@pytest.mark.asyncio
async def test_subscriptions_follow_head_when_height_unknown() -> None:
    source = FakeSource(height=SourceUnavailable("offline"))

    await FeedReconciler(source).activate()

    assert len(source.subscriptions) == 3
    assert all(sub.from_block is None for sub in source.subscriptions.values())
