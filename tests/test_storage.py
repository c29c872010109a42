"""SQLite block recorder and replay source."""

from __future__ import annotations

import asyncio

import aiosqlite
import pytest

from ibc_poller.errors import HeightNotYetProduced, HeightUnavailable
from ibc_poller.matching.matchers import AckMatcher
from ibc_poller.models.events import Event, EventAttribute
from ibc_poller.models.results import PollOutcome, PollRequest
from ibc_poller.storage.sources import RecordingBlockSource, ReplayBlockSource

from tests.conftest import GAIA_CHAIN_ID
from tests.factories import make_ack_event, make_block, make_packet, make_tx
from tests.mocks import MockBlockSource


async def test_record_and_load_block(store):
    txs = [
        make_tx(9, 0, make_ack_event(sequence=1)),
        make_tx(9, 1, code=11),
        make_tx(9, 2, Event("raw", (EventAttribute("blob", b"\x00\xff"),))),
    ]
    await store.record_block(GAIA_CHAIN_ID, 9, txs)

    loaded = await store.get_block(GAIA_CHAIN_ID, 9)

    assert loaded == txs


async def test_empty_block_is_recorded(store):
    await store.record_block(GAIA_CHAIN_ID, 3, [])
    assert await store.get_block(GAIA_CHAIN_ID, 3) == []
    assert await store.get_block(GAIA_CHAIN_ID, 4) is None


async def test_rerecording_replaces(store):
    await store.record_block(GAIA_CHAIN_ID, 5, make_block(5, tx_count=3))
    await store.record_block(GAIA_CHAIN_ID, 5, make_block(5, tx_count=1))
    assert len(await store.get_block(GAIA_CHAIN_ID, 5)) == 1


async def test_chains_are_isolated(store):
    await store.record_block(GAIA_CHAIN_ID, 5, make_block(5))
    assert await store.get_block("stride-1", 5) is None
    assert await store.height_range("stride-1") is None


async def test_height_range_and_find_events(store):
    for h in (4, 7, 6):
        await store.record_block(GAIA_CHAIN_ID, h, make_block(h, tx_count=1))
    await store.record_block(GAIA_CHAIN_ID, 8, [make_tx(8, 1, make_ack_event(sequence=2))])

    assert await store.height_range(GAIA_CHAIN_ID) == (4, 8)
    assert await store.find_events(GAIA_CHAIN_ID, "acknowledge_packet") == [(8, 1)]


async def test_recording_source_records_scanned_heights(store, poller):
    inner = MockBlockSource(
        blocks={12: [make_tx(12, 0, make_ack_event(sequence=6))]},
        tip=15, chain_id=GAIA_CHAIN_ID,
    )
    source = RecordingBlockSource(inner, store)

    result = await poller.poll(PollRequest(source, 10, 15, AckMatcher(make_packet(sequence=6))))

    assert result.matched
    assert await store.height_range(GAIA_CHAIN_ID) == (10, 12)


async def test_replay_source_reproduces_poll(store, poller):
    await store.record_block(GAIA_CHAIN_ID, 20, make_block(20))
    await store.record_block(GAIA_CHAIN_ID, 21, [make_tx(21, 2, make_ack_event(sequence=8))])
    replay = ReplayBlockSource(store, GAIA_CHAIN_ID)

    result = await poller.poll(PollRequest(replay, 20, 25, AckMatcher(make_packet(sequence=8))))

    assert result.outcome is PollOutcome.MATCHED
    assert (result.tx.height, result.tx.index) == (21, 2)


async def test_replay_source_missing_heights(store):
    await store.record_block(GAIA_CHAIN_ID, 10, [])
    await store.record_block(GAIA_CHAIN_ID, 12, [])
    replay = ReplayBlockSource(store, GAIA_CHAIN_ID)

    assert await replay.current_height() == 12
    with pytest.raises(HeightNotYetProduced):
        await replay.tx_results_at(13)
    with pytest.raises(HeightUnavailable):
        await replay.tx_results_at(11)


# ── Concurrent recording ──────────────────────────────────────────


async def test_concurrent_polls_record_same_heights(store, poller):
    inner = MockBlockSource(
        blocks={h: make_block(h, tx_count=2) for h in range(1, 7)},
        tip=6, chain_id=GAIA_CHAIN_ID,
    )
    source = RecordingBlockSource(inner, store)

    results = await asyncio.gather(
        poller.poll(PollRequest(source, 1, 6, AckMatcher(make_packet(sequence=1)))),
        poller.poll(PollRequest(source, 1, 6, AckMatcher(make_packet(sequence=2)))),
    )

    assert [r.outcome for r in results] == [PollOutcome.TIMEOUT, PollOutcome.TIMEOUT]
    assert await store.height_range(GAIA_CHAIN_ID) == (1, 6)
    for h in range(1, 7):
        assert len(await store.get_block(GAIA_CHAIN_ID, h)) == 2


async def test_concurrent_record_block_calls(store):
    await asyncio.gather(*(
        store.record_block(GAIA_CHAIN_ID, 9, make_block(9, tx_count=n)) for n in (1, 2, 3, 4)
    ))

    # Last writer wins, with no rows left over from the others
    assert len(await store.get_block(GAIA_CHAIN_ID, 9)) == 4


class BrokenStore:
    """BlockStore whose writes always fail."""

    async def record_block(self, chain_id, height, txs):
        raise aiosqlite.OperationalError("database is locked")


async def test_recording_failure_does_not_abort_poll(poller):
    inner = MockBlockSource(
        blocks={3: [make_tx(3, 0, make_ack_event(sequence=4))]},
        tip=5, chain_id=GAIA_CHAIN_ID,
    )
    source = RecordingBlockSource(inner, BrokenStore())

    result = await poller.poll(PollRequest(source, 1, 5, AckMatcher(make_packet(sequence=4))))

    assert result.outcome is PollOutcome.MATCHED
    assert result.tx.height == 3
