"""BlockSources backed by a BlockStore: record-through and replay."""

from __future__ import annotations

import logging
from typing import Sequence

import aiosqlite

from ibc_poller.errors import HeightNotYetProduced, HeightUnavailable
from ibc_poller.interfaces.block_source import BlockSource
from ibc_poller.interfaces.store import BlockStore
from ibc_poller.models.events import TxResult

log = logging.getLogger(__name__)


class RecordingBlockSource:
    """Wraps a BlockSource and records every height it serves into a store."""

    def __init__(self, inner: BlockSource, store: BlockStore) -> None:
        self._inner = inner
        self._store = store

    @property
    def chain_id(self) -> str:
        return self._inner.chain_id

    async def current_height(self) -> int:
        return await self._inner.current_height()

    async def tx_results_at(self, height: int) -> Sequence[TxResult]:
        txs = await self._inner.tx_results_at(height)
        try:
            await self._store.record_block(self.chain_id, height, txs)
        except aiosqlite.Error as exc:
            log.warning("Failed to record %s height %d: %s", self.chain_id, height, exc)
        else:
            log.debug("Recorded %s height %d (%d txs)", self.chain_id, height, len(txs))
        return txs


class ReplayBlockSource:
    """Serves previously recorded blocks as if from a live chain.

    The tip is the highest recorded height. Unrecorded heights above it
    are reported as not yet produced; unrecorded heights at or below it
    will never appear.
    """

    def __init__(self, store: BlockStore, chain_id: str) -> None:
        self._store = store
        self._chain_id = chain_id

    @property
    def chain_id(self) -> str:
        return self._chain_id

    async def current_height(self) -> int:
        span = await self._store.height_range(self._chain_id)
        return span[1] if span else 0

    async def tx_results_at(self, height: int) -> Sequence[TxResult]:
        txs = await self._store.get_block(self._chain_id, height)
        if txs is not None:
            return txs

        span = await self._store.height_range(self._chain_id)
        if span is None or height > span[1]:
            raise HeightNotYetProduced(self._chain_id, height, span[1] if span else None)
        raise HeightUnavailable(self._chain_id, height, span[0])
