"""SQLite block recorder: blocks, txs, events and attributes seen during a run."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

import aiosqlite

from ibc_poller.models.events import Event, EventAttribute, TxResult
from ibc_poller.models.results import PollResult

SCHEMA = """
-- Heights fetched from a chain (a block may have zero txs)
CREATE TABLE IF NOT EXISTS blocks (
    chain_id TEXT NOT NULL,
    height INTEGER NOT NULL,
    tx_count INTEGER NOT NULL,
    recorded_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (chain_id, height)
);

CREATE TABLE IF NOT EXISTS txs (
    chain_id TEXT NOT NULL,
    height INTEGER NOT NULL,
    tx_index INTEGER NOT NULL,
    code INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (chain_id, height, tx_index)
);

CREATE TABLE IF NOT EXISTS events (
    chain_id TEXT NOT NULL,
    height INTEGER NOT NULL,
    tx_index INTEGER NOT NULL,
    event_index INTEGER NOT NULL,
    type TEXT NOT NULL,
    PRIMARY KEY (chain_id, height, tx_index, event_index)
);
CREATE INDEX IF NOT EXISTS idx_events_type ON events(chain_id, type);

CREATE TABLE IF NOT EXISTS attributes (
    chain_id TEXT NOT NULL,
    height INTEGER NOT NULL,
    tx_index INTEGER NOT NULL,
    event_index INTEGER NOT NULL,
    attr_index INTEGER NOT NULL,
    key TEXT NOT NULL,
    value BLOB NOT NULL,
    PRIMARY KEY (chain_id, height, tx_index, event_index, attr_index)
);

-- Outcome of every poll run through the harness
CREATE TABLE IF NOT EXISTS polls (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    chain_id TEXT NOT NULL,
    matcher TEXT NOT NULL,
    start_height INTEGER NOT NULL,
    end_height INTEGER NOT NULL,
    outcome TEXT NOT NULL,
    match_height INTEGER,
    match_tx_index INTEGER,
    heights_scanned INTEGER NOT NULL,
    error TEXT,
    created_at TEXT NOT NULL
);
"""

_TABLES = ("attributes", "events", "txs", "blocks")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteBlockStore:
    """SQLite-backed implementation of the BlockStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        # Writers share one connection; a commit must never land mid-write
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Blocks ─────────────────────────────────────────────

    async def record_block(self, chain_id: str, height: int, txs: Sequence[TxResult]) -> None:
        """Replace everything recorded for (chain_id, height) in one transaction."""
        async with self._write_lock:
            try:
                await self._write_block(chain_id, height, txs)
                await self.db.commit()
            except BaseException:
                await self.db.rollback()
                raise

    async def _write_block(self, chain_id: str, height: int, txs: Sequence[TxResult]) -> None:
        for table in _TABLES:
            await self.db.execute(
                f"DELETE FROM {table} WHERE chain_id=? AND height=?", (chain_id, height),
            )

        await self.db.execute(
            "INSERT INTO blocks (chain_id, height, tx_count, recorded_at) VALUES (?, ?, ?, ?)",
            (chain_id, height, len(txs), _now()),
        )
        for tx in txs:
            await self.db.execute(
                "INSERT INTO txs (chain_id, height, tx_index, code) VALUES (?, ?, ?, ?)",
                (chain_id, height, tx.index, tx.code),
            )
            for ei, event in enumerate(tx.events):
                await self.db.execute(
                    "INSERT INTO events (chain_id, height, tx_index, event_index, type)"
                    " VALUES (?, ?, ?, ?, ?)",
                    (chain_id, height, tx.index, ei, event.type),
                )
                await self.db.executemany(
                    "INSERT INTO attributes"
                    " (chain_id, height, tx_index, event_index, attr_index, key, value)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?)",
                    [
                        (chain_id, height, tx.index, ei, ai, attr.key, attr.value)
                        for ai, attr in enumerate(event.attributes)
                    ],
                )

    async def get_block(self, chain_id: str, height: int) -> list[TxResult] | None:
        async with self.db.execute(
            "SELECT tx_count FROM blocks WHERE chain_id=? AND height=?", (chain_id, height),
        ) as cur:
            if await cur.fetchone() is None:
                return None

        attrs: dict[tuple[int, int], list[EventAttribute]] = {}
        async with self.db.execute(
            "SELECT tx_index, event_index, key, value FROM attributes"
            " WHERE chain_id=? AND height=? ORDER BY tx_index, event_index, attr_index",
            (chain_id, height),
        ) as cur:
            async for row in cur:
                attrs.setdefault((row["tx_index"], row["event_index"]), []).append(
                    EventAttribute(row["key"], bytes(row["value"]))
                )

        events: dict[int, list[Event]] = {}
        async with self.db.execute(
            "SELECT tx_index, event_index, type FROM events"
            " WHERE chain_id=? AND height=? ORDER BY tx_index, event_index",
            (chain_id, height),
        ) as cur:
            async for row in cur:
                key = (row["tx_index"], row["event_index"])
                events.setdefault(row["tx_index"], []).append(
                    Event(row["type"], tuple(attrs.get(key, ())))
                )

        txs: list[TxResult] = []
        async with self.db.execute(
            "SELECT tx_index, code FROM txs WHERE chain_id=? AND height=? ORDER BY tx_index",
            (chain_id, height),
        ) as cur:
            async for row in cur:
                txs.append(TxResult(
                    height=height,
                    index=row["tx_index"],
                    events=tuple(events.get(row["tx_index"], ())),
                    code=row["code"],
                ))
        return txs

    async def height_range(self, chain_id: str) -> tuple[int, int] | None:
        async with self.db.execute(
            "SELECT MIN(height) AS lo, MAX(height) AS hi FROM blocks WHERE chain_id=?",
            (chain_id,),
        ) as cur:
            row = await cur.fetchone()
            if row is None or row["hi"] is None:
                return None
            return row["lo"], row["hi"]

    async def find_events(self, chain_id: str, event_type: str) -> list[tuple[int, int]]:
        """(height, tx_index) of every recorded event of ``event_type``, ascending."""
        async with self.db.execute(
            "SELECT DISTINCT height, tx_index FROM events WHERE chain_id=? AND type=?"
            " ORDER BY height, tx_index",
            (chain_id, event_type),
        ) as cur:
            return [(row["height"], row["tx_index"]) async for row in cur]

    # ── Poll log ───────────────────────────────────────────

    async def record_poll(self, chain_id: str, matcher: str, result: PollResult) -> None:
        async with self._write_lock:
            await self._insert_poll(chain_id, matcher, result)
            await self.db.commit()

    async def _insert_poll(self, chain_id: str, matcher: str, result: PollResult) -> None:
        await self.db.execute(
            "INSERT INTO polls (chain_id, matcher, start_height, end_height, outcome,"
            " match_height, match_tx_index, heights_scanned, error, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                chain_id,
                matcher,
                result.start,
                result.end,
                result.outcome.value,
                result.tx.height if result.tx else None,
                result.tx.index if result.tx else None,
                result.heights_scanned,
                str(result.error) if result.error else None,
                _now(),
            ),
        )

    async def get_polls(self, chain_id: str | None = None) -> list[dict]:
        sql = "SELECT * FROM polls"
        params: tuple = ()
        if chain_id is not None:
            sql += " WHERE chain_id=?"
            params = (chain_id,)
        async with self.db.execute(sql + " ORDER BY id", params) as cur:
            return [dict(row) async for row in cur]
