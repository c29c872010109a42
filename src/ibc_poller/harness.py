"""Scenario driver helpers - the checkpoints an IBC end-to-end test waits on."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

from ibc_poller.errors import ChainUnavailable, PollError
from ibc_poller.interfaces.block_source import BlockSource
from ibc_poller.interfaces.matcher import Matcher
from ibc_poller.matching.matchers import (
    AckMatcher,
    ChannelOpenConfirmMatcher,
    SubmitQueryResponseMatcher,
)
from ibc_poller.models.config import HarnessConfig
from ibc_poller.models.events import Packet, TxResult
from ibc_poller.models.results import PollRequest, PollResult
from ibc_poller.polling.backoff import Backoff
from ibc_poller.polling.poller import EventPoller
from ibc_poller.storage.sqlite import SQLiteBlockStore

log = logging.getLogger(__name__)


def require_match(result: PollResult) -> TxResult:
    """Turn a non-matched poll into an AssertionError (cause: the PollError)."""
    try:
        return result.unwrap()
    except PollError as exc:
        raise AssertionError(str(exc)) from exc


async def gather_polls(*polls: Awaitable[Any]) -> list[Any]:
    """Run polls concurrently; the first failure cancels the rest and propagates."""
    tasks = [asyncio.ensure_future(p) for p in polls]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        pending = [t for t in tasks if not t.done()]
        if pending:
            log.info("Cancelling %d outstanding poll(s)", len(pending))
        for task in pending:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class PollHarness:
    """Wraps an EventPoller with the defaults a test scenario needs.

    Every poll gets a deadline ``timeout`` seconds out. With a block store
    attached, each poll outcome is logged to it.
    """

    def __init__(
        self,
        poller: EventPoller | None = None,
        timeout: float | None = 120.0,
        store: SQLiteBlockStore | None = None,
    ) -> None:
        self.poller = poller or EventPoller()
        self.timeout = timeout
        self.store = store

    @classmethod
    def from_config(cls, cfg: HarnessConfig, store: SQLiteBlockStore | None = None) -> PollHarness:
        return cls(EventPoller(cfg.poller), cfg.timeout, store)

    async def poll(
        self,
        source: BlockSource,
        start: int,
        end: int,
        matcher: Matcher,
        cancel: asyncio.Event | None = None,
    ) -> PollResult:
        request = PollRequest.ahead(source, start, end - start, matcher, self.timeout, cancel)
        result = await self.poller.poll(request)
        if self.store is not None:
            await self.store.record_poll(source.chain_id, repr(matcher), result)
        return result

    async def poll_ahead(
        self,
        source: BlockSource,
        lookahead: int,
        matcher: Matcher,
        cancel: asyncio.Event | None = None,
    ) -> PollResult:
        """Poll from the chain's current height through ``lookahead`` more blocks.

        The start height lookup is retried like any other query, up to the
        poller's ``max_chain_errors``; past that the last ChainUnavailable
        is raised.
        """
        start = await self._start_height(source)
        return await self.poll(source, start, start + lookahead, matcher, cancel)

    async def _start_height(self, source: BlockSource) -> int:
        config = self.poller.config
        backoff = Backoff(config.backoff)
        errors = 0
        while True:
            try:
                return await source.current_height()
            except ChainUnavailable as exc:
                errors += 1
                if exc.permanent or errors >= config.max_chain_errors:
                    raise
                log.warning(
                    "%s: start height lookup failed (%d/%d): %s",
                    source.chain_id, errors, config.max_chain_errors, exc,
                )
                await asyncio.sleep(backoff.next_delay())

    # ── Checkpoints ────────────────────────────────────────

    async def poll_for_ack(
        self, source: BlockSource, start: int, end: int, packet: Packet,
    ) -> TxResult:
        """Wait for the acknowledgement of ``packet`` on its source chain."""
        result = await self.poll(source, start, end, AckMatcher(packet))
        return require_match(result)

    async def poll_for_channel_open_confirm(
        self, source: BlockSource, start: int, end: int, counterparty_chain_id: str,
    ) -> TxResult:
        """Wait for an ICA channel handshake with ``counterparty_chain_id`` to complete."""
        result = await self.poll(
            source, start, end, ChannelOpenConfirmMatcher(counterparty_chain_id),
        )
        return require_match(result)

    async def poll_for_submit_query_response(
        self, source: BlockSource, start: int, end: int, chain_id: str,
    ) -> TxResult:
        """Wait for an interchain-query response callback scoped to ``chain_id``."""
        result = await self.poll(source, start, end, SubmitQueryResponseMatcher(chain_id))
        return require_match(result)
