"""Block-range event poller - waits for a matching event within [start, end]."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Sequence, TypeVar

from ibc_poller.errors import ChainUnavailable, EventDecodeError, HeightNotYetProduced
from ibc_poller.interfaces.matcher import Matcher
from ibc_poller.models.config import PollerConfig
from ibc_poller.models.events import Event, TxResult
from ibc_poller.models.results import PollOutcome, PollRequest, PollResult
from ibc_poller.polling.backoff import Backoff

log = logging.getLogger(__name__)

T = TypeVar("T")


class _Stopped(Exception):
    """Deadline or cancel signal fired at a suspension point."""


class EventPoller:
    """Scans a height range of one chain for the first event a Matcher accepts.

    Each ``poll`` call walks heights in ascending order and never revisits
    a height it already scanned. While the next height is not produced yet
    it backs off exponentially (bounded by config) and re-queries the tip.
    Transient BlockSource failures are retried up to ``max_chain_errors``
    consecutive times.

    The poller keeps no state between calls, so one instance can serve any
    number of concurrent polls.
    """

    def __init__(self, config: PollerConfig | None = None) -> None:
        self._config = config or PollerConfig()

    @property
    def config(self) -> PollerConfig:
        return self._config

    async def poll(self, request: PollRequest) -> PollResult:
        """Run one poll to a terminal outcome. Never raises for poll failures."""
        source = request.source
        chain = source.chain_id
        backoff = Backoff(self._config.backoff)
        max_errors = self._config.max_chain_errors

        cursor = request.start
        known_tip = -1
        errors = 0
        scanned = 0
        last: int | None = None

        def finish(outcome: PollOutcome, **kw) -> PollResult:
            return PollResult(
                outcome=outcome,
                start=request.start,
                end=request.end,
                last_height=last,
                heights_scanned=scanned,
                **kw,
            )

        log.info(
            "Polling %s heights %d..%d for %r",
            chain, request.start, request.end, request.matcher,
        )

        try:
            while cursor <= request.end:
                if request.stopped():
                    raise _Stopped

                try:
                    if cursor > known_tip:
                        known_tip = await self._call(request, source.current_height())
                        errors = 0
                        if cursor > known_tip:
                            log.debug("%s: waiting for height %d (tip %d)", chain, cursor, known_tip)
                            await self._wait(request, backoff.next_delay())
                            continue

                    txs = await self._call(request, source.tx_results_at(cursor))

                except HeightNotYetProduced:
                    # Tip moved backwards from the node's point of view; wait it out
                    known_tip = cursor - 1
                    errors = 0
                    await self._wait(request, backoff.next_delay())
                    continue

                except ChainUnavailable as exc:
                    if exc.permanent:
                        log.error("%s: giving up at height %d: %s", chain, cursor, exc)
                        return finish(PollOutcome.CHAIN_UNAVAILABLE, error=exc)
                    errors += 1
                    if errors >= max_errors:
                        log.error(
                            "%s: unavailable after %d consecutive errors: %s",
                            chain, errors, exc,
                        )
                        return finish(PollOutcome.CHAIN_UNAVAILABLE, error=exc)
                    log.warning("%s: query failed (%d/%d): %s", chain, errors, max_errors, exc)
                    await self._wait(request, backoff.next_delay())
                    continue

                errors = 0
                backoff.reset()
                scanned += 1
                last = cursor

                hit = self._scan(chain, txs, request.matcher)
                if hit is not None:
                    tx, event, index = hit
                    log.info(
                        "%s: matched %s at height %d tx %d",
                        chain, event.type, tx.height, tx.index,
                    )
                    return finish(PollOutcome.MATCHED, tx=tx, event=event, event_index=index)

                cursor += 1

        except _Stopped:
            log.info("%s: poll cancelled waiting for height %d", chain, cursor)
            return finish(PollOutcome.CANCELLED)

        log.info("%s: no match in heights %d..%d", chain, request.start, request.end)
        return finish(PollOutcome.TIMEOUT)

    @staticmethod
    def _scan(
        chain: str, txs: Sequence[TxResult], matcher: Matcher,
    ) -> tuple[TxResult, Event, int] | None:
        """First (tx, event, event index) accepted by ``matcher``, in block order."""
        for tx in sorted(txs, key=lambda t: t.index):
            for i, event in enumerate(tx.events):
                try:
                    if matcher.matches(event):
                        return tx, event, i
                except EventDecodeError as exc:
                    log.debug(
                        "%s: skipping undecodable %s event (height %d tx %d): %s",
                        chain, event.type, tx.height, tx.index, exc,
                    )
        return None

    @staticmethod
    async def _wait(request: PollRequest, delay: float) -> None:
        """Sleep up to ``delay`` seconds, waking early on cancellation."""
        remaining = request.remaining()
        if remaining is not None:
            delay = min(delay, remaining)

        if request.cancel is None:
            await asyncio.sleep(delay)
        else:
            try:
                await asyncio.wait_for(request.cancel.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

        if request.stopped():
            raise _Stopped

    @staticmethod
    async def _call(request: PollRequest, call: Awaitable[T]) -> T:
        """Await a BlockSource call, abandoning it if the request stops first."""
        if request.deadline is None and request.cancel is None:
            return await call

        task = asyncio.ensure_future(call)
        waiters: set[asyncio.Future] = {task}
        stop = None
        if request.cancel is not None:
            stop = asyncio.ensure_future(request.cancel.wait())
            waiters.add(stop)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=request.remaining(), return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if stop is not None:
                stop.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise _Stopped
