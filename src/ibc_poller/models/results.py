"""Poll request and result types."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from ibc_poller.errors import (
    ChainUnavailable,
    PollCancelled,
    PollChainUnavailable,
    PollTimeout,
)
from ibc_poller.models.events import Event, TxResult

if TYPE_CHECKING:
    from ibc_poller.interfaces.block_source import BlockSource
    from ibc_poller.interfaces.matcher import Matcher


class PollOutcome(str, Enum):
    """Terminal state of one poll."""

    MATCHED = "matched"
    TIMEOUT = "timeout"  # range exhausted, event never happened
    CANCELLED = "cancelled"  # deadline or cancel signal fired
    CHAIN_UNAVAILABLE = "chain_unavailable"


@dataclass
class PollRequest:
    """Scan heights ``start..end`` (inclusive) of ``source`` for ``matcher``.

    ``deadline`` is a ``time.monotonic()`` instant; ``cancel`` is an
    optional signal the caller can set to abort the poll early.
    """

    source: BlockSource
    start: int
    end: int
    matcher: Matcher
    deadline: float | None = None
    cancel: asyncio.Event | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"start height must be non-negative, got {self.start}")
        if self.start > self.end:
            raise ValueError(f"start height {self.start} is above end height {self.end}")

    @classmethod
    def ahead(
        cls,
        source: BlockSource,
        start: int,
        lookahead: int,
        matcher: Matcher,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PollRequest:
        """Request for ``[start, start + lookahead]`` expiring ``timeout`` seconds from now."""
        deadline = time.monotonic() + timeout if timeout is not None else None
        return cls(source, start, start + lookahead, matcher, deadline, cancel)

    def remaining(self) -> float | None:
        """Seconds until the deadline (never negative), None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def stopped(self) -> bool:
        """True once the deadline has passed or the cancel signal is set."""
        if self.cancel is not None and self.cancel.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline


@dataclass
class PollResult:
    """What a poll produced: a matched tx or a distinct failure kind."""

    outcome: PollOutcome
    start: int
    end: int
    tx: TxResult | None = None
    event: Event | None = None
    event_index: int | None = None
    last_height: int | None = None  # highest height fully scanned
    heights_scanned: int = 0
    error: ChainUnavailable | None = None

    @property
    def matched(self) -> bool:
        return self.outcome is PollOutcome.MATCHED

    def unwrap(self) -> TxResult:
        """Return the matched TxResult or raise the outcome's exception."""
        if self.outcome is PollOutcome.MATCHED and self.tx is not None:
            return self.tx

        window = f"heights {self.start}..{self.end}"
        if self.outcome is PollOutcome.TIMEOUT:
            raise PollTimeout(
                f"no matching event in {window}", self.start, self.end, self.last_height,
            )
        if self.outcome is PollOutcome.CANCELLED:
            raise PollCancelled(
                f"poll over {window} cancelled after height {self.last_height}",
                self.start, self.end, self.last_height,
            )
        raise PollChainUnavailable(
            f"chain unavailable while polling {window}: {self.error}",
            self.start, self.end, self.last_height,
        ) from self.error
