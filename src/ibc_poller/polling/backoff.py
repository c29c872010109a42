"""Bounded exponential backoff schedule."""

from __future__ import annotations

from ibc_poller.models.config import BackoffConfig


class Backoff:
    """Yields delays of interval, interval*m, interval*m^2 ... capped at ``cap``.

    One instance per poll; ``reset()`` after progress is made.
    """

    def __init__(self, config: BackoffConfig) -> None:
        self._initial = config.block_interval
        self._multiplier = config.multiplier
        self._cap = config.cap
        self._next = self._initial

    def next_delay(self) -> float:
        delay = min(self._next, self._cap)
        self._next = min(self._next * self._multiplier, self._cap)
        return delay

    def reset(self) -> None:
        self._next = self._initial
