"""Exception taxonomy for block sources, event decoding and poll outcomes."""

from __future__ import annotations


class IBCPollerError(Exception):
    """Base class for all ibc_poller errors."""


class ConfigError(IBCPollerError):
    """Invalid or incomplete configuration."""


class EventDecodeError(IBCPollerError):
    """A single event (or one of its attributes) could not be decoded.

    Never terminal: the poller logs it and moves on to the next event.
    """


# ── Block source errors ─────────────────────────────────────────


class ChainUnavailable(IBCPollerError):
    """A BlockSource query failed.

    Transient by default. ``permanent`` marks failures that retrying
    cannot fix, e.g. a height the node has pruned.
    """

    permanent: bool = False

    def __init__(self, chain_id: str, detail: str, permanent: bool | None = None) -> None:
        super().__init__(f"{chain_id}: {detail}")
        self.chain_id = chain_id
        self.detail = detail
        if permanent is not None:
            self.permanent = permanent


class HeightNotYetProduced(ChainUnavailable):
    """The requested height is above the chain tip; it may exist later."""

    def __init__(self, chain_id: str, height: int, latest: int | None = None) -> None:
        detail = f"height {height} not yet produced"
        if latest is not None:
            detail += f" (latest {latest})"
        super().__init__(chain_id, detail)
        self.height = height
        self.latest = latest


class HeightUnavailable(ChainUnavailable):
    """The requested height will never be served (pruned or never recorded)."""

    permanent = True

    def __init__(self, chain_id: str, height: int, lowest: int | None = None) -> None:
        detail = f"height {height} is not available"
        if lowest is not None:
            detail += f", lowest height is {lowest}"
        super().__init__(chain_id, detail)
        self.height = height
        self.lowest = lowest


# ── Terminal poll outcomes (raised by PollResult.unwrap) ────────


class PollError(IBCPollerError):
    """A poll ended without a matching event."""

    def __init__(self, message: str, start: int, end: int, last_height: int | None) -> None:
        super().__init__(message)
        self.start = start
        self.end = end
        self.last_height = last_height


class PollTimeout(PollError):
    """The height range was exhausted with no matching event."""


class PollCancelled(PollError):
    """The caller's deadline or cancellation signal fired first."""


class PollChainUnavailable(PollError):
    """The block source kept failing past the retry budget."""
