"""BlockSource protocol - read-only height and tx-result lookups for one chain."""

from __future__ import annotations

from typing import Protocol, Sequence

from ibc_poller.models.events import TxResult


class BlockSource(Protocol):
    """Serves finalized blocks of one chain under test."""

    @property
    def chain_id(self) -> str:
        """Identifier of the chain this source reads from."""
        ...

    async def current_height(self) -> int:
        """Latest finalized height. Raises ChainUnavailable on node errors."""
        ...

    async def tx_results_at(self, height: int) -> Sequence[TxResult]:
        """All tx results finalized at ``height``, in block order.

        Raises HeightNotYetProduced above the tip, HeightUnavailable for
        heights that will never be served, ChainUnavailable otherwise.
        """
        ...
