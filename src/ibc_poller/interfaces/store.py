"""BlockStore protocol - persistence for fetched block results."""

from __future__ import annotations

from typing import Protocol, Sequence

from ibc_poller.models.events import TxResult


class BlockStore(Protocol):
    """Records tx results per (chain, height) and reads them back."""

    async def initialize(self) -> None:
        """Create tables if needed."""
        ...

    async def close(self) -> None:
        ...

    async def record_block(self, chain_id: str, height: int, txs: Sequence[TxResult]) -> None:
        """Persist all tx results of one height. Re-recording replaces."""
        ...

    async def get_block(self, chain_id: str, height: int) -> list[TxResult] | None:
        """Tx results recorded for ``height``; None if never recorded."""
        ...

    async def height_range(self, chain_id: str) -> tuple[int, int] | None:
        """(lowest, highest) recorded height for ``chain_id``; None if empty."""
        ...
