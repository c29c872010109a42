"""Protocol interfaces for all ibc_poller components."""

from ibc_poller.interfaces.block_source import BlockSource
from ibc_poller.interfaces.matcher import Matcher
from ibc_poller.interfaces.store import BlockStore

__all__ = [
    "BlockSource",
    "Matcher",
    "BlockStore",
]
