"""Block recording and replay."""

from ibc_poller.storage.sources import RecordingBlockSource, ReplayBlockSource
from ibc_poller.storage.sqlite import SQLiteBlockStore

__all__ = ["RecordingBlockSource", "ReplayBlockSource", "SQLiteBlockStore"]
