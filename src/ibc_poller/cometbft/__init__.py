"""CometBFT/Tendermint RPC integration."""

from ibc_poller.cometbft.decode import decode_block_results, decode_event, encoding_for_version
from ibc_poller.cometbft.source import CometBFTBlockSource

__all__ = ["CometBFTBlockSource", "decode_block_results", "decode_event", "encoding_for_version"]
