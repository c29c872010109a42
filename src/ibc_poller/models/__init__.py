"""Data models for ibc_poller."""

from ibc_poller.models.events import Event, EventAttribute, Packet, TxResult
from ibc_poller.models.results import PollOutcome, PollRequest, PollResult
from ibc_poller.models.config import (
    AttributeEncoding,
    BackoffConfig,
    ChainConfig,
    HarnessConfig,
    PollerConfig,
)

__all__ = [
    "Event", "EventAttribute", "Packet", "TxResult",
    "PollOutcome", "PollRequest", "PollResult",
    "AttributeEncoding", "BackoffConfig", "ChainConfig", "HarnessConfig", "PollerConfig",
]
