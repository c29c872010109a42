"""ibc_poller - block-range event polling for IBC end-to-end tests."""

from ibc_poller.errors import (
    ChainUnavailable,
    EventDecodeError,
    HeightNotYetProduced,
    HeightUnavailable,
    PollCancelled,
    PollChainUnavailable,
    PollError,
    PollTimeout,
)
from ibc_poller.matching import (
    AckMatcher,
    AllOf,
    AttributeMatcher,
    ChannelOpenConfirmMatcher,
    SubmitQueryResponseMatcher,
)
from ibc_poller.models import Event, EventAttribute, Packet, PollOutcome, PollRequest, PollResult, TxResult
from ibc_poller.polling import EventPoller

__version__ = "0.1.0"

__all__ = [
    "ChainUnavailable", "EventDecodeError", "HeightNotYetProduced", "HeightUnavailable",
    "PollCancelled", "PollChainUnavailable", "PollError", "PollTimeout",
    "AckMatcher", "AllOf", "AttributeMatcher", "ChannelOpenConfirmMatcher",
    "SubmitQueryResponseMatcher",
    "Event", "EventAttribute", "Packet", "PollOutcome", "PollRequest", "PollResult", "TxResult",
    "EventPoller",
]
