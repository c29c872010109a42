"""Event matchers."""

from ibc_poller.matching.matchers import (
    AckMatcher,
    AllOf,
    AttributeMatcher,
    ChannelOpenConfirmMatcher,
    SubmitQueryResponseMatcher,
)

__all__ = [
    "AckMatcher",
    "AllOf",
    "AttributeMatcher",
    "ChannelOpenConfirmMatcher",
    "SubmitQueryResponseMatcher",
]
