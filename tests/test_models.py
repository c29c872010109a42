"""Event accessors, Packet decoding and PollResult unwrapping."""

from __future__ import annotations

import pytest

from ibc_poller.errors import (
    ChainUnavailable,
    EventDecodeError,
    PollCancelled,
    PollChainUnavailable,
    PollTimeout,
)
from ibc_poller.models.events import Packet
from ibc_poller.models.results import PollOutcome, PollResult

from tests.factories import make_event, make_tx


def test_event_accessors():
    event = make_event("send_packet", packet_sequence=12, packet_src_port="transfer")
    assert event.get("packet_sequence") == b"12"
    assert event.text("packet_src_port") == "transfer"
    assert event.integer("packet_sequence") == 12
    assert event.get("missing") is None
    assert event.integer("missing") is None


def test_packet_from_send_packet_event():
    event = make_event(
        "send_packet",
        packet_data_hex=b'{"amount":"1"}'.hex(),
        packet_timeout_height="1-500",
        packet_timeout_timestamp=1700000000000000000,
        packet_sequence=7,
        packet_src_port="transfer",
        packet_src_channel="channel-0",
        packet_dst_port="transfer",
        packet_dst_channel="channel-3",
    )
    packet = Packet.from_event(event)
    assert packet.sequence == 7
    assert packet.destination_channel == "channel-3"
    assert packet.data == b'{"amount":"1"}'
    assert packet.timeout_timestamp == 1700000000000000000


def test_packet_from_incomplete_event():
    with pytest.raises(EventDecodeError):
        Packet.from_event(make_event("send_packet", packet_sequence=1))


def _result(outcome: PollOutcome, **kw) -> PollResult:
    return PollResult(outcome=outcome, start=10, end=20, **kw)


def test_unwrap_matched():
    tx = make_tx(12, 0)
    assert _result(PollOutcome.MATCHED, tx=tx).unwrap() is tx


@pytest.mark.parametrize("outcome, exc_type", [
    (PollOutcome.TIMEOUT, PollTimeout),
    (PollOutcome.CANCELLED, PollCancelled),
    (PollOutcome.CHAIN_UNAVAILABLE, PollChainUnavailable),
])
def test_unwrap_failures_are_distinct(outcome, exc_type):
    with pytest.raises(exc_type) as info:
        _result(outcome, last_height=15).unwrap()
    assert (info.value.start, info.value.end, info.value.last_height) == (10, 20, 15)


def test_unwrap_chains_source_error():
    cause = ChainUnavailable("gaia-1", "connection refused")
    with pytest.raises(PollChainUnavailable) as info:
        _result(PollOutcome.CHAIN_UNAVAILABLE, error=cause).unwrap()
    assert info.value.__cause__ is cause
