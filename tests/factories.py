"""Synthetic event and tx factories for testing."""

from __future__ import annotations

from ibc_poller.models.events import Event, EventAttribute, Packet, TxResult


def make_event(event_type: str, **attrs: object) -> Event:
    return Event(
        type=event_type,
        attributes=tuple(EventAttribute(k, str(v).encode()) for k, v in attrs.items()),
    )


def make_packet(
    sequence: int = 1,
    source_port: str = "transfer",
    source_channel: str = "channel-0",
    destination_port: str = "transfer",
    destination_channel: str = "channel-0",
) -> Packet:
    return Packet(
        sequence=sequence,
        source_port=source_port,
        source_channel=source_channel,
        destination_port=destination_port,
        destination_channel=destination_channel,
    )


def make_ack_event(
    sequence: int = 1,
    source_port: str = "transfer",
    source_channel: str = "channel-0",
) -> Event:
    return make_event(
        "acknowledge_packet",
        packet_timeout_height="0-1000",
        packet_timeout_timestamp=0,
        packet_sequence=sequence,
        packet_src_port=source_port,
        packet_src_channel=source_channel,
        packet_dst_port="transfer",
        packet_dst_channel="channel-0",
        packet_channel_ordering="ORDER_UNORDERED",
        packet_connection="connection-0",
    )


def make_channel_open_confirm_event(
    controller_chain_id: str = "stride-1",
    purpose: str = "DELEGATION",
    channel_id: str = "channel-1",
) -> Event:
    return make_event(
        "channel_open_confirm",
        port_id="icahost",
        channel_id=channel_id,
        counterparty_port_id=f"icacontroller-{controller_chain_id}.{purpose}",
        counterparty_channel_id="channel-1",
        connection_id="connection-0",
    )


def make_query_response_event(chain_id: str = "gaia-1", query_id: str = "q-1") -> Event:
    return make_event("submit_query_response", chain_id=chain_id, query_id=query_id)


def make_noise_event(n: int = 0) -> Event:
    return make_event("transfer", recipient=f"cosmos1recipient{n}", amount=f"{n}uatom")


def make_tx(height: int, index: int, *events: Event, code: int = 0) -> TxResult:
    return TxResult(height=height, index=index, events=tuple(events), code=code)


def make_block(height: int, tx_count: int = 3) -> list[TxResult]:
    """A block of ``tx_count`` txs carrying only unrelated events."""
    return [
        make_tx(height, i, make_event("message", action="/cosmos.bank.v1beta1.MsgSend"),
                make_noise_event(i))
        for i in range(tx_count)
    ]
