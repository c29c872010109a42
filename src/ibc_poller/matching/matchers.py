"""Event matchers for IBC acknowledgements, channel handshakes and ICQ callbacks."""

from __future__ import annotations

from dataclasses import dataclass

from ibc_poller.models.events import Event, Packet

ACKNOWLEDGE_PACKET = "acknowledge_packet"
CHANNEL_OPEN_CONFIRM = "channel_open_confirm"
SUBMIT_QUERY_RESPONSE = "submit_query_response"

ICA_CONTROLLER_PORT_PREFIX = "icacontroller-"


class BaseMatcher:
    """Mixin giving matchers ``a & b`` composition."""

    def matches(self, event: Event) -> bool:
        raise NotImplementedError

    def __and__(self, other: object) -> AllOf:
        if not hasattr(other, "matches"):
            return NotImplemented
        left = self.matchers if isinstance(self, AllOf) else (self,)
        right = other.matchers if isinstance(other, AllOf) else (other,)
        return AllOf(left + right)


@dataclass(frozen=True)
class AllOf(BaseMatcher):
    """Matches when every inner matcher matches."""

    matchers: tuple = ()

    def matches(self, event: Event) -> bool:
        return all(m.matches(event) for m in self.matchers)


@dataclass(frozen=True)
class AttributeMatcher(BaseMatcher):
    """Event of ``event_type`` whose attributes equal every expected value.

    ``expected`` is a tuple of (key, value) pairs compared as UTF-8 text.
    An absent attribute never matches.
    """

    event_type: str
    expected: tuple[tuple[str, str], ...] = ()

    @classmethod
    def of(cls, event_type: str, **attrs: object) -> AttributeMatcher:
        return cls(event_type, tuple((k, str(v)) for k, v in attrs.items()))

    def matches(self, event: Event) -> bool:
        if event.type != self.event_type:
            return False
        for key, want in self.expected:
            if event.text(key) != want:
                return False
        return True


@dataclass(frozen=True)
class AckMatcher(BaseMatcher):
    """The acknowledge_packet event for ``packet`` on the source chain."""

    packet: Packet

    def matches(self, event: Event) -> bool:
        if event.type != ACKNOWLEDGE_PACKET:
            return False
        return (
            event.text("packet_src_port") == self.packet.source_port
            and event.text("packet_src_channel") == self.packet.source_channel
            and event.integer("packet_sequence") == self.packet.sequence
        )


@dataclass(frozen=True)
class ChannelOpenConfirmMatcher(BaseMatcher):
    """channel_open_confirm for a channel whose counterparty is ``counterparty_chain_id``.

    On an ICA host the counterparty port is ``icacontroller-<owner>``; the
    controller names owners ``<chain-id>.<PURPOSE>`` (e.g. ``gaia-1.DELEGATION``),
    so the owner identifies the chain. A ``counterparty_chain_id`` attribute,
    when the node emits one, is compared directly.
    """

    counterparty_chain_id: str

    def matches(self, event: Event) -> bool:
        if event.type != CHANNEL_OPEN_CONFIRM:
            return False

        explicit = event.text("counterparty_chain_id")
        if explicit is not None:
            return explicit == self.counterparty_chain_id

        port = event.text("counterparty_port_id") or ""
        if not port.startswith(ICA_CONTROLLER_PORT_PREFIX):
            return False
        owner = port[len(ICA_CONTROLLER_PORT_PREFIX):]
        return owner == self.counterparty_chain_id or owner.startswith(
            f"{self.counterparty_chain_id}."
        )


@dataclass(frozen=True)
class SubmitQueryResponseMatcher(BaseMatcher):
    """Interchain-query callback delivered for ``chain_id``."""

    chain_id: str

    def matches(self, event: Event) -> bool:
        return event.type == SUBMIT_QUERY_RESPONSE and event.text("chain_id") == self.chain_id
