"""ABCI event and transaction result models decoded from block results."""

from __future__ import annotations

from dataclasses import dataclass, field

from ibc_poller.errors import EventDecodeError


@dataclass(frozen=True)
class EventAttribute:
    """One key/value pair of an ABCI event. Values stay raw bytes."""

    key: str
    value: bytes


@dataclass(frozen=True)
class Event:
    """A typed ABCI event emitted by chain execution."""

    type: str
    attributes: tuple[EventAttribute, ...] = ()

    def get(self, key: str) -> bytes | None:
        """Raw value of the first attribute named ``key``, or None."""
        for attr in self.attributes:
            if attr.key == key:
                return attr.value
        return None

    def text(self, key: str) -> str | None:
        """UTF-8 value of the first attribute named ``key``, or None.

        Raises EventDecodeError if the value is not valid UTF-8.
        """
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EventDecodeError(
                f"{self.type}.{key} is not valid UTF-8: {raw[:32]!r}"
            ) from exc

    def integer(self, key: str) -> int | None:
        """Integer value of attribute ``key``, or None if absent."""
        value = self.text(key)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError as exc:
            raise EventDecodeError(f"{self.type}.{key} is not an integer: {value!r}") from exc

    def as_dict(self) -> dict[str, str]:
        """Attributes as a str dict (last value wins), undecodable bytes replaced."""
        return {a.key: a.value.decode("utf-8", errors="replace") for a in self.attributes}


@dataclass(frozen=True)
class TxResult:
    """The execution result of one transaction within a finalized block."""

    height: int
    index: int  # position of the tx within the block
    events: tuple[Event, ...] = ()
    code: int = 0  # ABCI result code, 0 = success

    @property
    def ok(self) -> bool:
        return self.code == 0

    def events_of(self, event_type: str) -> list[Event]:
        return [e for e in self.events if e.type == event_type]


@dataclass(frozen=True)
class Packet:
    """An IBC packet as seen in send_packet / acknowledge_packet events."""

    sequence: int
    source_port: str
    source_channel: str
    destination_port: str = ""
    destination_channel: str = ""
    data: bytes = field(default=b"", repr=False)
    timeout_height: str = ""
    timeout_timestamp: int = 0

    @classmethod
    def from_event(cls, event: Event) -> Packet:
        """Build a Packet from a send_packet (or acknowledge_packet) event."""
        sequence = event.integer("packet_sequence")
        src_port = event.text("packet_src_port")
        src_channel = event.text("packet_src_channel")
        if sequence is None or src_port is None or src_channel is None:
            raise EventDecodeError(f"{event.type} event is missing packet identifiers")

        data = event.get("packet_data_hex")
        if data is not None:
            try:
                data = bytes.fromhex(data.decode("ascii"))
            except (UnicodeDecodeError, ValueError) as exc:
                raise EventDecodeError("packet_data_hex is not valid hex") from exc
        else:
            data = event.get("packet_data") or b""

        return cls(
            sequence=sequence,
            source_port=src_port,
            source_channel=src_channel,
            destination_port=event.text("packet_dst_port") or "",
            destination_channel=event.text("packet_dst_channel") or "",
            data=data,
            timeout_height=event.text("packet_timeout_height") or "",
            timeout_timestamp=event.integer("packet_timeout_timestamp") or 0,
        )
