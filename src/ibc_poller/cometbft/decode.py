"""Decode CometBFT JSON-RPC block_results payloads into TxResult models."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

from ibc_poller.errors import EventDecodeError
from ibc_poller.models.config import AttributeEncoding
from ibc_poller.models.events import Event, EventAttribute, TxResult

log = logging.getLogger(__name__)


def encoding_for_version(version: str) -> AttributeEncoding:
    """Tendermint 0.34 and earlier base64-encode attributes; CometBFT 0.37+ does not."""
    parts = version.lstrip("v").split(".")
    try:
        major, minor = int(parts[0]), int(parts[1])
    except (ValueError, IndexError):
        return AttributeEncoding.PLAIN
    if major == 0 and minor <= 34:
        return AttributeEncoding.BASE64
    return AttributeEncoding.PLAIN


def _decode_field(raw: Any, encoding: AttributeEncoding) -> bytes:
    if raw is None:
        return b""
    if not isinstance(raw, str):
        raise EventDecodeError(f"attribute field is {type(raw).__name__}, expected string")
    if encoding is AttributeEncoding.BASE64:
        try:
            return base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise EventDecodeError(f"invalid base64 attribute {raw[:32]!r}") from exc
    return raw.encode("utf-8")


def decode_event(raw: Any, encoding: AttributeEncoding) -> Event:
    """Decode one ``{"type", "attributes": [{"key", "value"}]}`` object."""
    if not isinstance(raw, dict) or not isinstance(raw.get("type"), str):
        raise EventDecodeError("event has no type")

    attributes = []
    for attr in raw.get("attributes") or []:
        if not isinstance(attr, dict):
            raise EventDecodeError(f"{raw['type']}: attribute is not an object")
        key = _decode_field(attr.get("key"), encoding)
        try:
            key_text = key.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EventDecodeError(f"{raw['type']}: attribute key is not UTF-8") from exc
        attributes.append(EventAttribute(key_text, _decode_field(attr.get("value"), encoding)))

    return Event(type=raw["type"], attributes=tuple(attributes))


def decode_block_results(
    result: dict[str, Any],
    height: int,
    encoding: AttributeEncoding,
    chain_id: str = "",
) -> list[TxResult]:
    """Build TxResults from a block_results ``result`` object.

    Undecodable events are dropped with a warning; the rest of the tx is kept.
    """
    txs: list[TxResult] = []
    for index, raw_tx in enumerate(result.get("txs_results") or []):
        if not isinstance(raw_tx, dict):
            log.warning("%s: skipping malformed tx %d at height %d", chain_id, index, height)
            continue

        events: list[Event] = []
        for raw_event in raw_tx.get("events") or []:
            try:
                events.append(decode_event(raw_event, encoding))
            except EventDecodeError as exc:
                log.warning(
                    "%s: dropping undecodable event in tx %d at height %d: %s",
                    chain_id, index, height, exc,
                )

        try:
            code = int(raw_tx.get("code") or 0)
        except (TypeError, ValueError):
            code = -1

        txs.append(TxResult(height=height, index=index, events=tuple(events), code=code))
    return txs
