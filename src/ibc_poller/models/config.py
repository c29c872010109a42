"""Configuration models for the poller and harness."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class AttributeEncoding(str, Enum):
    """How a node serializes event attribute keys and values."""

    BASE64 = "base64"  # Tendermint 0.34
    PLAIN = "plain"  # CometBFT 0.37+
    AUTO = "auto"  # detect from /status node_info.version


@dataclass
class BackoffConfig:
    """Bounded exponential backoff used while waiting for new blocks."""

    block_interval: float = 1.0  # seconds, estimated time between blocks
    multiplier: float = 2.0
    max_factor: float = 4.0  # cap = max_factor * block_interval

    @property
    def cap(self) -> float:
        return self.block_interval * self.max_factor


@dataclass
class PollerConfig:
    """EventPoller tuning."""

    backoff: BackoffConfig = field(default_factory=BackoffConfig)
    max_chain_errors: int = 5  # consecutive BlockSource failures before giving up


@dataclass
class ChainConfig:
    """Connection details for one chain under test."""

    name: str
    chain_id: str = ""
    rpc_url: str = "http://127.0.0.1:26657"
    request_timeout: float = 10.0  # seconds
    attribute_encoding: AttributeEncoding = AttributeEncoding.AUTO


@dataclass
class HarnessConfig:
    """Complete harness configuration."""

    log_level: str = "info"
    timeout: float = 120.0  # default overall poll deadline, seconds

    poller: PollerConfig = field(default_factory=PollerConfig)

    # Storage
    db_path: str = ""  # empty disables block recording

    chains: dict[str, ChainConfig] = field(default_factory=dict)
