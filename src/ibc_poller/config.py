"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from ibc_poller.errors import ConfigError
from ibc_poller.models.config import (
    AttributeEncoding,
    BackoffConfig,
    ChainConfig,
    HarnessConfig,
    PollerConfig,
)


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "IBC_POLLER_",
) -> HarnessConfig:
    """Load harness configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (IBC_POLLER_TIMEOUT, etc.)
        2. TOML config file
        3. Defaults from HarnessConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                try:
                    raw = tomllib.load(f)
                except tomllib.TOMLDecodeError as exc:
                    raise ConfigError(f"{p}: {exc}") from exc

    cfg = HarnessConfig()

    # ── Harness section ────────────────────────────────────
    harness = raw.get("harness", {})
    if v := harness.get("log_level"):
        cfg.log_level = str(v)
    if (v := harness.get("timeout")) is not None:
        cfg.timeout = _positive_float("harness.timeout", v)

    # ── Poller section ─────────────────────────────────────
    poller = raw.get("poller", {})
    backoff = BackoffConfig()
    if (v := poller.get("block_interval")) is not None:
        backoff.block_interval = _positive_float("poller.block_interval", v)
    if (v := poller.get("multiplier")) is not None:
        backoff.multiplier = _positive_float("poller.multiplier", v)
        if backoff.multiplier < 1:
            raise ConfigError("poller.multiplier must be >= 1")
    if (v := poller.get("max_factor")) is not None:
        backoff.max_factor = _positive_float("poller.max_factor", v)
        if backoff.max_factor < 1:
            raise ConfigError("poller.max_factor must be >= 1")
    cfg.poller = PollerConfig(backoff=backoff)
    if (v := poller.get("max_chain_errors")) is not None:
        cfg.poller.max_chain_errors = _positive_int("poller.max_chain_errors", v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Chains ─────────────────────────────────────────────
    for name, chain_raw in raw.get("chains", {}).items():
        cfg.chains[name] = _chain_from_raw(name, chain_raw)

    # ── Environment variable overrides (highest priority) ──
    if level := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = level
    if timeout := os.environ.get(f"{env_prefix}TIMEOUT"):
        cfg.timeout = _positive_float(f"{env_prefix}TIMEOUT", timeout)
    if interval := os.environ.get(f"{env_prefix}BLOCK_INTERVAL"):
        cfg.poller.backoff.block_interval = _positive_float(f"{env_prefix}BLOCK_INTERVAL", interval)
    if db_path := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db_path

    rpc_url = os.environ.get(f"{env_prefix}RPC_URL")
    chain_id = os.environ.get(f"{env_prefix}CHAIN_ID")
    if rpc_url or chain_id:
        name = os.environ.get(f"{env_prefix}CHAIN", "default")
        chain = cfg.chains.setdefault(name, ChainConfig(name=name))
        if rpc_url:
            chain.rpc_url = rpc_url
        if chain_id:
            chain.chain_id = chain_id

    # Expand ~ in paths
    if cfg.db_path and cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _chain_from_raw(name: str, raw: dict) -> ChainConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"chains.{name} must be a table")
    chain = ChainConfig(name=name)
    if v := raw.get("chain_id"):
        chain.chain_id = str(v)
    if v := raw.get("rpc_url"):
        chain.rpc_url = str(v)
    if (v := raw.get("request_timeout")) is not None:
        chain.request_timeout = _positive_float(f"chains.{name}.request_timeout", v)
    if v := raw.get("attribute_encoding"):
        try:
            chain.attribute_encoding = AttributeEncoding(v)
        except ValueError:
            raise ConfigError(
                f"chains.{name}.attribute_encoding must be one of "
                f"{[e.value for e in AttributeEncoding]}, got {v!r}"
            ) from None
    return chain


def _positive_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise ConfigError(f"{name} must be at least 1, got {value!r}")
    return value


def _positive_float(name: str, value: object) -> float:
    try:
        f = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if f <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return f
