"""CLI entry point for ibc-poller."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from ibc_poller.cometbft.source import CometBFTBlockSource
from ibc_poller.config import load_config
from ibc_poller.errors import ChainUnavailable, ConfigError
from ibc_poller.harness import PollHarness
from ibc_poller.interfaces.matcher import Matcher
from ibc_poller.matching.matchers import (
    AckMatcher,
    ChannelOpenConfirmMatcher,
    SubmitQueryResponseMatcher,
)
from ibc_poller.models.config import ChainConfig, HarnessConfig
from ibc_poller.models.events import Packet
from ibc_poller.models.results import PollOutcome, PollResult
from ibc_poller.storage.sources import RecordingBlockSource
from ibc_poller.storage.sqlite import SQLiteBlockStore

EXIT_CODES = {
    PollOutcome.MATCHED: 0,
    PollOutcome.TIMEOUT: 1,
    PollOutcome.CANCELLED: 2,
    PollOutcome.CHAIN_UNAVAILABLE: 3,
}


def _load(ctx: click.Context) -> HarnessConfig:
    try:
        cfg = load_config(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    # -v wins over the configured level
    if not ctx.obj["verbose"]:
        level = logging.getLevelName(cfg.log_level.upper())
        if isinstance(level, int):
            logging.getLogger().setLevel(level)
    return cfg


def _require_chain(cfg: HarnessConfig, name: str) -> ChainConfig:
    """Exit with error if ``name`` is not a configured chain."""
    chain = cfg.chains.get(name)
    if chain is None:
        click.echo(f"Error: Unknown chain {name!r}.", err=True)
        known = ", ".join(sorted(cfg.chains)) or "(none)"
        click.echo(f"Configured chains: {known}", err=True)
        sys.exit(1)
    return chain


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """ibc-poller - wait for IBC events on chains under test."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration."""
    cfg = _load(ctx)
    backoff = cfg.poller.backoff
    click.echo(f"Timeout:        {cfg.timeout:g}s")
    click.echo(f"Block interval: {backoff.block_interval:g}s")
    click.echo(f"Backoff:        x{backoff.multiplier:g}, cap {backoff.cap:g}s")
    click.echo(f"Chain errors:   {cfg.poller.max_chain_errors} max consecutive")
    click.echo(f"DB path:        {cfg.db_path or '(recording disabled)'}")
    if not cfg.chains:
        click.echo("Chains:         (none)")
    for name, chain in sorted(cfg.chains.items()):
        click.echo(f"Chain {name}:")
        click.echo(f"  Chain ID:   {chain.chain_id or '(from node)'}")
        click.echo(f"  RPC URL:    {chain.rpc_url}")
        click.echo(f"  Encoding:   {chain.attribute_encoding.value}")


@cli.command()
@click.argument("chain_name")
@click.pass_context
def height(ctx: click.Context, chain_name: str) -> None:
    """Print the current height of CHAIN_NAME."""
    cfg = _load(ctx)
    chain = _require_chain(cfg, chain_name)

    async def _height() -> int:
        async with CometBFTBlockSource.from_config(chain) as source:
            return await source.current_height()

    try:
        click.echo(asyncio.run(_height()))
    except ChainUnavailable as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_CODES[PollOutcome.CHAIN_UNAVAILABLE])


# ── Polling ────────────────────────────────────────────


def _run_poll(
    cfg: HarnessConfig, chain: ChainConfig, matcher: Matcher, start: int | None, lookahead: int,
) -> PollResult:
    async def _poll() -> PollResult:
        store = None
        if cfg.db_path:
            store = SQLiteBlockStore(cfg.db_path)
            await store.initialize()
        cometbft = CometBFTBlockSource.from_config(chain)
        source = RecordingBlockSource(cometbft, store) if store else cometbft
        harness = PollHarness.from_config(cfg, store)
        try:
            if start is None:
                return await harness.poll_ahead(source, lookahead, matcher)
            return await harness.poll(source, start, start + lookahead, matcher)
        finally:
            await cometbft.aclose()
            if store:
                await store.close()

    try:
        return asyncio.run(_poll())
    except ChainUnavailable as exc:
        # Tip lookup for the default start height failed before polling began
        click.echo(f"Chain unavailable: {exc}", err=True)
        sys.exit(EXIT_CODES[PollOutcome.CHAIN_UNAVAILABLE])


def _report(result: PollResult) -> None:
    if result.matched and result.tx is not None and result.event is not None:
        click.echo(f"Matched {result.event.type} at height {result.tx.height}, tx {result.tx.index}")
        for key, value in result.event.as_dict().items():
            click.echo(f"  {key}: {value}")
    elif result.outcome is PollOutcome.TIMEOUT:
        click.echo(f"No matching event in heights {result.start}..{result.end}", err=True)
    elif result.outcome is PollOutcome.CANCELLED:
        click.echo(
            f"Deadline reached after height {result.last_height} "
            f"({result.heights_scanned} scanned)",
            err=True,
        )
    else:
        click.echo(f"Chain unavailable: {result.error}", err=True)
    sys.exit(EXIT_CODES[result.outcome])


def _poll_options(f):
    f = click.option("--lookahead", type=int, default=10, show_default=True,
                     help="Number of blocks to scan past the start height")(f)
    f = click.option("--start", type=int, default=None,
                     help="Start height (default: current height)")(f)
    return f


@cli.group()
def poll() -> None:
    """Wait for an event within a block range."""


@poll.command("ack")
@click.argument("chain_name")
@click.option("--port", "port", default="transfer", show_default=True, help="Packet source port")
@click.option("--channel", "channel", required=True, help="Packet source channel (e.g. channel-0)")
@click.option("--sequence", type=int, required=True, help="Packet sequence number")
@_poll_options
@click.pass_context
def poll_ack(
    ctx: click.Context, chain_name: str, port: str, channel: str, sequence: int,
    start: int | None, lookahead: int,
) -> None:
    """Wait for a packet acknowledgement on CHAIN_NAME (the packet's source chain)."""
    cfg = _load(ctx)
    chain = _require_chain(cfg, chain_name)
    matcher = AckMatcher(Packet(sequence=sequence, source_port=port, source_channel=channel))
    _report(_run_poll(cfg, chain, matcher, start, lookahead))


@poll.command("channel-open-confirm")
@click.argument("chain_name")
@click.option("--counterparty-chain-id", required=True, help="Chain ID of the ICA controller")
@_poll_options
@click.pass_context
def poll_channel_open_confirm(
    ctx: click.Context, chain_name: str, counterparty_chain_id: str,
    start: int | None, lookahead: int,
) -> None:
    """Wait for an ICA channel handshake to complete on CHAIN_NAME."""
    cfg = _load(ctx)
    chain = _require_chain(cfg, chain_name)
    matcher = ChannelOpenConfirmMatcher(counterparty_chain_id)
    _report(_run_poll(cfg, chain, matcher, start, lookahead))


@poll.command("query-response")
@click.argument("chain_name")
@click.option("--chain-id", "query_chain_id", required=True, help="Chain ID the query targets")
@_poll_options
@click.pass_context
def poll_query_response(
    ctx: click.Context, chain_name: str, query_chain_id: str,
    start: int | None, lookahead: int,
) -> None:
    """Wait for an interchain-query response on CHAIN_NAME."""
    cfg = _load(ctx)
    chain = _require_chain(cfg, chain_name)
    matcher = SubmitQueryResponseMatcher(query_chain_id)
    _report(_run_poll(cfg, chain, matcher, start, lookahead))


if __name__ == "__main__":
    cli()
