"""CLI commands via click's CliRunner."""

from __future__ import annotations

import os

import pytest
from click.testing import CliRunner

from ibc_poller.cli import cli

# Nothing listens on port 1, so connections are refused immediately
UNREACHABLE = """
[poller]
block_interval = 0.01
max_chain_errors = 2

[chains.gaia]
chain_id = "gaia-1"
rpc_url = "http://127.0.0.1:1"
request_timeout = 1
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("IBC_POLLER_"):
            monkeypatch.delenv(key)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "poller.toml"
    path.write_text(UNREACHABLE)
    return str(path)


@pytest.fixture
def runner():
    return CliRunner()


def test_status(runner, config_file):
    result = runner.invoke(cli, ["-c", config_file, "status"])
    assert result.exit_code == 0
    assert "Block interval: 0.01s" in result.output
    assert "Chain gaia:" in result.output
    assert "http://127.0.0.1:1" in result.output


def test_unknown_chain(runner, config_file):
    result = runner.invoke(cli, ["-c", config_file, "height", "osmosis"])
    assert result.exit_code == 1
    assert "Unknown chain 'osmosis'" in result.output


def test_bad_config(runner, tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text("[poller]\nmultiplier = 0\n")
    result = runner.invoke(cli, ["-c", str(path), "status"])
    assert result.exit_code == 1
    assert "poller.multiplier" in result.output


def test_height_unreachable(runner, config_file):
    result = runner.invoke(cli, ["-c", config_file, "height", "gaia"])
    assert result.exit_code == 3


def test_poll_ahead_unreachable(runner, config_file):
    result = runner.invoke(
        cli,
        ["-c", config_file, "poll", "ack", "gaia", "--channel", "channel-0", "--sequence", "1"],
    )
    assert result.exit_code == 3


def test_poll_range_unreachable(runner, config_file):
    result = runner.invoke(
        cli,
        ["-c", config_file, "poll", "query-response", "gaia",
         "--chain-id", "stride-1", "--start", "5", "--lookahead", "3"],
    )
    assert result.exit_code == 3
    assert "Chain unavailable" in result.output


def test_poll_requires_options(runner, config_file):
    result = runner.invoke(cli, ["-c", config_file, "poll", "ack", "gaia"])
    assert result.exit_code == 2
