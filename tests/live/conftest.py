"""Live fixtures: a real CometBFT node given by IBC_POLLER_LIVE_RPC."""

from __future__ import annotations

import os

import pytest

from ibc_poller.cometbft.source import CometBFTBlockSource


@pytest.fixture(scope="session")
def live_rpc_url():
    """RPC URL of a running node. Skip live tests if unset."""
    url = os.environ.get("IBC_POLLER_LIVE_RPC")
    if not url:
        pytest.skip("IBC_POLLER_LIVE_RPC not set")
    return url.rstrip("/")


@pytest.fixture
async def live_source(live_rpc_url):
    async with CometBFTBlockSource(live_rpc_url, request_timeout=10) as source:
        yield source
