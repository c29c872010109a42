"""Shared fixtures for ibc_poller tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from ibc_poller.harness import PollHarness
from ibc_poller.models.config import BackoffConfig, PollerConfig
from ibc_poller.polling.poller import EventPoller
from ibc_poller.storage.sqlite import SQLiteBlockStore

from tests.mocks import MockBlockSource

STRIDE_CHAIN_ID = "stride-1"
GAIA_CHAIN_ID = "gaia-1"


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add chain info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Controller Chain"] = STRIDE_CHAIN_ID
    meta["Host Chain"] = GAIA_CHAIN_ID


def make_test_poller_config(**overrides) -> PollerConfig:
    """Build a PollerConfig with millisecond backoff suitable for testing."""
    defaults = dict(
        backoff=BackoffConfig(block_interval=0.01, multiplier=2.0, max_factor=4.0),
        max_chain_errors=5,
    )
    defaults.update(overrides)
    return PollerConfig(**defaults)


@pytest.fixture
def poller_config():
    return make_test_poller_config()


@pytest.fixture
def poller(poller_config):
    return EventPoller(poller_config)


@pytest.fixture
def source():
    """Empty chain at height 0 with chain id gaia-1."""
    return MockBlockSource(chain_id=GAIA_CHAIN_ID)


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteBlockStore."""
    s = SQLiteBlockStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def harness(poller):
    return PollHarness(poller=poller, timeout=5.0)
