"""Root pytest configuration for all tests.

This conftest applies to all test types (unit, integration) and provides
the shared engine fixtures: a fake clock, a seeded in-memory remote and a
fully wired SyncContext over a temporary cache directory.
"""

import logging

import pytest

from src.config import RemoteConfig, SyncConfig
from src.remote_store import InMemoryTransport
from src.sync_engine import build_context
from tests.fixtures import FakeClock, seed_wiki

# Suppress noisy ERROR logs from atlassian-python-api when pages don't exist.
# The library logs at ERROR level for "page not found", which is expected
# behavior for lookups that precede page creation.
logging.getLogger("atlassian").setLevel(logging.WARNING)


@pytest.fixture
def clock():
    """Deterministic clock starting at 2024-01-15T10:00:00Z."""
    return FakeClock()


@pytest.fixture
def transport(clock):
    """In-memory remote holding the sample wiki (every revision is '1')."""
    transport = InMemoryTransport(clock=clock)
    seed_wiki(transport)
    return transport


@pytest.fixture
def sync_config(tmp_path):
    """Configuration for the memory backend with a temporary cache."""
    return SyncConfig(
        cache_dir=str(tmp_path / "cache"),
        remote=RemoteConfig(backend="memory"),
    )


@pytest.fixture
def context(sync_config, transport, clock):
    """Fully wired engine over the seeded transport; retries never sleep."""
    return build_context(sync_config, transport=transport, clock=clock, sleep=lambda _: None)


@pytest.fixture
def synced_context(context):
    """Engine that has completed one clean cycle against the sample wiki."""
    report = context.orchestrator.run_cycle()
    assert report is not None and report.clean
    return context
