"""
Global pytest fixtures for the Linkpulse test suite.

Responsibilities:
    - Provide a controllable clock so time windows, debounce and eviction
      order are deterministic
    - Provide isolated Storage, Analytics and LinkManager fixtures
    - Provide a fresh FastAPI TestClient via the app factory, with backups
      pointed at a per-test temporary directory

Why an app factory?
    Using `create_app(config)` ensures each test gets fresh in-memory state,
    eliminating cross-test flakiness.
"""

import pytest
from fastapi.testclient import TestClient

from main import create_app
from linkpulse.analytics.analytics import Analytics
from linkpulse.config import ShortenerConfig
from linkpulse.manager.link_manager import LinkManager
from linkpulse.storage.storage import Storage

# 2025-10-09T08:53:20Z
T0 = 1_760_000_000.0


class FakeClock:
    """Callable returning seconds since the epoch; advanced explicitly by tests."""

    def __init__(self, start: float = T0):
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config(tmp_path) -> ShortenerConfig:
    """Default knobs, with snapshots written under the test's tmp dir."""
    return ShortenerConfig(backup_dir=str(tmp_path / "backups"))


@pytest.fixture
def storage() -> Storage:
    return Storage()


@pytest.fixture
def analytics(config) -> Analytics:
    return Analytics(
        history_limit=config.history_limit,
        ip_flag_threshold=config.ip_flag_threshold,
        agent_flag_threshold=config.agent_flag_threshold,
    )


@pytest.fixture
def manager(storage, analytics, config, clock) -> LinkManager:
    """LinkManager wired to the storage, analytics and clock fixtures."""
    return LinkManager(storage=storage, analytics=analytics, config=config, clock=clock)


@pytest.fixture
def client(config) -> TestClient:
    """
    Fresh TestClient with a new app instance.

    Notes:
        - Not used as a context manager, so the lifespan (boot restore and
          background timers) does not run; tests that need it enter
          `with TestClient(...)` themselves.
    """
    return TestClient(create_app(config))
