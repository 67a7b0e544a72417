"""Shared fixtures: a controllable clock and isolated state per test"""

import pytest

from okcomputer.core.config import Settings
from okcomputer.state.store import StateStore

from mcp_server.dispatch import ToolDispatcher
from mcp_server.handlers.registry import build_registry

START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to"""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def store(settings: Settings, clock: FakeClock) -> StateStore:
    return StateStore(settings, clock=clock)


@pytest.fixture
def dispatcher(store: StateStore) -> ToolDispatcher:
    return ToolDispatcher(store, build_registry())
