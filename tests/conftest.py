"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

import pytest

from sweeper_session.channel import ChangeChannel
from sweeper_session.controller import DangerModeFlag, GameSession
from sweeper_session.server import SessionEntry, create_app
from sweeper_session.session import SessionStateMachine
from sweeper_session.types import GameConfig


# ============================================================================
# Fakes
# ============================================================================

class FakeClock:
    """Clock that moves forward one second every time it is read."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.reads = 0

    def __call__(self) -> datetime:
        self.reads += 1
        self.now += timedelta(seconds=1)
        return self.now


class FakeEngine:
    """Records every command it is sent."""

    def __init__(self) -> None:
        self.calls: List[Tuple] = []

    def reveal(self, x: int, y: int) -> None:
        self.calls.append(('reveal', x, y))

    def flag(self, x: int, y: int) -> None:
        self.calls.append(('flag', x, y))

    def unflag(self, x: int, y: int) -> None:
        self.calls.append(('unflag', x, y))

    def reveal_surrounding(self, x: int, y: int) -> None:
        self.calls.append(('reveal_surrounding', x, y))

    def reset(self) -> None:
        self.calls.append(('reset',))


class FakeWorkflowHandle:
    """Stand-in for a Temporal workflow handle."""

    def __init__(self, game_state=None, id: str = 'game-1') -> None:
        self.id = id
        self.game_state = game_state
        self.signals: List[Tuple] = []
        self.queries: List[str] = []
        self.fail_signals = False
        self.query_failures = 0

    async def signal(self, name, arg=None):
        if self.fail_signals:
            raise RuntimeError('workflow not found')
        self.signals.append((name, arg))

    async def query(self, name):
        self.queries.append(name)
        if self.query_failures:
            self.query_failures -= 1
            raise RuntimeError('query not ready')
        return self.game_state


class FakeRuntime:
    """Opens sessions against FakeEngine instead of Temporal."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.opened: List[SessionEntry] = []
        self.closed: List[SessionEntry] = []

    def open_session(self, config: GameConfig, danger_mode: DangerModeFlag) -> SessionEntry:
        channel = ChangeChannel()
        session = GameSession(
            FakeEngine(),
            channel.subscribe,
            channel.unsubscribe,
            danger_mode,
            config.to_reveal_total,
            width=config.width,
            height=config.height,
            clock=self.clock
        )
        session.activate()
        entry = SessionEntry(f'game-{len(self.opened) + 1}', session, channel)
        self.opened.append(entry)
        return entry

    def close_session(self, entry: SessionEntry) -> None:
        entry.session.deactivate()
        self.closed.append(entry)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def channel() -> ChangeChannel:
    """Channel delivering synchronously."""
    return ChangeChannel()


@pytest.fixture
def machine(clock: FakeClock) -> SessionStateMachine:
    """State machine for a 9x9 board with 10 mines."""
    return SessionStateMachine(71, clock=clock)


@pytest.fixture
def danger_mode() -> DangerModeFlag:
    return DangerModeFlag(False)


@pytest.fixture
def session(engine, channel, danger_mode, clock) -> GameSession:
    return GameSession(
        engine,
        channel.subscribe,
        channel.unsubscribe,
        danger_mode,
        71,
        width=9,
        height=9,
        clock=clock
    )


@pytest.fixture
def runtime(clock: FakeClock) -> FakeRuntime:
    return FakeRuntime(clock)


@pytest.fixture
def client(runtime: FakeRuntime):
    app = create_app(runtime, DangerModeFlag(False))
    app.config['TESTING'] = True
    return app.test_client()


@pytest.fixture
def make_handle():
    """Factory for fake workflow handles."""
    return FakeWorkflowHandle
