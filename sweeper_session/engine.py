"""Command side of the remote Minesweeper engine."""
import asyncio
import logging
from concurrent.futures import Future
from typing import Any, Awaitable, Protocol

from temporalio.client import WorkflowHandle

from sweeper_session.types import Command, CommandKind, GameConfig, MoveRequest

logger = logging.getLogger(__name__)

MOVE_SIGNAL = "make_move_signal"
RESTART_SIGNAL = "restart_game_signal"


class RemoteEngineHandle(Protocol):
    """Fire-and-forget commands understood by the game engine."""

    def reveal(self, x: int, y: int) -> None: ...

    def flag(self, x: int, y: int) -> None: ...

    def unflag(self, x: int, y: int) -> None: ...

    def reveal_surrounding(self, x: int, y: int) -> None: ...

    def reset(self) -> None: ...


class WorkflowEngineHandle:
    """Sends commands as signals to a running Minesweeper workflow.

    Signals are scheduled on `loop` (usually running in another thread) and
    the call returns straight away. Outcomes are never inspected: a failed
    signal is logged and the next state change from the engine is the only
    feedback the session gets.
    """

    def __init__(self, handle: WorkflowHandle, config: GameConfig, loop: asyncio.AbstractEventLoop):
        self.handle = handle
        self.config = config
        self.loop = loop

    def reveal(self, x: int, y: int) -> None:
        self._move(x, y, 'reveal')

    def flag(self, x: int, y: int) -> None:
        self._move(x, y, 'flag')

    def unflag(self, x: int, y: int) -> None:
        self._move(x, y, 'unflag')

    def reveal_surrounding(self, x: int, y: int) -> None:
        self._move(x, y, 'chord')

    def reset(self) -> None:
        self._dispatch(RESTART_SIGNAL, self.handle.signal(RESTART_SIGNAL, self.config))

    def _move(self, x: int, y: int, action: str) -> None:
        move_request = MoveRequest(row=y, col=x, action=action)
        self._dispatch(f"{action} ({x}, {y})", self.handle.signal(MOVE_SIGNAL, move_request))

    def _dispatch(self, description: str, coro: Awaitable[Any]) -> None:
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        game_id = self.handle.id

        def log_failure(done: Future) -> None:
            if done.cancelled():
                return
            error = done.exception()
            if error is not None:
                logger.error(f"Failed to send {description} to game {game_id}: {error}")

        future.add_done_callback(log_failure)


def dispatch(engine: RemoteEngineHandle, command: Command) -> None:
    """Send a resolved command to the engine. NOOP sends nothing."""
    if command.kind == CommandKind.REVEAL:
        engine.reveal(command.x, command.y)
    elif command.kind == CommandKind.FLAG:
        engine.flag(command.x, command.y)
    elif command.kind == CommandKind.UNFLAG:
        engine.unflag(command.x, command.y)
    elif command.kind == CommandKind.REVEAL_SURROUNDING:
        engine.reveal_surrounding(command.x, command.y)
