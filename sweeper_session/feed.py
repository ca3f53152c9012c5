"""Turns the engine's game-state query into a stream of state changes."""
import asyncio
import logging
from typing import Any, Optional

from temporalio.client import WorkflowHandle

from sweeper_session.channel import ChangeChannel
from sweeper_session.types import PlayMode, StateChange

logger = logging.getLogger(__name__)

STATE_QUERY = "get_game_state_query"

STATUS_TO_PLAY_MODE = {
    'NOT_STARTED': PlayMode.PENDING,
    'IN_PROGRESS': PlayMode.PLAYING,
    'WON': PlayMode.WON,
    'LOST': PlayMode.LOST,
}


def _field(state: Any, key: str, default: Any = None) -> Any:
    # The query result arrives as a dict over the wire, as dataclasses in-process
    if state is None:
        return default
    value = state.get(key) if isinstance(state, dict) else getattr(state, key, None)
    return default if value is None else value


def _play_mode(status: Any) -> Optional[PlayMode]:
    if status is None:
        return None
    name = status.value if hasattr(status, 'value') else status
    return STATUS_TO_PLAY_MODE.get(str(name).upper())


def to_change(game_state: Any) -> StateChange:
    """Map an engine game state (dict or object) to a StateChange."""
    play_mode = _play_mode(_field(game_state, 'status'))

    to_reveal = None
    board = _field(game_state, 'board')
    if board:
        safe_cells = _field(board, 'width', 0) * _field(board, 'height', 0) - _field(board, 'mine_count', 0)
        to_reveal = max(0, safe_cells - _field(game_state, 'cells_revealed', 0))

    return StateChange(play_mode=play_mode, to_reveal=to_reveal)


class WorkflowChangeFeed:
    """Polls a game workflow and publishes only the fields that changed.

    reset() makes the next poll publish the full state again. Call it whenever
    the session's mirror was reset locally, otherwise an engine state equal to
    the last one published before the reset would never be sent.
    """

    def __init__(
        self,
        handle: WorkflowHandle,
        channel: ChangeChannel,
        interval: float = 0.25,
        max_retries: int = 5,
    ):
        self.handle = handle
        self.channel = channel
        self.interval = interval
        self.max_retries = max_retries
        self._last = StateChange()
        self._resync = False
        self._stopped = asyncio.Event()

    def reset(self) -> None:
        # Only sets a flag, so it is safe to call from any thread
        self._resync = True

    async def _query_state(self) -> Any:
        # The workflow may still be initialising right after it was started
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self.handle.query(STATE_QUERY)
            except Exception as error:
                if attempt == self.max_retries:
                    raise
                logger.info(f"Game {self.handle.id} not ready ({error}), retrying in {attempt * 100}ms...")
                await asyncio.sleep(attempt * 0.1)

    async def poll_once(self) -> StateChange:
        latest = to_change(await self._query_state())

        if self._resync:
            self._resync = False
            self._last = StateChange()

        delta = StateChange(
            play_mode=latest.play_mode if latest.play_mode != self._last.play_mode else None,
            to_reveal=latest.to_reveal if latest.to_reveal != self._last.to_reveal else None
        )
        self._last = StateChange(
            play_mode=latest.play_mode or self._last.play_mode,
            to_reveal=latest.to_reveal if latest.to_reveal is not None else self._last.to_reveal
        )

        if not delta.is_empty:
            logger.debug(f"Game {self.handle.id} changed: {delta}")
            self.channel.publish(delta)
        return delta

    async def run(self) -> None:
        logger.info(f"Watching game {self.handle.id} every {self.interval}s")
        while not self._stopped.is_set():
            try:
                await self.poll_once()
            except Exception as error:
                logger.error(f"Error polling game {self.handle.id}: {error}")

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.info(f"Stopped watching game {self.handle.id}")

    def stop(self) -> None:
        self._stopped.set()
