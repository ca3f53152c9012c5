"""Local mirror of the authoritative game state."""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from sweeper_session.types import PlayMode, SessionState, StateChange

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
UpdateCallback = Callable[[SessionState], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStateMachine:
    """Merges state changes pushed by the engine into a SessionState.

    Merging is edge-triggered: timestamps are only taken when the play mode
    actually changes, and a change that leaves the observable state as it was
    emits nothing. The state object is immutable and replaced on each update,
    so readers on other threads always see a consistent snapshot.
    """

    def __init__(
        self,
        to_reveal_total: int,
        clock: Optional[Clock] = None,
        on_update: Optional[UpdateCallback] = None,
    ):
        if to_reveal_total < 0:
            raise ValueError("to_reveal_total cannot be negative")
        self.to_reveal_total = to_reveal_total
        self._clock = clock or utc_now
        self._on_update = on_update
        self._state = self._initial_state()

    @property
    def state(self) -> SessionState:
        return self._state

    def _initial_state(self) -> SessionState:
        return SessionState(play_mode=PlayMode.PENDING, to_reveal=self.to_reveal_total)

    def apply(self, change: StateChange) -> SessionState:
        """Merge a change and return the resulting state."""
        current = self._state
        updates = {}

        if change.play_mode is not None and change.play_mode != current.play_mode:
            updates['play_mode'] = change.play_mode

            if change.play_mode == PlayMode.PLAYING:
                updates['start_time'] = self._clock()
            elif change.play_mode == PlayMode.WON:
                updates['end_time'] = self._clock()

        if change.to_reveal is not None and change.to_reveal != current.to_reveal:
            if change.to_reveal < 0:
                logger.warning(f"Ignoring negative toReveal: {change.to_reveal}")
            else:
                updates['to_reveal'] = change.to_reveal

        if not updates:
            return current

        logger.debug(f"Session state update: {updates}")
        self._emit(replace(current, **updates))
        return self._state

    def reset(self, to_reveal_total: Optional[int] = None) -> SessionState:
        """Go back to a pending game with no timing recorded."""
        if to_reveal_total is not None:
            if to_reveal_total < 0:
                raise ValueError("to_reveal_total cannot be negative")
            self.to_reveal_total = to_reveal_total
        self._emit(self._initial_state())
        return self._state

    def _emit(self, state: SessionState) -> None:
        self._state = state
        if self._on_update:
            self._on_update(state)
