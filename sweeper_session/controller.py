"""Game session controller: lifecycle, input handling and state snapshots."""
import logging
import threading
from typing import Any, Callable, Dict, Optional

from sweeper_session.channel import ChangeListener
from sweeper_session.engine import RemoteEngineHandle, dispatch
from sweeper_session.resolver import resolve_interaction
from sweeper_session.session import Clock, SessionStateMachine, UpdateCallback, utc_now
from sweeper_session.types import CellSnapshot, Command, SessionState, StateChange

logger = logging.getLogger(__name__)

_process_initialized = False
_process_lock = threading.Lock()


def init_process(level: int = logging.INFO) -> bool:
    """Process-wide setup, run once before any session is created.

    Returns True on the call that did the setup and False afterwards.
    """
    global _process_initialized
    with _process_lock:
        if _process_initialized:
            return False
        logging.basicConfig(level=level)
        _process_initialized = True
        return True


class DangerModeFlag:
    """Reveal/flag preference shared by every session of the process.

    True means a click reveals, False means it flags.
    """

    def __init__(self, value: bool = False):
        self._value = value

    @property
    def value(self) -> bool:
        return self._value

    def set(self, value: bool) -> None:
        logger.info(f"Danger mode {'on' if value else 'off'}")
        self._value = value


class GameSession:
    """Controller for a single game shown to the player."""

    def __init__(
        self,
        engine: RemoteEngineHandle,
        subscribe: Callable[[ChangeListener], None],
        unsubscribe: Callable[[ChangeListener], None],
        danger_mode: DangerModeFlag,
        to_reveal_total: int,
        width: int = 0,
        height: int = 0,
        clock: Optional[Clock] = None,
        on_update: Optional[UpdateCallback] = None,
    ):
        self.engine = engine
        self.danger_mode = danger_mode
        self.width = width
        self.height = height
        self._subscribe = subscribe
        self._unsubscribe = unsubscribe
        self._clock = clock or utc_now
        self._on_update = on_update
        # Bumped on every emitted state so the shell can skip redundant renders
        self.version = 0
        self.machine = SessionStateMachine(to_reveal_total, clock=self._clock, on_update=self._on_state_update)
        self.active = False
        # Bound once so subscribe and unsubscribe see the same object.
        self.on_game_change: ChangeListener = self._on_game_change

    def activate(self) -> None:
        if self.active:
            return
        self._subscribe(self.on_game_change)
        self.active = True
        if not self.danger_mode.value:
            self.danger_mode.set(True)

    def deactivate(self) -> None:
        if not self.active:
            return
        self._unsubscribe(self.on_game_change)
        self.active = False

    def _on_game_change(self, change: StateChange) -> None:
        self.machine.apply(change)

    def _on_state_update(self, state: SessionState) -> None:
        self.version += 1
        if self._on_update:
            self._on_update(state)

    def on_cell_click(self, cell: CellSnapshot, alt: bool = False) -> Command:
        command = resolve_interaction(cell, self.danger_mode.value, alt)
        logger.debug(f"Click at ({cell.x}, {cell.y}) resolved to {command.kind.value}")
        dispatch(self.engine, command)
        return command

    def on_danger_mode_toggle(self, flag_checked: bool) -> None:
        """Handle the Reveal/Flag switch; checked means flag mode."""
        self.danger_mode.set(not flag_checked)

    def on_restart(self) -> None:
        self.engine.reset()
        self.machine.reset()

    def snapshot(self) -> Dict[str, Any]:
        state = self.machine.state
        snapshot = state.to_dict()
        snapshot.update({
            'toRevealTotal': self.machine.to_reveal_total,
            'timerRunning': state.timer_running,
            'elapsed': state.elapsed(self._clock()),
            'showEnd': state.play_mode.is_over,
            'dangerMode': self.danger_mode.value,
            'width': self.width,
            'height': self.height,
            'version': self.version,
        })
        return snapshot
