"""Type definitions for the Minesweeper session controller."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class PlayMode(str, Enum):
    """Presentation state of a game."""
    PENDING = 'PENDING'
    PLAYING = 'PLAYING'
    WON = 'WON'
    LOST = 'LOST'

    @property
    def is_over(self) -> bool:
        return self in (PlayMode.WON, PlayMode.LOST)


@dataclass(frozen=True)
class StateChange:
    """Partial update of the authoritative game state.

    A field left as None was not part of the change.
    """
    play_mode: Optional[PlayMode] = None
    to_reveal: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.play_mode is None and self.to_reveal is None


@dataclass(frozen=True)
class SessionState:
    """Locally mirrored subset of the authoritative game state."""
    play_mode: PlayMode
    to_reveal: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def timer_running(self) -> bool:
        return self.play_mode == PlayMode.PLAYING

    def elapsed(self, now: datetime) -> Optional[float]:
        """Seconds played so far, or the final duration once won."""
        if self.start_time is None:
            return None
        if self.timer_running:
            until = now
        elif self.end_time is not None and self.end_time >= self.start_time:
            until = self.end_time
        else:
            return None
        return max(0.0, (until - self.start_time).total_seconds())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'playMode': self.play_mode.value,
            'toReveal': self.to_reveal,
            'startTime': self.start_time.isoformat() if self.start_time else None,
            'endTime': self.end_time.isoformat() if self.end_time else None,
        }


def _require_int(data: Dict[str, Any], key: str, default: Optional[int] = None) -> int:
    value = data.get(key, default)
    # bool is an int subclass but never a valid coordinate or count
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"'{key}' must be a non-negative integer")
    return value


def _require_bool(data: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be a boolean")
    return value


@dataclass(frozen=True)
class CellSnapshot:
    """Read-only view of one board cell at the moment it was clicked."""
    x: int
    y: int
    revealed: bool = False
    flagged: bool = False
    touching_mines: int = 0
    touching_flags: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CellSnapshot':
        return cls(
            x=_require_int(data, 'x'),
            y=_require_int(data, 'y'),
            revealed=_require_bool(data, 'revealed'),
            flagged=_require_bool(data, 'flagged'),
            touching_mines=_require_int(data, 'touchingMines', 0),
            touching_flags=_require_int(data, 'touchingFlags', 0)
        )


class CommandKind(str, Enum):
    """Operations a click can turn into."""
    REVEAL = 'reveal'
    FLAG = 'flag'
    UNFLAG = 'unflag'
    REVEAL_SURROUNDING = 'reveal_surrounding'
    NOOP = 'noop'


@dataclass(frozen=True)
class Command:
    """A resolved click, ready to be sent to the engine."""
    kind: CommandKind
    x: int
    y: int


@dataclass
class GameConfig:
    """Configuration for creating a new game."""
    width: int
    height: int
    mine_count: int

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ValueError("Board dimensions must be positive")
        if self.mine_count < 0:
            raise ValueError("Number of mines cannot be negative")
        if self.mine_count >= self.width * self.height:
            raise ValueError("Too many mines for the board size")

    @property
    def to_reveal_total(self) -> int:
        return self.width * self.height - self.mine_count


@dataclass
class MoveRequest:
    """Request to make a move."""
    row: int
    col: int
    action: str  # 'reveal', 'flag', 'unflag', 'chord'
