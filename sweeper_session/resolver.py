"""Turns a click on a cell into a single engine command."""
from sweeper_session.types import CellSnapshot, Command, CommandKind


def effective_danger_mode(danger_mode: bool, alt: bool) -> bool:
    """The modifier key inverts the mode for one click only."""
    return danger_mode != alt


def resolve_interaction(cell: CellSnapshot, danger_mode: bool, alt: bool) -> Command:
    """Decide what a click on `cell` should do.

    Hidden cells are flagged or unflagged in flag mode and revealed in danger
    mode. A revealed cell whose neighbouring flags cover its mine count chords
    (reveals its neighbours); any other revealed cell ignores the click.
    """
    if not cell.revealed:
        if not effective_danger_mode(danger_mode, alt):
            kind = CommandKind.UNFLAG if cell.flagged else CommandKind.FLAG
        else:
            kind = CommandKind.REVEAL
    elif cell.touching_flags >= cell.touching_mines:
        kind = CommandKind.REVEAL_SURROUNDING
    else:
        kind = CommandKind.NOOP

    return Command(kind=kind, x=cell.x, y=cell.y)
