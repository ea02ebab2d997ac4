from dataclasses import dataclass
from typing import Iterable, Optional, Union

from maze_tui.core.grid import CellState, Frame, Grid


@dataclass(frozen=True)
class GridEvent:
    """One atomic cell mutation. Sequence numbers are strictly increasing within a run."""
    row: int
    col: int
    state: CellState
    sequence: int


@dataclass(frozen=True)
class Unreachable:
    """Solver outcome: no route between start and end."""
    start: tuple
    end: tuple


@dataclass(frozen=True)
class RunComplete:
    generation: int
    last_sequence: int
    reached: Optional[bool] = None


@dataclass(frozen=True)
class RunFailed:
    generation: int
    error: str


ChannelItem = Union[GridEvent, Unreachable, RunComplete, RunFailed]


def replay(width: int, height: int, events: Iterable[GridEvent], base: Optional[Frame] = None) -> Frame:
    """
    Rebuilds a frame by applying events in order, starting from `base`
    or from a blank (all wall) grid.
    """
    if base is None:
        grid = Grid(width, height)
    else:
        grid = Grid.from_frame(base, width, height)
    for event in events:
        grid.apply(event)
    return grid.snapshot()
