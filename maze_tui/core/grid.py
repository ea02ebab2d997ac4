from enum import IntEnum
from typing import Iterator, Optional, Tuple

import numpy as np

from maze_tui.core.errors import BoundsError, InvalidTransitionError, SequenceError


class CellState(IntEnum):
    WALL = 0
    PASSAGE = 1
    FRONTIER = 2
    VISITED = 3
    PATH = 4
    START = 5
    END = 6


# Identity transitions are always accepted and are not listed here.
TRANSITIONS = {
    CellState.WALL: frozenset({CellState.PASSAGE, CellState.FRONTIER}),
    CellState.PASSAGE: frozenset({
        CellState.WALL, CellState.FRONTIER, CellState.VISITED,
        CellState.PATH, CellState.START, CellState.END,
    }),
    CellState.FRONTIER: frozenset({CellState.PASSAGE, CellState.VISITED, CellState.PATH}),
    CellState.VISITED: frozenset({CellState.PATH}),
    CellState.PATH: frozenset(),
    CellState.START: frozenset(),
    CellState.END: frozenset(),
}


class Frame:
    """
    A materialized grid state plus the sequence number of the last event applied.
    The cell array is a private read-only copy, so later grid mutation never leaks in.
    """
    __slots__ = ('cells', 'sequence')

    def __init__(self, cells: np.ndarray, sequence: int):
        cells = cells.copy()
        cells.flags.writeable = False
        self.cells = cells
        self.sequence = sequence

    def __eq__(self, other) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return self.sequence == other.sequence and np.array_equal(self.cells, other.cells)

    def __repr__(self) -> str:
        return f"Frame(sequence={self.sequence}, shape={self.cells.shape})"


class Grid:
    MAX_SIDE = 255

    # Logical direction helpers (dx, dy), in N, S, E, W order
    NORTH = (0, -1)
    SOUTH = (0, 1)
    EAST = (1, 0)
    WEST = (-1, 0)
    DIRECTIONS = (NORTH, SOUTH, EAST, WEST)

    __slots__ = ('width', 'height', 'rows', 'cols', 'seed', 'cells', 'sequence')

    def __init__(self, width: int, height: int, seed: Optional[int] = None):
        if not (1 <= width <= self.MAX_SIDE and 1 <= height <= self.MAX_SIDE):
            raise ValueError(f"Grid dimensions must be within 1..{self.MAX_SIDE}, got {width}x{height}")
        self.width = width
        self.height = height
        # Walls get their own rows/columns: n cells -> n + 1 walls -> 2n + 1
        self.rows = height * 2 + 1
        self.cols = width * 2 + 1
        self.seed = seed
        self.cells = np.full((self.rows, self.cols), CellState.WALL, dtype=np.uint8)
        self.sequence = 0

    @classmethod
    def from_frame(cls, frame: Frame, width: int, height: int) -> "Grid":
        grid = cls(width, height)
        if frame.cells.shape != grid.cells.shape:
            raise ValueError(f"Frame shape {frame.cells.shape} does not match {width}x{height} grid")
        grid.cells[:, :] = frame.cells
        grid.sequence = frame.sequence
        return grid

    # Coordinates

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    @staticmethod
    def cell_to_grid(x: int, y: int) -> Tuple[int, int]:
        """Logical cell (x, y) -> internal (row, col)."""
        return y * 2 + 1, x * 2 + 1

    @staticmethod
    def gap_between(a: Tuple[int, int], b: Tuple[int, int]) -> Tuple[int, int]:
        """Internal (row, col) of the wall slot separating two adjacent logical cells."""
        return a[1] + b[1] + 1, a[0] + b[0] + 1

    def state(self, row: int, col: int) -> CellState:
        if not self.in_bounds(row, col):
            raise BoundsError(row, col, self.rows, self.cols)
        return CellState(int(self.cells[row, col]))

    def cell_state(self, x: int, y: int) -> CellState:
        return self.state(*self.cell_to_grid(x, y))

    def is_open(self, a: Tuple[int, int], b: Tuple[int, int]) -> bool:
        return self.cells[self.gap_between(a, b)] != CellState.WALL

    def get_neighbors(self, x: int, y: int) -> Iterator[Tuple[int, int]]:
        """
        Yields (nx, ny) for all logical neighbours inside the grid.
        Does NOT check walls (that's for pathfinding).
        """
        for dx, dy in self.DIRECTIONS:
            nx, ny = x + dx, y + dy
            if 0 <= nx < self.width and 0 <= ny < self.height:
                yield nx, ny

    def get_open_neighbors(self, x: int, y: int) -> Iterator[Tuple[int, int]]:
        """Yields (nx, ny) for neighbours that are NOT blocked by a wall."""
        for nx, ny in self.get_neighbors(x, y):
            if self.is_open((x, y), (nx, ny)):
                yield nx, ny

    # Mutation

    def next_sequence(self) -> int:
        return self.sequence + 1

    def apply(self, event) -> None:
        """
        Applies one GridEvent. Rejects coordinates outside the internal grid,
        illegal state changes and out-of-order sequence numbers.
        """
        row, col = event.row, event.col
        if not self.in_bounds(row, col):
            raise BoundsError(row, col, self.rows, self.cols)
        if event.sequence <= self.sequence:
            raise SequenceError(event.sequence, self.sequence)

        old = CellState(int(self.cells[row, col]))
        new = CellState(event.state)
        if old != new and new not in TRANSITIONS[old]:
            raise InvalidTransitionError(row, col, old, new)

        self.cells[row, col] = new
        self.sequence = event.sequence

    def snapshot(self) -> Frame:
        return Frame(self.cells, self.sequence)
