from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from maze_tui.core.events import ChannelItem, GridEvent, Unreachable
from maze_tui.core.grid import CellState, Grid

Cell = Tuple[int, int]


class Algorithm(ABC):
    """
    Common contract for generators and solvers: `run()` lazily yields the
    grid events it applies to `self.grid`, and `events()` wraps it with a
    cancellation check between every emitted event.
    """
    label = ""

    def __init__(self, grid: Grid, seed: int = None, should_stop: Optional[Callable[[], bool]] = None):
        self.grid = grid
        self.seed = grid.seed if seed is None else seed
        self.should_stop = should_stop or (lambda: False)
        self.cancelled = False

    @abstractmethod
    def run(self) -> Iterator[ChannelItem]:
        pass

    def events(self) -> Iterator[ChannelItem]:
        for item in self.run():
            if self.should_stop():
                self.cancelled = True
                return
            yield item

    def run_all(self) -> List[ChannelItem]:
        """Helper to run the algorithm to completion."""
        return list(self.events())

    def mark(self, row: int, col: int, state: CellState) -> Iterator[GridEvent]:
        """Applies and yields one event, or nothing if the cell already has `state`."""
        if self.grid.cells[row, col] == state:
            return
        event = GridEvent(row, col, state, self.grid.next_sequence())
        self.grid.apply(event)
        yield event

    def mark_cell(self, x: int, y: int, state: CellState) -> Iterator[GridEvent]:
        row, col = Grid.cell_to_grid(x, y)
        return self.mark(row, col, state)


class Generator(Algorithm):
    start: Cell = (0, 0)


class Solver(Algorithm):
    def __init__(self, grid: Grid, start: Cell = None, end: Cell = None, seed: int = None,
                 should_stop: Optional[Callable[[], bool]] = None):
        super().__init__(grid, seed=seed, should_stop=should_stop)
        self.start = start if start is not None else (0, 0)
        self.end = end if end is not None else (grid.width - 1, grid.height - 1)
        self.path: List[Cell] = []
        self.visited_count = 0
        self.reached: Optional[bool] = None

    def mark_endpoints(self) -> Iterator[GridEvent]:
        yield from self.mark_cell(*self.start, CellState.START)
        if self.end != self.start:
            yield from self.mark_cell(*self.end, CellState.END)

    def discover(self, parent: Cell, child: Cell) -> Iterator[GridEvent]:
        """Shows a newly queued cell and the opening that leads to it."""
        gap = Grid.gap_between(parent, child)
        if self.grid.cells[gap] == CellState.PASSAGE:
            yield from self.mark(*gap, CellState.VISITED)
        if self.grid.cell_state(*child) == CellState.PASSAGE:
            yield from self.mark_cell(*child, CellState.FRONTIER)

    def expand(self, cell: Cell) -> Iterator[GridEvent]:
        self.visited_count += 1
        if self.grid.cell_state(*cell) in (CellState.FRONTIER, CellState.PASSAGE):
            yield from self.mark_cell(*cell, CellState.VISITED)

    def finish(self, parents: Dict[Cell, Optional[Cell]]) -> Iterator[ChannelItem]:
        """
        Emits the route as an ordered run of PATH events (start to end,
        endpoints excluded), or an Unreachable marker when the end was never reached.
        """
        if self.end not in parents:
            self.reached = False
            yield Unreachable(self.start, self.end)
            return

        route = [self.end]
        while parents[route[-1]] is not None:
            route.append(parents[route[-1]])
        route.reverse()
        self.path = route

        for prev, cell in zip(route, route[1:]):
            yield from self.mark(*Grid.gap_between(prev, cell), CellState.PATH)
            if cell != self.end:
                yield from self.mark_cell(*cell, CellState.PATH)
        self.reached = True
