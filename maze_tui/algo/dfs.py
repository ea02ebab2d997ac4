import random
from typing import Iterator, List

from maze_tui.algo.base import Cell, Generator
from maze_tui.core.events import GridEvent
from maze_tui.core.grid import CellState, Grid


class RecursiveBacktracker(Generator):
    label = "Recursive Backtracking"

    def run(self) -> Iterator[GridEvent]:
        rng = random.Random(self.seed)

        # Cells on the stack are shown as FRONTIER, released to PASSAGE on backtrack
        yield from self.mark_cell(*self.start, CellState.FRONTIER)
        stack: List[Cell] = [self.start]

        while stack:
            cx, cy = stack[-1]

            # Unvisited neighbours are still solid wall
            neighbors = [
                (nx, ny) for nx, ny in self.grid.get_neighbors(cx, cy)
                if self.grid.cell_state(nx, ny) == CellState.WALL
            ]

            if neighbors:
                nxt = rng.choice(neighbors)
                yield from self.mark(*Grid.gap_between((cx, cy), nxt), CellState.PASSAGE)
                yield from self.mark_cell(*nxt, CellState.FRONTIER)
                stack.append(nxt)
            else:
                stack.pop()
                yield from self.mark_cell(cx, cy, CellState.PASSAGE)
