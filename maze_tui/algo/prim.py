import random
from typing import Iterator, List

from maze_tui.algo.base import Cell, Generator
from maze_tui.core.events import GridEvent
from maze_tui.core.grid import CellState, Grid


class PrimsAlgorithm(Generator):
    label = "Randomized Prim's"

    def run(self) -> Iterator[GridEvent]:
        rng = random.Random(self.seed)

        yield from self.mark_cell(*self.start, CellState.PASSAGE)

        # A cell is in the frontier list exactly when its state is FRONTIER,
        # so the grid itself doubles as the membership set.
        frontier: List[Cell] = []
        for cell in self.grid.get_neighbors(*self.start):
            frontier.append(cell)
            yield from self.mark_cell(*cell, CellState.FRONTIER)

        while frontier:
            # Pick random cell from frontier, swap remove for O(1)
            idx = rng.randrange(len(frontier))
            cx, cy = frontier[idx]
            frontier[idx] = frontier[-1]
            frontier.pop()

            # Carve to one random carved neighbour
            carved = [
                cell for cell in self.grid.get_neighbors(cx, cy)
                if self.grid.cell_state(*cell) == CellState.PASSAGE
            ]
            target = rng.choice(carved)
            yield from self.mark(*Grid.gap_between((cx, cy), target), CellState.PASSAGE)
            yield from self.mark_cell(cx, cy, CellState.PASSAGE)

            for cell in self.grid.get_neighbors(cx, cy):
                if self.grid.cell_state(*cell) == CellState.WALL:
                    frontier.append(cell)
                    yield from self.mark_cell(*cell, CellState.FRONTIER)
