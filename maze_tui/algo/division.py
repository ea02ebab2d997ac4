import random
from typing import Iterator, List, Tuple

from maze_tui.algo.base import Generator
from maze_tui.core.events import GridEvent
from maze_tui.core.grid import CellState


class RecursiveDivision(Generator):
    """
    Starts from one open chamber and keeps splitting chambers with a wall
    that has a single doorway, until every chamber is one cell wide or tall.
    """
    label = "Recursive Division"

    def run(self) -> Iterator[GridEvent]:
        rng = random.Random(self.seed)

        # Open everything inside the border
        for row in range(1, self.grid.rows - 1):
            for col in range(1, self.grid.cols - 1):
                yield from self.mark(row, col, CellState.PASSAGE)

        # Chambers as (x, y, width, height) in logical cells. Explicit stack
        # keeps the depth-first order of the recursive formulation.
        chambers: List[Tuple[int, int, int, int]] = [(0, 0, self.grid.width, self.grid.height)]

        while chambers:
            x, y, w, h = chambers.pop()
            if w < 2 or h < 2:
                continue

            if w < h:
                horizontal = True
            elif w > h:
                horizontal = False
            else:
                horizontal = rng.random() < 0.5

            if horizontal:
                wall_y = y + rng.randrange(h - 1)
                hole_x = x + rng.randrange(w)
                row = wall_y * 2 + 2
                for col in range(x * 2 + 1, (x + w - 1) * 2 + 2):
                    if col != hole_x * 2 + 1:
                        yield from self.mark(row, col, CellState.WALL)
                upper = wall_y - y + 1
                chambers.append((x, wall_y + 1, w, h - upper))
                chambers.append((x, y, w, upper))
            else:
                wall_x = x + rng.randrange(w - 1)
                hole_y = y + rng.randrange(h)
                col = wall_x * 2 + 2
                for row in range(y * 2 + 1, (y + h - 1) * 2 + 2):
                    if row != hole_y * 2 + 1:
                        yield from self.mark(row, col, CellState.WALL)
                left = wall_x - x + 1
                chambers.append((wall_x + 1, y, w - left, h))
                chambers.append((x, y, left, h))
