import random
from typing import Iterator, List, Tuple

from maze_tui.algo.base import Cell, Generator
from maze_tui.core.events import GridEvent
from maze_tui.core.grid import CellState, Grid


class DisjointSet:
    """Union-find over cell indices with path compression and union by rank."""

    def __init__(self, size: int):
        self.parent = list(range(size))
        self.rank = [0] * size

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, a: int, b: int) -> bool:
        """Merges the sets of a and b. False if they were already joined."""
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        if self.rank[ra] < self.rank[rb]:
            ra, rb = rb, ra
        self.parent[rb] = ra
        if self.rank[ra] == self.rank[rb]:
            self.rank[ra] += 1
        return True


class KruskalsAlgorithm(Generator):
    label = "Randomized Kruskal's"

    def run(self) -> Iterator[GridEvent]:
        rng = random.Random(self.seed)
        w, h = self.grid.width, self.grid.height

        # Every cell starts as its own open set
        for y in range(h):
            for x in range(w):
                yield from self.mark_cell(x, y, CellState.PASSAGE)

        edges: List[Tuple[Cell, Cell]] = []
        for y in range(h):
            for x in range(w):
                if x + 1 < w:
                    edges.append(((x, y), (x + 1, y)))
                if y + 1 < h:
                    edges.append(((x, y), (x, y + 1)))
        rng.shuffle(edges)

        sets = DisjointSet(w * h)
        for a, b in edges:
            if sets.union(a[1] * w + a[0], b[1] * w + b[0]):
                yield from self.mark(*Grid.gap_between(a, b), CellState.PASSAGE)
