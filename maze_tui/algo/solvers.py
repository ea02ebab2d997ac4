import heapq
import itertools
import random
from collections import deque
from typing import Deque, Dict, Iterator, List, Optional, Tuple

from maze_tui.algo.base import Cell, Solver
from maze_tui.core.events import ChannelItem


class DepthFirstSearch(Solver):
    """Stack-based DFS. Finds some route, not necessarily the shortest."""
    label = "Depth-First Search"

    def run(self) -> Iterator[ChannelItem]:
        rng = random.Random(self.seed)
        yield from self.mark_endpoints()

        parents: Dict[Cell, Optional[Cell]] = {self.start: None}
        stack: List[Cell] = [self.start]

        while stack:
            current = stack.pop()
            if current == self.end:
                break
            yield from self.expand(current)

            neighbors = [n for n in self.grid.get_open_neighbors(*current) if n not in parents]
            rng.shuffle(neighbors)
            for n in neighbors:
                parents[n] = current
                yield from self.discover(current, n)
                stack.append(n)

        yield from self.finish(parents)


class BFS(Solver):
    label = "Breadth-First Search"

    def run(self) -> Iterator[ChannelItem]:
        yield from self.mark_endpoints()

        parents: Dict[Cell, Optional[Cell]] = {self.start: None}
        queue: Deque[Cell] = deque([self.start])

        while queue:
            current = queue.popleft()
            if current == self.end:
                break
            yield from self.expand(current)

            for n in self.grid.get_open_neighbors(*current):
                if n not in parents:
                    parents[n] = current
                    yield from self.discover(current, n)
                    queue.append(n)

        yield from self.finish(parents)


class Dijkstra(Solver):
    """
    Priority-frontier search. Edges have uniform cost, so on its own this
    behaves like BFS; subclasses change `heuristic` or `edge_cost`.
    Equal priorities pop in insertion order, so runs are reproducible.
    """
    label = "Dijkstra"

    def heuristic(self, a: Cell, b: Cell) -> int:
        return 0

    def edge_cost(self, a: Cell, b: Cell) -> int:
        return 1

    def run(self) -> Iterator[ChannelItem]:
        yield from self.mark_endpoints()

        order = itertools.count()
        open_set: List[Tuple[int, int, Cell]] = [(self.heuristic(self.start, self.end), next(order), self.start)]
        g_score: Dict[Cell, int] = {self.start: 0}
        parents: Dict[Cell, Optional[Cell]] = {self.start: None}
        closed = set()

        while open_set:
            _, _, current = heapq.heappop(open_set)
            if current in closed:
                continue  # stale heap entry
            if current == self.end:
                break
            closed.add(current)
            yield from self.expand(current)

            for n in self.grid.get_open_neighbors(*current):
                if n in closed:
                    continue
                new_g = g_score[current] + self.edge_cost(current, n)
                if n not in g_score or new_g < g_score[n]:
                    g_score[n] = new_g
                    parents[n] = current
                    heapq.heappush(open_set, (new_g + self.heuristic(n, self.end), next(order), n))
                    yield from self.discover(current, n)

        yield from self.finish(parents)


class AStar(Dijkstra):
    label = "A*"

    def heuristic(self, a: Cell, b: Cell) -> int:
        return abs(a[0] - b[0]) + abs(a[1] - b[1])
