import unittest
import sys
import os
from collections import deque

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from maze_tui.algo.dfs import RecursiveBacktracker
from maze_tui.algo.division import RecursiveDivision
from maze_tui.algo.kruskal import DisjointSet, KruskalsAlgorithm
from maze_tui.algo.prim import PrimsAlgorithm
from maze_tui.algo.registry import GENERATORS, SOLVERS, random_pairing
from maze_tui.core.events import GridEvent, replay
from maze_tui.core.grid import CellState, Grid

ALL_GENERATORS = (RecursiveBacktracker, PrimsAlgorithm, KruskalsAlgorithm, RecursiveDivision)


def count_open_gaps(grid):
    count = 0
    for y in range(grid.height):
        for x in range(grid.width):
            for n in ((x + 1, y), (x, y + 1)):
                if grid.contains(*n) and grid.is_open((x, y), n):
                    count += 1
    return count


def reachable(grid, start=(0, 0)):
    seen = {start}
    queue = deque([start])
    while queue:
        cell = queue.popleft()
        for n in grid.get_open_neighbors(*cell):
            if n not in seen:
                seen.add(n)
                queue.append(n)
    return seen


class TestGenerators(unittest.TestCase):
    def assertPerfectMaze(self, grid, name):
        w, h = grid.width, grid.height
        for y in range(h):
            for x in range(w):
                self.assertEqual(grid.cell_state(x, y), CellState.PASSAGE, f"{name}: cell {(x, y)} not open")
        # Border stays solid
        self.assertTrue((grid.cells[0, :] == CellState.WALL).all())
        self.assertTrue((grid.cells[-1, :] == CellState.WALL).all())
        self.assertTrue((grid.cells[:, 0] == CellState.WALL).all())
        self.assertTrue((grid.cells[:, -1] == CellState.WALL).all())
        # Connected with exactly w*h - 1 openings means a spanning tree
        self.assertEqual(len(reachable(grid)), w * h, f"{name} should connect every cell")
        self.assertEqual(count_open_gaps(grid), w * h - 1, f"{name} should not leave loops")

    def test_perfect_mazes(self):
        for cls in ALL_GENERATORS:
            for w, h in ((1, 1), (1, 7), (8, 1), (12, 9), (20, 20)):
                grid = Grid(w, h)
                cls(grid, seed=42).run_all()
                self.assertPerfectMaze(grid, f"{cls.__name__} {w}x{h}")

    def test_determinism(self):
        for cls in ALL_GENERATORS:
            grid1 = Grid(10, 10)
            events1 = cls(grid1, seed=42).run_all()

            grid2 = Grid(10, 10)
            events2 = cls(grid2, seed=42).run_all()

            self.assertEqual(events1, events2, f"{cls.__name__} should be deterministic for a fixed seed")
            self.assertEqual(grid1.cells.tobytes(), grid2.cells.tobytes())

    def test_seed_from_grid(self):
        grid1 = Grid(10, 10, seed=7)
        grid2 = Grid(10, 10)
        RecursiveBacktracker(grid1).run_all()
        RecursiveBacktracker(grid2, seed=7).run_all()
        self.assertEqual(grid1.cells.tobytes(), grid2.cells.tobytes())

    def test_events_replay_to_final_grid(self):
        for cls in ALL_GENERATORS:
            grid = Grid(9, 6)
            events = cls(grid, seed=3).run_all()
            sequences = [e.sequence for e in events]
            self.assertEqual(sequences, list(range(1, len(events) + 1)))
            self.assertEqual(replay(9, 6, events), grid.snapshot(), f"{cls.__name__} events must replay")

    def test_cancellation(self):
        grid = Grid(20, 20)
        emitted = []

        def should_stop():
            return len(emitted) >= 10

        algo = RecursiveBacktracker(grid, seed=1, should_stop=should_stop)
        for event in algo.events():
            emitted.append(event)

        self.assertTrue(algo.cancelled)
        self.assertEqual(len(emitted), 10, "No event may be emitted after the stop check fires")

    def test_generators_only_emit_grid_events(self):
        for cls in ALL_GENERATORS:
            events = cls(Grid(6, 6), seed=5).run_all()
            self.assertTrue(all(isinstance(e, GridEvent) for e in events))


class TestDisjointSet(unittest.TestCase):
    def test_union_find(self):
        ds = DisjointSet(5)
        self.assertTrue(ds.union(0, 1))
        self.assertTrue(ds.union(3, 4))
        self.assertFalse(ds.union(1, 0))
        self.assertTrue(ds.union(1, 4))
        self.assertEqual(ds.find(0), ds.find(3))
        self.assertNotEqual(ds.find(2), ds.find(0))


class TestRegistry(unittest.TestCase):
    def test_names(self):
        self.assertEqual(sorted(GENERATORS), ["backtrack", "division", "kruskal", "prim"])
        self.assertEqual(sorted(SOLVERS), ["astar", "bfs", "dfs", "dijkstra"])

    def test_random_pairing_is_seed_stable(self):
        import random
        pairs1 = [random_pairing(random.Random(9)) for _ in range(3)]
        pairs2 = [random_pairing(random.Random(9)) for _ in range(3)]
        self.assertEqual(pairs1, pairs2)
        generator, solver = pairs1[0]
        self.assertIn(generator, GENERATORS)
        self.assertIn(solver, SOLVERS)


if __name__ == '__main__':
    unittest.main()
