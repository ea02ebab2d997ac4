import unittest
import sys
import os

# Add project root to path so we can import maze_tui
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import numpy as np

from maze_tui.core.errors import BoundsError, GridError, InvalidTransitionError, SequenceError
from maze_tui.core.events import GridEvent, replay
from maze_tui.core.grid import CellState, Grid


def open_event(grid, row, col, state=CellState.PASSAGE):
    return GridEvent(row, col, state, grid.next_sequence())


class TestGrid(unittest.TestCase):
    def test_initialization(self):
        grid = Grid(10, 4)
        self.assertEqual(grid.cells.shape, (9, 21))
        self.assertTrue((grid.cells == CellState.WALL).all(), "A fresh grid should be solid wall")
        self.assertEqual(grid.sequence, 0)

    def test_dimension_limits(self):
        Grid(1, 1)
        Grid(255, 255)
        with self.assertRaises(ValueError):
            Grid(0, 5)
        with self.assertRaises(ValueError):
            Grid(5, 256)

    def test_coordinates(self):
        self.assertEqual(Grid.cell_to_grid(2, 3), (7, 5))
        # Gap between (0,0) and (1,0) is one column right of (0,0)
        self.assertEqual(Grid.gap_between((0, 0), (1, 0)), (1, 2))
        self.assertEqual(Grid.gap_between((2, 2), (2, 1)), (4, 5))

        grid = Grid(5, 5)
        with self.assertRaises(BoundsError):
            grid.state(-1, 0)
        with self.assertRaises(BoundsError):
            grid.state(0, 11)

    def test_apply_legal_transitions(self):
        grid = Grid(2, 2)
        grid.apply(open_event(grid, 1, 1, CellState.FRONTIER))
        grid.apply(open_event(grid, 1, 1, CellState.PASSAGE))
        grid.apply(open_event(grid, 1, 1, CellState.VISITED))
        grid.apply(open_event(grid, 1, 1, CellState.PATH))
        self.assertEqual(grid.state(1, 1), CellState.PATH)
        self.assertEqual(grid.sequence, 4)

    def test_identity_transition_allowed(self):
        grid = Grid(2, 2)
        grid.apply(open_event(grid, 1, 1, CellState.WALL))
        self.assertEqual(grid.state(1, 1), CellState.WALL)
        self.assertEqual(grid.sequence, 1)

    def test_illegal_transition(self):
        grid = Grid(2, 2)
        with self.assertRaises(InvalidTransitionError):
            grid.apply(open_event(grid, 1, 1, CellState.VISITED))
        grid.apply(open_event(grid, 1, 1))
        grid.apply(open_event(grid, 1, 1, CellState.START))
        with self.assertRaises(GridError):
            grid.apply(open_event(grid, 1, 1, CellState.PASSAGE))

    def test_rejected_event_leaves_grid_untouched(self):
        grid = Grid(2, 2)
        before = grid.cells.copy()
        with self.assertRaises(InvalidTransitionError):
            grid.apply(open_event(grid, 1, 1, CellState.PATH))
        self.assertTrue(np.array_equal(grid.cells, before))
        self.assertEqual(grid.sequence, 0)

    def test_sequence_must_increase(self):
        grid = Grid(2, 2)
        grid.apply(GridEvent(1, 1, CellState.PASSAGE, 5))
        with self.assertRaises(SequenceError):
            grid.apply(GridEvent(1, 3, CellState.PASSAGE, 5))
        with self.assertRaises(SequenceError):
            grid.apply(GridEvent(1, 3, CellState.PASSAGE, 2))
        grid.apply(GridEvent(1, 3, CellState.PASSAGE, 9))
        self.assertEqual(grid.sequence, 9)

    def test_out_of_bounds_event(self):
        grid = Grid(2, 2)
        with self.assertRaises(BoundsError):
            grid.apply(open_event(grid, 5, 0))

    def test_open_neighbors(self):
        grid = Grid(3, 3)
        for row, col in (Grid.cell_to_grid(1, 1), Grid.cell_to_grid(2, 1), Grid.gap_between((1, 1), (2, 1))):
            grid.apply(open_event(grid, row, col))

        self.assertEqual(sorted(grid.get_neighbors(0, 0)), [(0, 1), (1, 0)])
        self.assertEqual(list(grid.get_open_neighbors(1, 1)), [(2, 1)])
        self.assertTrue(grid.is_open((1, 1), (2, 1)))
        self.assertFalse(grid.is_open((1, 1), (1, 2)))


class TestFrame(unittest.TestCase):
    def test_snapshot_is_immutable_copy(self):
        grid = Grid(2, 2)
        frame = grid.snapshot()
        grid.apply(open_event(grid, 1, 1))

        self.assertEqual(frame.cells[1, 1], CellState.WALL, "Snapshot must not follow later mutations")
        with self.assertRaises(ValueError):
            frame.cells[1, 1] = CellState.PASSAGE

    def test_from_frame(self):
        grid = Grid(3, 2)
        grid.apply(open_event(grid, 1, 1))
        grid.apply(open_event(grid, 1, 3))
        rebuilt = Grid.from_frame(grid.snapshot(), 3, 2)

        self.assertEqual(rebuilt.snapshot(), grid.snapshot())
        self.assertEqual(rebuilt.sequence, 2)
        with self.assertRaises(ValueError):
            Grid.from_frame(grid.snapshot(), 2, 3)

    def test_replay(self):
        grid = Grid(3, 3)
        events = []
        for row, col in ((1, 1), (1, 2), (1, 3)):
            event = open_event(grid, row, col)
            grid.apply(event)
            events.append(event)

        self.assertEqual(replay(3, 3, events), grid.snapshot())
        # Replaying the tail on top of an intermediate frame gives the same result
        partial = replay(3, 3, events[:1])
        self.assertEqual(replay(3, 3, events[1:], base=partial), grid.snapshot())


if __name__ == '__main__':
    unittest.main()
