import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from fakes import FakeKeys, FakePainter

from maze_tui.core.config import VisualizerConfig
from maze_tui.core.events import GridEvent
from maze_tui.core.grid import CellState, Grid
from maze_tui.engine.game import GameResult, GameSession, GameState, countdown_style
from maze_tui.main import build_parser


def open_slot(grid, row, col):
    if grid.cells[row, col] == CellState.WALL:
        grid.apply(GridEvent(row, col, CellState.PASSAGE, grid.next_sequence()))


def carve(grid, a, b):
    open_slot(grid, *Grid.cell_to_grid(*a))
    open_slot(grid, *Grid.gap_between(a, b))
    open_slot(grid, *Grid.cell_to_grid(*b))


class TickingClock:
    """Advances by `step` every time it is read."""

    def __init__(self, step):
        self.step = step
        self.now = 0.0

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


class TestGameState(unittest.TestCase):
    def create_bend(self):
        # (0,0) -> (1,0) -> (1,1); (0,1) is walled off
        grid = Grid(2, 2)
        carve(grid, (0, 0), (1, 0))
        carve(grid, (1, 0), (1, 1))
        return grid

    def test_initial_display(self):
        state = GameState(self.create_bend())
        self.assertEqual(state.current, (0, 0))
        self.assertEqual(state.goal, (1, 1))
        self.assertEqual(state.cells[Grid.cell_to_grid(0, 0)], CellState.START)
        self.assertEqual(state.cells[Grid.cell_to_grid(1, 1)], CellState.END)
        self.assertFalse(state.goal_reached)

    def test_walls_block(self):
        state = GameState(self.create_bend())
        self.assertIsNone(state.move(Grid.SOUTH))
        self.assertIsNone(state.move(Grid.NORTH), "Leaving the maze is blocked too")
        self.assertEqual(state.current, (0, 0))
        self.assertEqual(state.moves, 0)

    def test_forward_move_leaves_trail(self):
        state = GameState(self.create_bend())
        updates = state.move(Grid.EAST)

        gap = Grid.gap_between((0, 0), (1, 0))
        self.assertEqual(state.current, (1, 0))
        self.assertEqual(state.cells[Grid.cell_to_grid(0, 0)], CellState.VISITED)
        self.assertEqual(state.cells[gap], CellState.PATH)
        self.assertEqual(state.cells[Grid.cell_to_grid(1, 0)], CellState.START)
        self.assertIn((gap[0], gap[1], int(CellState.PATH)), updates)

    def test_backtrack_erases_trail(self):
        state = GameState(self.create_bend())
        state.move(Grid.EAST)
        state.move(Grid.WEST)

        self.assertEqual(state.current, (0, 0))
        self.assertEqual(state.cells[Grid.cell_to_grid(0, 0)], CellState.START)
        self.assertEqual(state.cells[Grid.gap_between((0, 0), (1, 0))], CellState.PASSAGE)
        self.assertEqual(state.cells[Grid.cell_to_grid(1, 0)], CellState.PASSAGE)
        self.assertEqual(state.moves, 2)

    def test_goal_reached(self):
        state = GameState(self.create_bend())
        state.move(Grid.EAST)
        state.move(Grid.SOUTH)
        self.assertTrue(state.goal_reached)
        self.assertEqual(state.cells[Grid.cell_to_grid(1, 1)], CellState.START)

    def test_maze_is_not_modified(self):
        grid = self.create_bend()
        before = grid.snapshot()
        state = GameState(grid)
        state.move(Grid.EAST)
        self.assertEqual(grid.snapshot(), before)

    def test_countdown_style(self):
        self.assertEqual(countdown_style(60, 60), "bold green")
        self.assertEqual(countdown_style(30, 60), "bold yellow")
        self.assertEqual(countdown_style(15, 60), "bold red")


class TestGameSession(unittest.TestCase):
    def make(self, keys, **overrides):
        settings = dict(width=2, height=1, seed=5, input_poll=0.01)
        settings.update(overrides)
        self.painter = FakePainter()
        return GameSession(VisualizerConfig(**settings), self.painter, FakeKeys(keys))

    def test_goal_then_exit(self):
        session = self.make(["right", "esc"])
        self.assertEqual(session.run(), 0)
        self.assertEqual(session.results, [GameResult.GOAL_REACHED])
        self.assertTrue(any("Congratulations" in line for line in self.painter.status_lines))
        self.assertTrue(session.coordinator.shutting_down)

    def test_enter_starts_next_game(self):
        session = self.make(["right", "enter", "right", "q"])
        self.assertEqual(session.run(), 0)
        self.assertEqual(session.results, [GameResult.GOAL_REACHED, GameResult.GOAL_REACHED])

    def test_timeout(self):
        session = self.make(["esc"], game_duration=0.0)
        self.assertEqual(session.run(), 0)
        self.assertEqual(session.results, [GameResult.TIMEOUT])
        self.assertTrue(any("Time's up" in line for line in self.painter.status_lines))

    def test_cancel_mid_game(self):
        session = self.make(["esc"], width=10, height=10)
        self.assertEqual(session.run(), 0)
        self.assertEqual(session.results, [GameResult.CANCELLED])

    def test_countdown_until_timeout(self):
        painter = FakePainter()
        session = GameSession(VisualizerConfig(width=4, height=4, seed=1, game_duration=3.0),
                              painter, FakeKeys(), clock=TickingClock(1.0))
        self.assertEqual(session.play(), GameResult.TIMEOUT)
        self.assertEqual([line.split("  ")[0] for line in painter.status_lines],
                         ["Time remaining: 2s", "Time remaining: 1s"])
        self.assertTrue(painter.showing(session.state.cells))

    def test_first_game_uses_configured_seed(self):
        session = self.make([], width=8, height=8, seed=42)
        state = session.new_game()
        self.assertEqual(state.grid.seed, 42)


class TestGameCli(unittest.TestCase):
    def test_game_flag(self):
        args = build_parser().parse_args(["--game", "--width", "10"])
        config = VisualizerConfig.from_args(args)
        self.assertTrue(config.game)
        self.assertEqual(config.width, 10)

    def test_game_and_headless_are_exclusive(self):
        with self.assertRaises(SystemExit):
            build_parser().parse_args(["--game", "--headless"])


if __name__ == '__main__':
    unittest.main()
