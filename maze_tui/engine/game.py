import logging
import math
import queue
import random
import threading
import time
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from maze_tui.algo.registry import GENERATORS
from maze_tui.core.config import VisualizerConfig
from maze_tui.core.grid import CellState, Grid
from maze_tui.core.lifecycle import LifecycleCoordinator
from maze_tui.engine.input import Action, InputFailed, InputWorker, KeyMap
from maze_tui.engine.orchestrator import JOIN_TIMEOUT, fit_grid
from maze_tui.engine.render import STATUS_ROWS
from maze_tui.viz.painter import CELL_WIDTH

logger = logging.getLogger(__name__)

# How often the countdown is refreshed while no key arrives
TIMER_POLL = 0.1

MOVES = {
    Action.MOVE_UP: Grid.NORTH,
    Action.MOVE_DOWN: Grid.SOUTH,
    Action.MOVE_LEFT: Grid.WEST,
    Action.MOVE_RIGHT: Grid.EAST,
}

Update = Tuple[int, int, int]


class GameResult(Enum):
    GOAL_REACHED = "goal reached"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    QUIT = "quit"


class GameState:
    """
    Player position and trail on a finished maze.

    The maze grid is only read. What the player sees lives in `cells`, a
    display array: the trail is VISITED with PATH gaps, the player is drawn
    as START and the goal as END. Walking back onto the trail erases the
    step just taken, so the trail is always the route from the start.
    """

    def __init__(self, grid: Grid, start: Tuple[int, int] = (0, 0), goal: Tuple[int, int] = None):
        self.grid = grid
        self.current = start
        self.goal = goal if goal is not None else (grid.width - 1, grid.height - 1)
        self.cells = np.array(grid.cells, dtype=np.uint8)
        self.cells[Grid.cell_to_grid(*self.goal)] = CellState.END
        self.cells[Grid.cell_to_grid(*start)] = CellState.START
        self.moves = 0

    @property
    def goal_reached(self) -> bool:
        return self.current == self.goal

    def move(self, direction: Tuple[int, int]) -> Optional[List[Update]]:
        """Moves the player one cell. Returns the changed (row, col, state) cells, or None if blocked."""
        x, y = self.current
        target = (x + direction[0], y + direction[1])
        if not self.grid.contains(*target) or not self.grid.is_open(self.current, target):
            return None

        here = Grid.cell_to_grid(*self.current)
        gap = Grid.gap_between(self.current, target)
        there = Grid.cell_to_grid(*target)
        if self.cells[there] == CellState.VISITED:
            # Backtracking along the trail
            self.cells[here] = CellState.PASSAGE
            self.cells[gap] = CellState.PASSAGE
        else:
            self.cells[here] = CellState.VISITED
            self.cells[gap] = CellState.PATH
        self.cells[there] = CellState.START

        self.current = target
        self.moves += 1
        return [(r, c, int(self.cells[r, c])) for r, c in (here, gap, there)]


def countdown_style(remaining: float, duration: float) -> str:
    if remaining <= duration / 4:
        return "bold red"
    if remaining <= duration / 2:
        return "bold yellow"
    return "bold green"


class GameSession:
    """
    Play mode: walk from the top-left corner to the bottom-right one before
    the time runs out. Games follow each other until the player presses Esc
    or quits. Reuses the painter and the input worker of the visualizer,
    with the game key bindings.
    """

    def __init__(self, config: VisualizerConfig, painter, key_source,
                 coordinator: LifecycleCoordinator = None, clock=time.monotonic):
        self.config = config
        self.painter = painter
        self.key_source = key_source
        self.coordinator = coordinator or LifecycleCoordinator()
        self.clock = clock

        self.inbox: queue.Queue = queue.Queue()
        self.keymap = KeyMap(config.game_key_bindings)
        self.rng = random.Random(config.seed)
        self.state: Optional[GameState] = None
        self.results: List[GameResult] = []
        self._input_thread: Optional[threading.Thread] = None

    def run(self) -> int:
        worker = InputWorker(self.key_source, self.keymap, self.inbox, self.coordinator,
                             poll=self.config.input_poll, debounce=self.config.debounce)
        self._input_thread = threading.Thread(target=worker.run, name="input", daemon=True)
        self._input_thread.start()
        try:
            while True:
                result = self.play()
                self.results.append(result)
                logger.info(f"Game {len(self.results)} ended: {result.value} after {self.state.moves} moves")
                if result in (GameResult.CANCELLED, GameResult.QUIT):
                    return 0
                if not self.await_next(result):
                    return 0
        finally:
            self.coordinator.shutdown()
            self._input_thread.join(timeout=self.config.input_poll + JOIN_TIMEOUT)

    def grid_size(self) -> Tuple[int, int]:
        auto_width, auto_height = fit_grid(*self.painter.size())
        return self.config.width or auto_width, self.config.height or auto_height

    def new_game(self) -> GameState:
        width, height = self.grid_size()
        # The configured seed applies to the first game only
        if self.config.seed is not None and not self.results:
            seed = self.config.seed
        else:
            seed = self.rng.randrange(2 ** 32)
        grid = Grid(width, height, seed=seed)
        GENERATORS[self.config.generator](grid).run_all()
        logger.info(f"New game: {width}x{height} {self.config.generator} maze (seed={seed})")
        return GameState(grid)

    # Rounds

    def play(self) -> GameResult:
        self.state = self.new_game()
        duration = self.config.game_duration
        started = self.clock()
        self.repaint()
        shown = None

        while True:
            remaining = duration - (self.clock() - started)
            if remaining <= 0:
                return GameResult.TIMEOUT
            seconds = math.ceil(remaining)
            if seconds != shown:
                shown = seconds
                self.show_status(f"Time remaining: {seconds}s  (arrows move, Esc ends)",
                                 countdown_style(remaining, duration))

            action = self.next_action(min(TIMER_POLL, remaining))
            if action is None:
                continue
            if action is Action.QUIT:
                return GameResult.QUIT
            if action is Action.CANCEL:
                return GameResult.CANCELLED
            if action is Action.RESIZE:
                self.repaint()
                shown = None
            elif action in MOVES:
                updates = self.state.move(MOVES[action])
                if updates and self.fits():
                    self.painter.paint_cells(updates)
                if self.state.goal_reached:
                    return GameResult.GOAL_REACHED

    def await_next(self, result: GameResult) -> bool:
        """Shows the outcome and waits for Enter (next game) or Esc. Returns True to play again."""
        if result is GameResult.GOAL_REACHED:
            message = "Congratulations! You reached the goal! Press Enter to continue, or Esc to exit."
            style = "bold green"
        else:
            message = "Time's up! You failed to reach the goal. Press Enter to continue, or Esc to exit."
            style = "bold red"
        self.show_status(message, style)

        while True:
            action = self.next_action(TIMER_POLL)
            if action is Action.RESTART:
                return True
            if action in (Action.CANCEL, Action.QUIT):
                return False
            if action is Action.RESIZE:
                self.repaint()
                self.show_status(message, style)

    def next_action(self, timeout: float) -> Optional[Action]:
        try:
            message = self.inbox.get(timeout=timeout)
        except queue.Empty:
            return None
        if isinstance(message, InputFailed):
            raise message.error
        return message

    # Painting

    def fits(self) -> bool:
        rows, cols = self.state.cells.shape
        term_cols, term_rows = self.painter.size()
        return term_cols >= cols * CELL_WIDTH and term_rows >= rows + STATUS_ROWS

    def repaint(self):
        if not self.fits():
            rows, cols = self.state.cells.shape
            self.painter.notice(f"Terminal too small: need {cols * CELL_WIDTH}x{rows + STATUS_ROWS}. "
                                f"Resize, or press Esc to exit.")
            return
        self.painter.clear()
        self.painter.paint_frame(self.state.cells)

    def show_status(self, text: str, style: str):
        if self.fits():
            self.painter.status(self.state.cells.shape[0], text, style)
