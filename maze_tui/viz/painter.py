from contextlib import contextmanager
from typing import Iterable, Tuple

import numpy as np
from rich.console import Console
from rich.control import Control
from rich.style import Style
from rich.text import Text

from maze_tui.core.errors import TerminalIOError
from maze_tui.core.grid import CellState

# Each grid cell is two characters wide so cells look square
CELL_WIDTH = 2

GLYPHS = {
    CellState.WALL: ("██", Style(color="white")),
    CellState.PASSAGE: ("  ", Style()),
    CellState.FRONTIER: ("░░", Style(color="magenta")),
    CellState.VISITED: ("··", Style(color="blue")),
    CellState.PATH: ("██", Style(color="yellow")),
    CellState.START: ("██", Style(color="green")),
    CellState.END: ("██", Style(color="red")),
}


class RichPainter:
    """
    Cursor-addressed cell painter on top of a rich Console.

    Every public call is one buffered write: rich holds the output while the
    console context is open and flushes it in a single terminal write on exit.
    """

    def __init__(self, console: Console = None):
        self.console = console or Console(highlight=False)

    @contextmanager
    def _batch(self):
        try:
            with self.console:
                yield
        except OSError as e:
            raise TerminalIOError(f"Terminal write failed: {e}") from e

    def size(self) -> Tuple[int, int]:
        """(columns, rows) of the terminal."""
        try:
            size = self.console.size
        except OSError as e:
            raise TerminalIOError(f"Cannot read terminal size: {e}") from e
        return size.width, size.height

    def clear(self):
        with self._batch():
            self.console.control(Control.home(), Control.clear())

    def _row_text(self, row: np.ndarray) -> Text:
        text = Text()
        for value in row:
            glyph, style = GLYPHS[CellState(int(value))]
            text.append(glyph, style)
        return text

    def paint_frame(self, cells: np.ndarray):
        with self._batch():
            for r in range(cells.shape[0]):
                self.console.control(Control.move_to(0, r))
                self.console.print(self._row_text(cells[r]), end="", soft_wrap=True)

    def paint_cells(self, updates: Iterable[Tuple[int, int, int]]):
        """Paints (row, col, state) updates; later updates to the same cell win."""
        with self._batch():
            for row, col, state in updates:
                glyph, style = GLYPHS[CellState(int(state))]
                self.console.control(Control.move_to(col * CELL_WIDTH, row))
                self.console.print(Text(glyph, style), end="", soft_wrap=True)

    def status(self, row: int, text: str, style: str = "bold cyan"):
        cols, _ = self.size()
        line = text[:max(cols - 1, 0)].ljust(max(cols - 1, 0))
        with self._batch():
            self.console.control(Control.move_to(0, row))
            self.console.print(Text(line, Style.parse(style)), end="", soft_wrap=True)

    def notice(self, text: str):
        """Clears the screen and shows a single message, e.g. when the terminal is too small."""
        with self._batch():
            self.console.control(Control.home(), Control.clear())
            self.console.print(Text(text, Style.parse("bold red")), end="", soft_wrap=True)
