import os
import select
import signal
import sys
import termios
import threading
import tty
from typing import Optional

from maze_tui.core.errors import TerminalIOError
from maze_tui.viz.painter import RichPainter

# Escape sequences of the keys we care about, after the leading ESC
ESCAPE_KEYS = {
    "[A": "up",
    "[B": "down",
    "[C": "right",
    "[D": "left",
    "OA": "up",
    "OB": "down",
    "OC": "right",
    "OD": "left",
}

SPECIAL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    " ": "space",
    "\x03": "ctrl-c",
}


class TerminalSession:
    """
    Raw-mode, alternate-screen session on the controlling terminal.

    Acts as the key/resize event source for the input worker: `poll_key`
    waits at most `timeout` seconds, and SIGWINCH only raises a flag that
    `take_resize` reads. Must be entered from the main thread (signal handlers).
    """

    def __init__(self, painter: RichPainter):
        self.painter = painter
        self._fd: Optional[int] = None
        self._old = None
        self._old_handler = None
        self._resized = threading.Event()

    def __enter__(self) -> "TerminalSession":
        if not sys.stdin.isatty():
            raise TerminalIOError("stdin is not a terminal")
        try:
            fd = sys.stdin.fileno()
            old = termios.tcgetattr(fd)
            tty.setraw(fd)
        except (OSError, termios.error) as e:
            raise TerminalIOError(f"Cannot enter raw mode: {e}") from e
        self._fd, self._old = fd, old

        self._old_handler = signal.signal(signal.SIGWINCH, self._on_resize)
        console = self.painter.console
        console.set_alt_screen(True)
        console.show_cursor(False)
        self.painter.clear()
        return self

    def __exit__(self, *args):
        self.restore()

    def restore(self):
        """Leaves the alternate screen and puts the terminal back in normal mode."""
        if self._fd is None:
            return
        if self._old_handler is not None:
            signal.signal(signal.SIGWINCH, self._old_handler)
            self._old_handler = None
        try:
            console = self.painter.console
            console.show_cursor(True)
            console.set_alt_screen(False)
        finally:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._old)
            self._fd = None

    def _on_resize(self, signum, frame):
        self._resized.set()

    def take_resize(self) -> bool:
        if self._resized.is_set():
            self._resized.clear()
            return True
        return False

    def poll_key(self, timeout: float) -> Optional[str]:
        """Reads one key press. Returns a key name ("up", "esc", "q", ...) or None on timeout."""
        try:
            ready, _, _ = select.select([self._fd], [], [], timeout)
            if not ready:
                return None
            ch = os.read(self._fd, 1).decode("utf-8", errors="ignore")
            if ch == "\x1b":
                # Lone ESC or the start of an escape sequence
                ready, _, _ = select.select([self._fd], [], [], 0.01)
                if not ready:
                    return "esc"
                seq = os.read(self._fd, 2).decode("utf-8", errors="ignore")
                return ESCAPE_KEYS.get(seq)
        except OSError as e:
            raise TerminalIOError(f"Terminal read failed: {e}") from e

        if ch in SPECIAL_KEYS:
            return SPECIAL_KEYS[ch]
        return ch.lower() or None
