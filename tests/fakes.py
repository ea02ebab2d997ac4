import threading
import time

import numpy as np

from maze_tui.core.grid import CellState


class FakePainter:
    """Records what would be on screen instead of writing to a terminal."""

    def __init__(self, cols=1000, rows=500):
        self.cols = cols
        self.rows = rows
        self.screen = None
        self.status_lines = []
        self.notices = []
        self.lock = threading.Lock()

    def size(self):
        return self.cols, self.rows

    def clear(self):
        with self.lock:
            self.screen = None

    def paint_frame(self, cells):
        with self.lock:
            self.screen = np.array(cells, dtype=np.uint8)

    def paint_cells(self, updates):
        with self.lock:
            for row, col, state in updates:
                self.screen[row, col] = state

    def status(self, row, text, style=None):
        with self.lock:
            self.status_lines.append(text)

    def notice(self, text):
        with self.lock:
            self.screen = None
            self.notices.append(text)

    def showing(self, cells):
        with self.lock:
            return self.screen is not None and np.array_equal(self.screen, cells)

    def all_walls(self):
        with self.lock:
            return self.screen is not None and bool((self.screen == CellState.WALL).all())


class FakeKeys:
    """Key source that hands out a scripted list of key names, then idles."""

    def __init__(self, keys=None):
        self.keys = list(keys or [])
        self.resized = False

    def take_resize(self):
        resized, self.resized = self.resized, False
        return resized

    def poll_key(self, timeout):
        if self.keys:
            return self.keys.pop(0)
        time.sleep(timeout)
        return None


def wait_for(predicate, timeout=5.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
