class MazeError(Exception):
    """Base class for every error raised by maze_tui."""


class GridError(MazeError):
    """A grid mutation was rejected. Aborts the current run only."""


class BoundsError(GridError):
    def __init__(self, row: int, col: int, rows: int, cols: int):
        super().__init__(f"Coordinate ({row}, {col}) out of bounds for {rows}x{cols} grid")
        self.row = row
        self.col = col


class InvalidTransitionError(GridError):
    def __init__(self, row: int, col: int, old, new):
        super().__init__(f"Illegal transition {old.name} -> {new.name} at ({row}, {col})")
        self.row = row
        self.col = col
        self.old = old
        self.new = new


class SequenceError(GridError):
    def __init__(self, sequence: int, last: int):
        super().__init__(f"Event sequence {sequence} does not follow {last}")
        self.sequence = sequence
        self.last = last


class ChannelClosed(MazeError):
    """The other side of an event channel is gone. Normal during teardown."""


class TerminalIOError(MazeError):
    """The terminal collaborator failed. The UI cannot continue."""
