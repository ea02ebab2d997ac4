from bisect import bisect_right
from collections import deque
from dataclasses import dataclass
from itertools import takewhile
from typing import Deque, List, Optional, Tuple

from maze_tui.core.events import GridEvent, replay
from maze_tui.core.grid import Frame, Grid


@dataclass(frozen=True)
class SeekResult:
    frame: Frame                        # nearest stored frame at or before `sequence`
    residual: Tuple[GridEvent, ...]     # events to replay on top of `frame`
    sequence: int                       # target after clamping
    truncated: bool                     # target was below the oldest retained frame


class HistoryBuffer:
    """
    Bounded log of committed grid events for rewinding and replaying a run.

    Full frames are snapshotted every `stride` events; the events between two
    stored frames are kept so any sequence number in range can be rebuilt as
    frame + residual events. Past `capacity` frames the oldest frame and its
    event span are evicted and the floor moves forward.
    """

    def __init__(self, width: int, height: int, capacity: int = 64, stride: int = 32):
        if capacity < 1 or stride < 1:
            raise ValueError("History capacity and stride must be positive")
        self.width = width
        self.height = height
        self.capacity = capacity
        self.stride = stride

        self._grid = Grid(width, height)
        self._frames: Deque[Frame] = deque([self._grid.snapshot()])
        # _spans[i] holds the events committed after _frames[i]
        self._spans: Deque[List[GridEvent]] = deque([[]])

        # None while following the live head
        self.cursor: Optional[int] = None
        self.evicted = 0

    @property
    def floor(self) -> int:
        return self._frames[0].sequence

    @property
    def last_sequence(self) -> int:
        return self._grid.sequence

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def __len__(self) -> int:
        """Number of retained events."""
        return sum(len(span) for span in self._spans)

    def commit(self, event: GridEvent) -> bool:
        """Appends one event. Already-committed sequence numbers are ignored (returns False)."""
        if event.sequence <= self._grid.sequence:
            return False

        self._grid.apply(event)
        self._spans[-1].append(event)

        if len(self._spans[-1]) >= self.stride:
            self._frames.append(self._grid.snapshot())
            self._spans.append([])
            while len(self._frames) > self.capacity:
                self._frames.popleft()
                self._spans.popleft()
                self.evicted += 1
            if self.cursor is not None and self.cursor < self.floor:
                self.cursor = self.floor
        return True

    def seek(self, sequence: int) -> SeekResult:
        truncated = sequence < self.floor
        sequence = min(max(sequence, self.floor), self.last_sequence)

        idx = bisect_right([f.sequence for f in self._frames], sequence) - 1
        residual = tuple(takewhile(lambda e: e.sequence <= sequence, self._spans[idx]))
        return SeekResult(self._frames[idx], residual, sequence, truncated)

    def latest(self) -> Frame:
        return self._grid.snapshot()

    def materialize(self, result: SeekResult) -> Frame:
        return replay(self.width, self.height, result.residual, base=result.frame)

    def frame_at(self, sequence: int) -> Frame:
        return self.materialize(self.seek(sequence))

    # Cursor navigation

    @property
    def position(self) -> int:
        return self.last_sequence if self.cursor is None else self.cursor

    @property
    def at_head(self) -> bool:
        return self.position >= self.last_sequence

    def step(self, delta: int) -> SeekResult:
        """Moves the cursor by `delta` events (negative is backwards) and seeks there."""
        result = self.seek(self.position + delta)
        self.cursor = result.sequence
        return result

    def release(self):
        """Returns to following the live head."""
        self.cursor = None
