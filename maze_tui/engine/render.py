import logging
import queue
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from maze_tui.core.errors import ChannelClosed, GridError, TerminalIOError
from maze_tui.core.events import GridEvent, RunComplete, RunFailed, Unreachable
from maze_tui.core.grid import CellState, Grid
from maze_tui.core.lifecycle import LifecycleCoordinator
from maze_tui.engine.channel import EventChannel
from maze_tui.engine.compute import RunSpec
from maze_tui.engine.history import HistoryBuffer, SeekResult
from maze_tui.viz.painter import CELL_WIDTH

logger = logging.getLogger(__name__)

# Longest the render worker blocks on the channel or its command queue
# before re-checking the coordinator
RECEIVE_POLL = 0.05
IDLE_POLL = 0.02

# Rows reserved under the maze for the status line
STATUS_ROWS = 1


class SpeedSetting:
    """
    Quantized playback speed. Level 0 is the slowest; each level maps to a
    delay per paint cycle and a number of events consumed per cycle.
    Written by the orchestrator only, read by the render worker.
    """
    BASE_DELAY = 0.0005  # seconds

    def __init__(self, levels: int = 20, level: int = None):
        self.levels = levels
        self.level = levels // 2 if level is None else max(0, min(level, levels - 1))

    @classmethod
    def calibrated(cls, width: int, height: int, levels: int = 20) -> "SpeedSetting":
        """Larger mazes start faster."""
        frac = max(width, height) / Grid.MAX_SIDE
        base = levels // 2
        return cls(levels, base + round(frac * (levels - 1 - base)))

    @property
    def delay(self) -> float:
        return self.BASE_DELAY * (self.levels - 1 - self.level) ** 2

    @property
    def batch(self) -> int:
        return 1 << max(0, self.level - self.levels // 2)

    def speed_up(self):
        self.level = min(self.level + 1, self.levels - 1)

    def slow_down(self):
        self.level = max(self.level - 1, 0)

    def bar(self) -> str:
        return "█" * (self.level + 1) + "░" * (self.levels - self.level - 1)


class Command(Enum):
    STEP_BACK = "step_back"
    STEP_FORWARD = "step_forward"
    STOP_NAVIGATION = "stop_navigation"


@dataclass(frozen=True)
class StatusLabel:
    text: str


# Reports sent back to the orchestrator. Each carries the generation it belongs to.

@dataclass(frozen=True)
class RunFinished:
    generation: int
    reached: Optional[bool]


@dataclass(frozen=True)
class RunAborted:
    generation: int
    error: str


@dataclass(frozen=True)
class NavigationEnded:
    generation: int


@dataclass(frozen=True)
class ResizeHandled:
    generation: int
    fits: bool


@dataclass(frozen=True)
class RenderFailed:
    generation: int
    error: Exception


class RenderWorker:
    """
    Consumes grid events from the compute channel and commands from the
    orchestrator, commits events to history and paints the terminal.

    Sub-states: live (paint new events at the current speed), paused (stop
    reading the channel and let backpressure hold the compute worker),
    navigating (repaint frames sought from history) and resize recovery.
    Commands are always handled before the next batch of grid events.
    """

    def __init__(self, spec: RunSpec, channel: EventChannel, commands: queue.Queue, reports: queue.Queue,
                 coordinator: LifecycleCoordinator, painter, speed: SpeedSetting, history: HistoryBuffer,
                 label: str = ""):
        self.spec = spec
        self.generation = spec.generation
        self.channel = channel
        self.commands = commands
        self.reports = reports
        self.coordinator = coordinator
        self.painter = painter
        self.speed = speed
        self.history = history
        self.label = label

        rows, cols = spec.height * 2 + 1, spec.width * 2 + 1
        # What is currently on screen
        self.displayed = np.full((rows, cols), CellState.WALL, dtype=np.uint8)
        self.finished = False
        self.unreachable = False
        self.too_small = False
        self.history_start_reached = False

    # Lifecycle

    def active(self) -> bool:
        return self.coordinator.is_current(self.generation)

    def _report(self, report):
        self.reports.put(report)

    def run(self):
        try:
            self._start()
            while self.active():
                self._drain_commands()
                if not self.active():
                    break
                if self.coordinator.take_resize():
                    self._recover_from_resize()
                if self._consuming():
                    self._live_cycle()
                else:
                    self._idle(IDLE_POLL)
        except ChannelClosed:
            logger.debug(f"[render] gen {self.generation}: channel closed, exiting")
        except GridError as e:
            logger.error(f"[render] gen {self.generation}: history rejected event: {e}")
            self._report(RunAborted(self.generation, str(e)))
        except TerminalIOError as e:
            logger.error(f"[render] gen {self.generation}: {e}")
            self._report(RenderFailed(self.generation, e))
        except Exception as e:
            logger.exception(f"[render] gen {self.generation}: unexpected failure")
            self._report(RenderFailed(self.generation, e))
        logger.debug(f"[render] gen {self.generation}: exited")

    def _start(self):
        if self._fits():
            self.painter.clear()
            self.painter.paint_frame(self.displayed)
            self._paint_status()
        else:
            self._show_too_small()
            self._report(ResizeHandled(self.generation, False))

    def _consuming(self) -> bool:
        return not (
            self.finished
            or self.too_small
            or self.coordinator.paused
            or self.history.cursor is not None
        )

    # Live playback

    def _live_cycle(self):
        speed = self.speed
        items = self.channel.receive_batch(speed.batch, timeout=RECEIVE_POLL)
        if not items:
            return
        self._consume(items)
        if speed.delay > 0:
            # Waiting on the command queue lets control actions cut the delay short
            self._idle(speed.delay)

    def _consume(self, items: Iterable):
        updates = []
        markers = []
        for item in items:
            if not self.active():
                return
            if isinstance(item, GridEvent):
                if self.history.commit(item):
                    updates.append(item)
            else:
                markers.append(item)
        self._paint_events(updates)
        # Outcomes are reported only once the screen shows the events before them
        for marker in markers:
            self._handle_marker(marker)
        self._paint_status()

    def _handle_marker(self, item):
        if isinstance(item, Unreachable):
            self.unreachable = True
        elif isinstance(item, RunComplete):
            self.finished = True
            self._report(RunFinished(self.generation, item.reached))
        elif isinstance(item, RunFailed):
            self.finished = True
            self._report(RunAborted(self.generation, item.error))

    # Commands

    def _idle(self, timeout: float):
        # Sliced so an interrupt is seen within IDLE_POLL whatever the delay
        deadline = time.monotonic() + timeout
        while self.active():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            try:
                command = self.commands.get(timeout=min(remaining, IDLE_POLL))
            except queue.Empty:
                continue
            self._handle_command(command)
            self._drain_commands()
            return

    def _drain_commands(self):
        while self.active():
            try:
                command = self.commands.get_nowait()
            except queue.Empty:
                return
            self._handle_command(command)

    def _handle_command(self, command):
        if isinstance(command, StatusLabel):
            self.label = command.text
            self._paint_status()
        elif command is Command.STEP_BACK:
            self._step(-self._nav_step())
        elif command is Command.STEP_FORWARD:
            self._step_forward()
        elif command is Command.STOP_NAVIGATION:
            if self.history.cursor is not None:
                self.history.release()
                self._show(self.history.seek(self.history.last_sequence))

    def _nav_step(self) -> int:
        return max(1, self.speed.batch)

    def _step(self, delta: int):
        result = self.history.step(delta)
        self.history_start_reached = result.truncated or result.sequence == self.history.floor
        self._show(result)

    def _step_forward(self):
        if self.history.cursor is None:
            # Already at the head: step into the future by pulling new events
            if not self.finished and not self.too_small:
                items = self.channel.receive_batch(self._nav_step(), timeout=RECEIVE_POLL)
                self._consume(items)
            self._report(NavigationEnded(self.generation))
            return

        self._step(self._nav_step())
        if self.history.at_head:
            self.history.release()
            self._report(NavigationEnded(self.generation))

    # Painting

    def _show(self, result: SeekResult):
        frame = self.history.materialize(result)
        changed = np.argwhere(self.displayed != frame.cells)
        if not self.too_small:
            self.painter.paint_cells((int(r), int(c), int(frame.cells[r, c])) for r, c in changed)
        self.displayed[:, :] = frame.cells
        self._paint_status()

    def _paint_events(self, events: Iterable[GridEvent]):
        # Coalesce: only the last update of each cell in the batch is painted
        latest: Dict[Tuple[int, int], int] = {}
        for event in events:
            self.displayed[event.row, event.col] = event.state
            latest[(event.row, event.col)] = int(event.state)
        if latest and not self.too_small:
            self.painter.paint_cells((r, c, s) for (r, c), s in latest.items())

    def status_text(self) -> str:
        parts = [self.label] if self.label else []
        parts.append(f"seq {self.history.position}/{self.history.last_sequence}")
        parts.append(f"speed {self.speed.bar()}")
        if self.unreachable:
            parts.append("no path")
        if self.history.cursor is not None and self.history_start_reached:
            parts.append("history start reached")
        return "  ".join(parts)

    def _paint_status(self):
        if not self.too_small:
            self.painter.status(self.displayed.shape[0], self.status_text())

    # Resize

    def _required_size(self) -> Tuple[int, int]:
        rows, cols = self.displayed.shape
        return cols * CELL_WIDTH, rows + STATUS_ROWS

    def _fits(self) -> bool:
        need_cols, need_rows = self._required_size()
        cols, rows = self.painter.size()
        return cols >= need_cols and rows >= need_rows

    def _show_too_small(self):
        self.too_small = True
        need_cols, need_rows = self._required_size()
        cols, rows = self.painter.size()
        self.painter.notice(
            f"Terminal too small: need {need_cols}x{need_rows}, have {cols}x{rows}. Resize, or press q to quit."
        )

    def _recover_from_resize(self):
        if self._fits():
            self.too_small = False
            self.painter.clear()
            self.painter.paint_frame(self.displayed)
            self._paint_status()
            self._report(ResizeHandled(self.generation, True))
        else:
            self._show_too_small()
            self._report(ResizeHandled(self.generation, False))
