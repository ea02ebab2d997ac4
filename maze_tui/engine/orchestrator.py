import logging
import queue
import random
import threading
import time
from enum import Enum
from typing import List, Optional, Tuple

from maze_tui.algo.registry import random_pairing
from maze_tui.core.config import VisualizerConfig
from maze_tui.core.errors import TerminalIOError
from maze_tui.core.grid import Grid
from maze_tui.core.lifecycle import LifecycleCoordinator
from maze_tui.engine.channel import EventChannel
from maze_tui.engine.compute import ComputeWorker, RunSpec
from maze_tui.engine.history import HistoryBuffer
from maze_tui.engine.input import Action, InputFailed, InputWorker, KeyMap
from maze_tui.engine.render import (
    STATUS_ROWS,
    Command,
    NavigationEnded,
    RenderFailed,
    RenderWorker,
    ResizeHandled,
    RunAborted,
    RunFinished,
    SpeedSetting,
    StatusLabel,
)
from maze_tui.viz.painter import CELL_WIDTH

logger = logging.getLogger(__name__)

INBOX_POLL = 0.1
JOIN_TIMEOUT = 2.0


class PlaybackState(Enum):
    IDLE = "Idle"
    RUNNING = "Running"
    PAUSED = "Paused"
    NAVIGATING_HISTORY = "History"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"
    AWAITING_RESIZE = "Resize"


ACTIVE_STATES = (PlaybackState.RUNNING, PlaybackState.PAUSED, PlaybackState.NAVIGATING_HISTORY)


def fit_grid(cols: int, rows: int) -> Tuple[int, int]:
    """Largest logical (width, height) whose maze and status row fit a cols x rows terminal."""
    width = (cols // CELL_WIDTH - 1) // 2
    height = (rows - STATUS_ROWS - 1) // 2
    return (
        min(Grid.MAX_SIDE, max(1, width)),
        min(Grid.MAX_SIDE, max(1, height)),
    )


class Orchestrator:
    """
    Main loop and playback state machine.

    Owns the current generation id, starts a compute and a render worker for
    every run and tears them down again, and routes input actions and render
    reports (both arrive on one inbox) according to the current state.
    """

    def __init__(self, config: VisualizerConfig, painter, key_source,
                 coordinator: LifecycleCoordinator = None, clock=time.monotonic):
        self.config = config
        self.painter = painter
        self.key_source = key_source
        self.coordinator = coordinator or LifecycleCoordinator()
        self.clock = clock

        self.inbox: queue.Queue = queue.Queue()
        self.keymap = KeyMap(config.key_bindings)
        self.rng = random.Random(config.seed)
        self.loop = config.loop

        self.state = PlaybackState.IDLE
        self.resume_state: Optional[PlaybackState] = None
        self.nav_origin = PlaybackState.PAUSED
        self.speed: Optional[SpeedSetting] = None
        self.reached: Optional[bool] = None
        self.next_run_at: Optional[float] = None
        self.runs_started = 0

        self.spec: Optional[RunSpec] = None
        self.channel: Optional[EventChannel] = None
        self.history: Optional[HistoryBuffer] = None
        self.commands: Optional[queue.Queue] = None
        self._workers: List[threading.Thread] = []
        self._input_thread: Optional[threading.Thread] = None

    # Main loop

    def run(self) -> int:
        """Runs until the user quits. Returns the exit code; terminal failures raise TerminalIOError."""
        worker = InputWorker(self.key_source, self.keymap, self.inbox, self.coordinator,
                             poll=self.config.input_poll, debounce=self.config.debounce)
        self._input_thread = threading.Thread(target=worker.run, name="input", daemon=True)
        self._input_thread.start()
        try:
            self.start_run(self.config.generator, self.config.solver, self.config.seed)
            while True:
                try:
                    message = self.inbox.get(timeout=INBOX_POLL)
                except queue.Empty:
                    self.tick()
                    continue
                if not self.handle(message):
                    return 0
                self.tick()
        finally:
            self.shutdown()

    def shutdown(self):
        self.coordinator.shutdown()
        self.teardown()
        if self._input_thread is not None:
            self._input_thread.join(timeout=self.config.input_poll + JOIN_TIMEOUT)
            self._input_thread = None

    def tick(self):
        """Time-driven transitions: loop mode advancing after a finished run."""
        if self.next_run_at is not None and self.clock() >= self.next_run_at:
            self.next_run_at = None
            self.advance_loop()

    # Run lifecycle

    def grid_size(self) -> Tuple[int, int]:
        if not self.config.auto_size:
            return self.config.width, self.config.height
        auto_width, auto_height = fit_grid(*self.painter.size())
        return self.config.width or auto_width, self.config.height or auto_height

    def start_run(self, generator: str, solver: str, seed: Optional[int] = None):
        self.teardown()

        width, height = self.grid_size()
        generation = self.coordinator.new_generation()
        self.coordinator.clear_interrupt()
        self.coordinator.set_paused(False)
        self.coordinator.take_resize()

        if self.speed is None:
            self.speed = SpeedSetting.calibrated(width, height, self.config.speed_levels)

        self.spec = RunSpec(generator, solver, width, height, generation, seed)
        self.channel = EventChannel(self.config.channel_capacity)
        self.history = HistoryBuffer(width, height, self.config.history_capacity, self.config.history_stride)
        self.commands = queue.Queue()
        self.state = PlaybackState.RUNNING
        self.resume_state = None
        self.reached = None
        self.next_run_at = None
        self.runs_started += 1
        logger.info(f"Run {generation}: {self.spec.label} on {width}x{height} (seed={seed})")

        compute = ComputeWorker(self.spec, self.channel, self.coordinator)
        render = RenderWorker(self.spec, self.channel, self.commands, self.inbox, self.coordinator,
                              self.painter, self.speed, self.history, label=self.status_label())
        self._workers = [
            threading.Thread(target=compute.run, name=f"compute-{generation}", daemon=True),
            threading.Thread(target=render.run, name=f"render-{generation}", daemon=True),
        ]
        for thread in self._workers:
            thread.start()

    def teardown(self):
        """Interrupts the current run's workers, closes the channel and waits for both to exit."""
        if not self._workers:
            return
        self.coordinator.interrupt()
        self.channel.close()
        for thread in self._workers:
            thread.join(timeout=JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning(f"Worker {thread.name} did not exit within {JOIN_TIMEOUT}s")
        self._workers = []

    def cancel_run(self, reason: str = "cancelled"):
        self.teardown()
        self.state = PlaybackState.CANCELLED
        self.resume_state = None
        logger.info(f"Run {self.spec.generation} {reason}")
        # Workers are gone, so the status row is ours to paint
        self.painter.status(self.spec.height * 2 + 1, self.status_label(reason))
        if self.loop:
            self.advance_loop()

    def restart(self):
        self.start_run(self.spec.generator, self.spec.solver, self.new_seed())

    def advance_loop(self):
        generator, solver = random_pairing(self.rng)
        self.start_run(generator, solver, self.new_seed())

    def new_seed(self) -> int:
        return self.rng.randrange(2 ** 32)

    # Status

    def status_label(self, detail: str = None) -> str:
        parts = [self.state.value]
        if self.state is PlaybackState.COMPLETED:
            parts[0] += " - path found" if self.reached else " - no path"
        if self.spec is not None:
            parts.append(self.spec.label)
        if self.loop:
            parts.append("loop")
        if detail and self.state is PlaybackState.CANCELLED:
            parts.append(detail)
        return " | ".join(parts)

    def _send(self, command):
        if self._workers:
            self.commands.put(command)

    def _set_state(self, state: PlaybackState):
        self.state = state
        # A pending loop advance lives exactly as long as the Completed state
        if state is PlaybackState.COMPLETED:
            if self.loop:
                self._arm_loop()
        else:
            self.next_run_at = None
        self.coordinator.set_paused(state in (PlaybackState.PAUSED, PlaybackState.NAVIGATING_HISTORY))
        self._send(StatusLabel(self.status_label()))

    def _arm_loop(self):
        if self.next_run_at is None:
            self.next_run_at = self.clock() + self.config.loop_delay

    # Message routing

    def handle(self, message) -> bool:
        """Processes one inbox message. Returns False when the program should exit."""
        if isinstance(message, Action):
            return self.handle_action(message)
        if isinstance(message, InputFailed):
            raise message.error
        if isinstance(message, RenderFailed):
            if isinstance(message.error, TerminalIOError):
                raise message.error
            raise TerminalIOError(f"Render worker failed: {message.error}") from message.error
        self.handle_report(message)
        return True

    def handle_action(self, action: Action) -> bool:
        state = self.state
        if action is Action.QUIT:
            return False

        if action is Action.CANCEL:
            if state in ACTIVE_STATES or (state is PlaybackState.AWAITING_RESIZE
                                          and self.resume_state in ACTIVE_STATES):
                self.cancel_run()
                return True
            # Nothing left to cancel: Esc leaves the program
            return False

        if action is Action.PAUSE_RESUME:
            if state is PlaybackState.RUNNING:
                self._set_state(PlaybackState.PAUSED)
            elif state is PlaybackState.PAUSED:
                self._set_state(PlaybackState.RUNNING)
            elif state is PlaybackState.NAVIGATING_HISTORY:
                self._send(Command.STOP_NAVIGATION)
                self._set_state(self.nav_origin)
        elif action in (Action.NAVIGATE_BACK, Action.NAVIGATE_FORWARD):
            if state in (PlaybackState.RUNNING, PlaybackState.PAUSED, PlaybackState.COMPLETED):
                self.nav_origin = PlaybackState.COMPLETED if state is PlaybackState.COMPLETED \
                    else PlaybackState.PAUSED
                self._set_state(PlaybackState.NAVIGATING_HISTORY)
            if self.state is PlaybackState.NAVIGATING_HISTORY:
                self._send(Command.STEP_BACK if action is Action.NAVIGATE_BACK else Command.STEP_FORWARD)
        elif action is Action.SPEED_UP:
            self.speed.speed_up()
            self._send(StatusLabel(self.status_label()))
        elif action is Action.SPEED_DOWN:
            self.speed.slow_down()
            self._send(StatusLabel(self.status_label()))
        elif action is Action.TOGGLE_LOOP:
            self.loop = not self.loop
            logger.info(f"Loop mode {'on' if self.loop else 'off'}")
            self._send(StatusLabel(self.status_label()))
            if self.loop and state is PlaybackState.COMPLETED:
                self._arm_loop()
            elif self.loop and state is PlaybackState.CANCELLED:
                self.advance_loop()
            elif not self.loop:
                self.next_run_at = None
        elif action is Action.RESTART:
            if self.spec is not None:
                self.restart()
        elif action is Action.RESIZE:
            self.handle_resize()
        return True

    def handle_resize(self):
        if not self._workers:
            # No render worker to repaint; only the status row is left on screen
            if self.spec is not None:
                self.painter.clear()
                self.painter.status(0, self.status_label())
            return
        if self.state is not PlaybackState.AWAITING_RESIZE:
            self.resume_state = self.state
            self.state = PlaybackState.AWAITING_RESIZE
        # Set after the state change so the report cannot arrive first
        self.coordinator.request_resize()

    def handle_report(self, report):
        if self.spec is None or report.generation != self.spec.generation:
            logger.debug(f"Ignoring stale report {report}")
            return

        if isinstance(report, RunFinished):
            self.reached = report.reached
            logger.info(f"Run {report.generation} completed ({'path found' if report.reached else 'no path'})")
            if self.state is PlaybackState.AWAITING_RESIZE:
                self.resume_state = PlaybackState.COMPLETED
                if self.loop:
                    self._arm_loop()
            else:
                self._set_state(PlaybackState.COMPLETED)

        elif isinstance(report, RunAborted):
            logger.warning(f"Run {report.generation} aborted: {report.error}")
            self.cancel_run(f"aborted: {report.error}")

        elif isinstance(report, NavigationEnded):
            if self.state is PlaybackState.NAVIGATING_HISTORY:
                self._set_state(self.nav_origin)
            elif self.state is PlaybackState.AWAITING_RESIZE \
                    and self.resume_state is PlaybackState.NAVIGATING_HISTORY:
                self.resume_state = self.nav_origin

        elif isinstance(report, ResizeHandled):
            self.handle_resize_report(report)

    def handle_resize_report(self, report: ResizeHandled):
        if report.fits:
            if self.state is PlaybackState.AWAITING_RESIZE:
                self._set_state(self.resume_state or PlaybackState.RUNNING)
                self.resume_state = None
            return

        if self.state is not PlaybackState.AWAITING_RESIZE:
            self.resume_state = self.state
            self.state = PlaybackState.AWAITING_RESIZE

        # Auto-sized mazes are re-seeded for the new terminal; fixed sizes wait for a bigger one
        if self.config.auto_size and self.grid_size() != (self.spec.width, self.spec.height):
            logger.info("Maze no longer fits the terminal, starting a new run at the new size")
            self.restart()
