import logging
from dataclasses import dataclass
from typing import Optional

from maze_tui.algo.registry import GENERATORS, SOLVERS
from maze_tui.core.errors import ChannelClosed, GridError
from maze_tui.core.events import RunComplete, RunFailed
from maze_tui.core.grid import Grid
from maze_tui.core.lifecycle import LifecycleCoordinator
from maze_tui.engine.channel import EventChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSpec:
    """One (generator, solver) pairing bound to a grid size, seed and generation id."""
    generator: str
    solver: str
    width: int
    height: int
    generation: int
    seed: Optional[int] = None

    @property
    def label(self) -> str:
        return f"{GENERATORS[self.generator].label} + {SOLVERS[self.solver].label}"


class ComputeWorker:
    """
    Drives one run: builds the grid, drains the generator and then the solver
    into the channel, and finishes with a RunComplete marker. Owns the grid
    exclusively for the lifetime of the run.
    """

    def __init__(self, spec: RunSpec, channel: EventChannel, coordinator: LifecycleCoordinator):
        self.spec = spec
        self.channel = channel
        self.coordinator = coordinator
        self.should_stop = coordinator.stop_check(spec.generation)
        self.grid: Optional[Grid] = None
        self.sent = 0
        self.abandoned = False

    def _send(self, item) -> bool:
        if not self.channel.send(item, self.should_stop):
            self.abandoned = True
            return False
        self.sent += 1
        return True

    def run(self):
        spec = self.spec
        logger.debug(f"[compute] gen {spec.generation}: {spec.label} on {spec.width}x{spec.height}, seed={spec.seed}")
        try:
            self.grid = Grid(spec.width, spec.height, seed=spec.seed)

            generator = GENERATORS[spec.generator](self.grid, should_stop=self.should_stop)
            for item in generator.events():
                if not self._send(item):
                    break
            if generator.cancelled or self.abandoned:
                logger.debug(f"[compute] gen {spec.generation}: cancelled during generation")
                return

            solver = SOLVERS[spec.solver](self.grid, should_stop=self.should_stop)
            for item in solver.events():
                if not self._send(item):
                    break
            if solver.cancelled or self.abandoned:
                logger.debug(f"[compute] gen {spec.generation}: cancelled during solving")
                return

            self._send(RunComplete(spec.generation, self.grid.sequence, reached=solver.reached))
            logger.debug(f"[compute] gen {spec.generation}: done after {self.sent} items")

        except GridError as e:
            logger.error(f"[compute] gen {spec.generation}: algorithm error: {e}")
            try:
                self._send(RunFailed(spec.generation, str(e)))
            except ChannelClosed:
                logger.debug(f"[compute] gen {spec.generation}: channel closed before failure was reported")
        except ChannelClosed:
            logger.debug(f"[compute] gen {spec.generation}: channel closed, exiting")
        except Exception as e:
            logger.exception(f"[compute] gen {spec.generation}: unexpected failure")
            try:
                self._send(RunFailed(spec.generation, f"{type(e).__name__}: {e}"))
            except ChannelClosed:
                logger.debug(f"[compute] gen {spec.generation}: channel closed before failure was reported")
