import logging
import queue
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from maze_tui.core.errors import TerminalIOError
from maze_tui.core.lifecycle import LifecycleCoordinator

logger = logging.getLogger(__name__)


class Action(Enum):
    CANCEL = "cancel"
    QUIT = "quit"
    PAUSE_RESUME = "pause_resume"
    NAVIGATE_BACK = "navigate_back"
    NAVIGATE_FORWARD = "navigate_forward"
    SPEED_UP = "speed_up"
    SPEED_DOWN = "speed_down"
    TOGGLE_LOOP = "toggle_loop"
    RESTART = "restart"
    RESIZE = "resize"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"


@dataclass(frozen=True)
class InputFailed:
    error: TerminalIOError


class KeyMap:
    """Physical key name -> Action, built from the configured bindings."""

    def __init__(self, bindings: Dict[str, str]):
        self._map = {}
        for key, name in bindings.items():
            try:
                self._map[key] = Action(name)
            except ValueError:
                raise ValueError(f"Unknown action {name!r} bound to key {key!r}") from None

    def resolve(self, key: str) -> Optional[Action]:
        return self._map.get(key)


class InputWorker:
    """
    Polls the key source with a bounded timeout (so shutdown is noticed even
    without input), maps keys to actions and forwards them to the
    orchestrator, dropping repeats that arrive within the debounce window.
    """

    def __init__(self, source, keymap: KeyMap, outbox: queue.Queue, coordinator: LifecycleCoordinator,
                 poll: float = 0.1, debounce: float = 0.03, clock=time.monotonic):
        self.source = source
        self.keymap = keymap
        self.outbox = outbox
        self.coordinator = coordinator
        self.poll = poll
        self.debounce = debounce
        self.clock = clock
        self._last_action: Optional[Action] = None
        self._last_time = 0.0

    def _forward(self, action: Action) -> bool:
        now = self.clock()
        if action == self._last_action and now - self._last_time < self.debounce:
            return False
        self._last_action = action
        self._last_time = now
        self.outbox.put(action)
        return True

    def run(self):
        try:
            while not self.coordinator.shutting_down:
                if self.source.take_resize():
                    self._forward(Action.RESIZE)

                key = self.source.poll_key(self.poll)
                if key is None:
                    continue
                action = self.keymap.resolve(key)
                if action is None:
                    continue
                logger.debug(f"[input] {key!r} -> {action.name}")
                self._forward(action)
                if action is Action.QUIT:
                    return
        except TerminalIOError as e:
            logger.error(f"[input] {e}")
            self.outbox.put(InputFailed(e))
