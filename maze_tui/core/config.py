from dataclasses import dataclass, field
from typing import Dict, Optional

# Physical key name -> action name. Key names are the ones TerminalSession.poll_key returns.
DEFAULT_KEY_BINDINGS = {
    "esc": "cancel",
    "q": "quit",
    "ctrl-c": "quit",
    "enter": "pause_resume",
    "space": "pause_resume",
    "left": "navigate_back",
    "right": "navigate_forward",
    "up": "speed_up",
    "down": "speed_down",
    "l": "toggle_loop",
    "r": "restart",
}

# Game mode: arrows or WASD move, Enter starts the next game, Esc ends the session
GAME_KEY_BINDINGS = {
    "esc": "cancel",
    "q": "quit",
    "ctrl-c": "quit",
    "enter": "restart",
    "up": "move_up",
    "down": "move_down",
    "left": "move_left",
    "right": "move_right",
    "w": "move_up",
    "s": "move_down",
    "a": "move_left",
    "d": "move_right",
}


@dataclass
class VisualizerConfig:
    # None means auto-size from the terminal
    width: Optional[int] = None
    height: Optional[int] = None
    generator: str = "backtrack"
    solver: str = "bfs"
    seed: Optional[int] = None
    loop: bool = False
    game: bool = False

    # Pipeline tuning
    channel_capacity: int = 256
    history_capacity: int = 64     # frames
    history_stride: int = 32       # events per stored frame
    speed_levels: int = 20
    input_poll: float = 0.1        # seconds
    debounce: float = 0.03         # seconds
    loop_delay: float = 1.5        # seconds a finished run stays on screen in loop mode
    game_duration: float = 60.0    # seconds per game

    key_bindings: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_KEY_BINDINGS))
    game_key_bindings: Dict[str, str] = field(default_factory=lambda: dict(GAME_KEY_BINDINGS))

    @property
    def auto_size(self) -> bool:
        return self.width is None or self.height is None

    @classmethod
    def from_args(cls, args) -> "VisualizerConfig":
        return cls(
            width=args.width,
            height=args.height,
            generator=args.generator,
            solver=args.solver,
            seed=args.seed,
            loop=args.loop,
            game=args.game,
        )
