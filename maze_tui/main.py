import argparse
import sys
import os
import logging
import time

# Ensure project root is in path so we can import 'maze_tui' package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from maze_tui.algo.registry import GENERATORS, SOLVERS
from maze_tui.core.config import VisualizerConfig
from maze_tui.core.errors import TerminalIOError
from maze_tui.core.grid import Grid

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool, log_file: str = None, interactive: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    if log_file:
        handlers = [logging.FileHandler(log_file)]
    elif interactive:
        # The terminal belongs to the painter
        handlers = [logging.NullHandler()]
    else:
        handlers = [logging.StreamHandler(sys.stderr)]
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt='%H:%M:%S', handlers=handlers)


def grid_side(value: str) -> int:
    side = int(value)
    if not 1 <= side <= Grid.MAX_SIDE:
        raise argparse.ArgumentTypeError(f"must be between 1 and {Grid.MAX_SIDE}, got {side}")
    return side


CONTROLS = """\
visualizer keys:
  space, enter   pause or resume; leave history browsing
  left, right    step back or forward through history
  up, down       faster or slower playback
  l              toggle loop mode
  r              restart with a new seed
  esc            cancel the run (exits when nothing is running)
  q, ctrl-c      quit

game keys (--game):
  arrows, wasd   move
  enter          next game
  esc, q         exit
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Maze TUI: watch maze generators and solvers at work",
                                     epilog=CONTROLS, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--width", type=grid_side, default=None, help="Maze width in cells (default: fit terminal)")
    parser.add_argument("--height", type=grid_side, default=None, help="Maze height in cells (default: fit terminal)")
    parser.add_argument("--generator", type=str, default="backtrack", choices=sorted(GENERATORS), help="Generation algorithm")
    parser.add_argument("--solver", type=str, default="bfs", choices=sorted(SOLVERS), help="Solver algorithm")
    parser.add_argument("--seed", type=int, default=None, help="Random Seed")
    parser.add_argument("--loop", action="store_true", help="Keep running random algorithm pairings")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--headless", action="store_true", help="Run generator and solver without a terminal UI")
    mode.add_argument("--game", action="store_true", help="Play: reach the bottom-right corner before time runs out")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--log-file", type=str, default=None, help="Write log records to this file")
    return parser


def run_headless(config: VisualizerConfig) -> int:
    logger = logging.getLogger("maze_tui")
    width = config.width or 20
    height = config.height or 20
    grid = Grid(width, height, seed=config.seed)

    logger.info(f"Generating {width}x{height} maze with {config.generator}...")
    start = time.time()
    generator = GENERATORS[config.generator](grid)
    gen_events = len(generator.run_all())
    logger.info(f"Generation complete in {time.time() - start:.4f}s ({gen_events} events)")

    logger.info(f"Solving with {config.solver}...")
    start = time.time()
    solver = SOLVERS[config.solver](grid)
    solve_events = len(solver.run_all())
    logger.info(f"Solving complete in {time.time() - start:.4f}s ({solve_events} events)")

    print(f"Events: {gen_events + solve_events} (generation {gen_events}, solving {solve_events})")
    if solver.reached:
        print(f"Path length: {len(solver.path)} cells, {solver.visited_count} visited")
    else:
        print("No path found")
    return 0


def run_interactive(config: VisualizerConfig) -> int:
    from maze_tui.engine.game import GameSession
    from maze_tui.engine.orchestrator import Orchestrator
    from maze_tui.viz.painter import RichPainter
    from maze_tui.viz.terminal import TerminalSession

    logger = logging.getLogger("maze_tui")
    painter = RichPainter()
    session = TerminalSession(painter)
    try:
        with session:
            if config.game:
                return GameSession(config, painter, session).run()
            return Orchestrator(config, painter, session).run()
    except TerminalIOError as e:
        session.restore()
        logger.error(f"Terminal error: {e}")
        print(f"maze-tui: {e}", file=sys.stderr)
        return 1


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file, interactive=not args.headless)
    config = VisualizerConfig.from_args(args)

    if args.headless:
        return run_headless(config)
    return run_interactive(config)


if __name__ == "__main__":
    sys.exit(main())
