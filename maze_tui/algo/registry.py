import random
from typing import Dict, Tuple, Type

from maze_tui.algo.base import Generator, Solver
from maze_tui.algo.dfs import RecursiveBacktracker
from maze_tui.algo.division import RecursiveDivision
from maze_tui.algo.kruskal import KruskalsAlgorithm
from maze_tui.algo.prim import PrimsAlgorithm
from maze_tui.algo.solvers import BFS, AStar, DepthFirstSearch, Dijkstra

GENERATORS: Dict[str, Type[Generator]] = {
    "backtrack": RecursiveBacktracker,
    "prim": PrimsAlgorithm,
    "kruskal": KruskalsAlgorithm,
    "division": RecursiveDivision,
}

SOLVERS: Dict[str, Type[Solver]] = {
    "dfs": DepthFirstSearch,
    "bfs": BFS,
    "dijkstra": Dijkstra,
    "astar": AStar,
}


def random_pairing(rng: random.Random) -> Tuple[str, str]:
    """Picks a (generator, solver) name pair; sorted keys keep it seed-stable."""
    return rng.choice(sorted(GENERATORS)), rng.choice(sorted(SOLVERS))
