import logging
from abc import ABC, abstractmethod
from array import array
from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from maze_trace.core.grid import Grid, Coord
from maze_trace.core.errors import InvalidStart
from maze_trace.core.events import FOUND, EXHAUSTED

logger = logging.getLogger(__name__)

# Step Outcomes
EXPANDED = "expanded"
GOAL_FOUND = FOUND
CANCELLED = "cancelled"

BFS = "bfs"
DFS = "dfs"


@dataclass(frozen=True)
class StepResult:
    """
    Outcome of one tick.
    kind:       EXPANDED, GOAL_FOUND, EXHAUSTED or CANCELLED
    cell:       the coordinate taken off the frontier (EXPANDED), the End
                cell (GOAL_FOUND), or None (EXHAUSTED, CANCELLED)
    discovered: cells first seen during this tick, in discovery order
    """
    kind: str
    cell: Optional[Coord] = None
    discovered: Tuple[Coord, ...] = ()

    @property
    def terminal(self) -> bool:
        return self.kind != EXPANDED


class TraversalSession:
    """State of one search run: frontier, visited set and parent links."""

    def __init__(self, engine: "SearchEngine", grid: Grid, start: Coord):
        self.engine = engine
        self.grid = grid
        self.start = start
        self.frontier = engine.new_frontier()
        self.frontier.append(start)
        self.visited: Set[Coord] = {start}
        # Dense parent array: 0 = none, otherwise index into DIRECTIONS + 1
        # pointing from the child back towards its parent
        self.parents = array('B', [0] * (grid.width * grid.height))
        self.ticks = 0
        self.goal: Optional[Coord] = None
        self.result: Optional[StepResult] = None
        self.cancelled = False

    @property
    def finished(self) -> bool:
        return self.result is not None

    @property
    def status(self) -> Optional[str]:
        return self.result.kind if self.result else None

    def cancel(self):
        self.cancelled = True

    def path(self) -> List[Coord]:
        """Start-to-goal path through the parent links, empty if no goal was reached."""
        if self.goal is None:
            return []

        path = [self.goal]
        curr = self.goal
        while curr != self.start:
            link = self.parents[self.grid.get_index(*curr)]
            if link == 0:
                break
            dx, dy = SearchEngine.DIRECTIONS[link - 1]
            curr = (curr[0] - dx, curr[1] - dy)
            path.append(curr)
        path.reverse()
        return path


class SearchEngine(ABC):
    """
    Shared traversal skeleton. Subclasses only choose which end of the
    frontier the next cell comes from.
    """
    name = "search"

    # Fixed check order: +y, +x, -y, -x
    DIRECTIONS = ((0, 1), (1, 0), (0, -1), (-1, 0))

    def new_frontier(self):
        return deque()

    @abstractmethod
    def take(self, frontier) -> Coord:
        pass

    def start(self, grid: Grid, start: Coord, clear: bool = True) -> TraversalSession:
        x, y = start
        if not grid.in_bounds(x, y) or not grid.is_open(x, y):
            raise InvalidStart(f"Cannot start a search from {start}: not an open cell")

        if clear:
            grid.clear_visited()

        logger.debug("%s session started at %s on %dx%d grid", self.name, start, grid.width, grid.height)
        return TraversalSession(self, grid, start)

    def step(self, session: TraversalSession) -> StepResult:
        """
        One frontier removal plus its neighbour expansion. Once a session has
        finished, the terminal result is returned again unchanged. A cancelled
        session ends CANCELLED and never touches the grid again.
        """
        if session.result is not None:
            return session.result

        if session.cancelled:
            session.result = StepResult(CANCELLED)
            logger.debug("%s step refused: session cancelled after %d ticks", self.name, session.ticks)
            return session.result

        session.ticks += 1
        if not session.frontier:
            session.result = StepResult(EXHAUSTED)
            logger.debug("%s exhausted after %d ticks (%d cells discovered)",
                         self.name, session.ticks, len(session.visited))
            return session.result

        grid = session.grid
        visited = session.visited
        cx, cy = self.take(session.frontier)
        discovered = []

        for link, (dx, dy) in enumerate(self.DIRECTIONS, start=1):
            nx, ny = cx + dx, cy + dy
            if not grid.in_bounds(nx, ny) or (nx, ny) in visited:
                continue

            state = grid.get(nx, ny)
            if state != Grid.PATH and state != Grid.END:
                continue

            visited.add((nx, ny))
            session.parents[grid.get_index(nx, ny)] = link
            grid.mark_visited(nx, ny)
            discovered.append((nx, ny))

            if state == Grid.END:
                # Short-circuit: remaining neighbours are left undiscovered
                session.goal = (nx, ny)
                session.result = StepResult(GOAL_FOUND, (nx, ny), tuple(discovered))
                logger.debug("%s found goal %s after %d ticks", self.name, session.goal, session.ticks)
                return session.result

            session.frontier.append((nx, ny))

        return StepResult(EXPANDED, (cx, cy), tuple(discovered))

    def run_to_end(self, session: TraversalSession) -> StepResult:
        """Steps without pacing until a terminal result."""
        result = self.step(session)
        while not result.terminal:
            result = self.step(session)
        return result


class BreadthFirstSearch(SearchEngine):
    """FIFO frontier: level-order expansion, finds a shortest path."""
    name = BFS

    def take(self, frontier) -> Coord:
        return frontier.popleft()


class DepthFirstSearch(SearchEngine):
    """LIFO frontier: finds some path, not necessarily the shortest."""
    name = DFS

    def take(self, frontier) -> Coord:
        return frontier.pop()


ENGINES = {
    BFS: BreadthFirstSearch,
    DFS: DepthFirstSearch,
}


def start_search(kind: str, grid: Grid, start: Coord, clear: bool = True) -> TraversalSession:
    try:
        engine = ENGINES[kind]()
    except KeyError:
        raise ValueError(f"Unknown search kind {kind!r}, expected one of {sorted(ENGINES)}") from None
    return engine.start(grid, start, clear=clear)
