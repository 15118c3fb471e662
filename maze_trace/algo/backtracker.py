import logging
from typing import Iterator, List, Tuple
from maze_trace.core.grid import Grid
from maze_trace.core.errors import InvalidDimensions
from maze_trace.algo.base import Generator

logger = logging.getLogger(__name__)

MIN_SIZE = 3

class RecursiveBacktracker(Generator):
    """
    Carves a perfect maze into an all-wall grid, two cells per move, starting
    at (1,1). Carved cells sit on odd coordinates and the walls between them
    are knocked out on the way, so every Path cell hangs off one spanning tree.

    The recursion is unrolled onto an explicit stack of
    (x, y, remaining directions) so large grids never hit the interpreter's
    recursion limit. Each frame gets its own freshly shuffled direction list.
    """
    # +x, +y, -x, -y
    DIRECTIONS = ((1, 0), (0, 1), (-1, 0), (0, -1))

    def __init__(self, grid: Grid, seed: int = None, rng=None, bridge_exits: bool = False):
        super().__init__(grid, seed, rng)
        self.bridge_exits = bridge_exits

    @property
    def start(self) -> Tuple[int, int]:
        return (0, 1)

    @property
    def end(self) -> Tuple[int, int]:
        return (self.grid.width - 1, self.grid.height - 2)

    def _shuffled_directions(self) -> Iterator[Tuple[int, int]]:
        directions = list(self.DIRECTIONS)
        self.rng.shuffle(directions)
        return iter(directions)

    def _is_cell_valid(self, x: int, y: int) -> bool:
        return self.grid.in_bounds(x, y) and not self.grid.is_open(x, y)

    def run(self) -> Iterator[str]:
        grid = self.grid

        start_x, start_y = 1, 1
        if grid.in_bounds(start_x, start_y):
            grid.set(start_x, start_y, Grid.PATH)
            stack: List[Tuple[int, int, Iterator[Tuple[int, int]]]] = [
                (start_x, start_y, self._shuffled_directions())
            ]
        else:
            stack = []

        while stack:
            cx, cy, directions = stack[-1]

            # Resume this frame's direction iterator where it left off
            for dx, dy in directions:
                nx, ny = cx + dx * 2, cy + dy * 2
                if self._is_cell_valid(nx, ny):
                    grid.set(cx + dx, cy + dy, Grid.PATH)
                    grid.set(nx, ny, Grid.PATH)
                    stack.append((nx, ny, self._shuffled_directions()))
                    self.step_count += 1

                    if self.step_count % 100 == 0:
                        yield f"Carving... Stack: {len(stack)}"
                    break
            else:
                # Backtrack
                stack.pop()

        self.place_exits()
        yield "Done"

    def place_exits(self):
        """
        Unconditional override of the two border cells. Depending on the grid
        parity the end may not touch any carved cell, in which case a search
        ends Exhausted.
        """
        grid = self.grid
        sx, sy = self.start
        ex, ey = self.end
        grid.set(sx, sy, Grid.START)
        grid.set(ex, ey, Grid.END)

        if self.bridge_exits and grid.in_bounds(ex - 1, ey) and grid.get(ex - 1, ey) == Grid.WALL:
            grid.set(ex - 1, ey, Grid.PATH)


def generate_maze(width: int = 20, height: int = 20, seed: int = None, rng=None,
                  bridge_exits: bool = False) -> Grid:
    """Builds a fresh grid and carves it to completion in one synchronous call."""
    if width < MIN_SIZE or height < MIN_SIZE:
        raise InvalidDimensions(f"Maze must be at least {MIN_SIZE}x{MIN_SIZE}, got {width}x{height}")

    grid = Grid.create(width, height)
    algo = RecursiveBacktracker(grid, seed=seed, rng=rng, bridge_exits=bridge_exits)
    algo.run_all()
    logger.debug("Generated %dx%d maze (seed=%s, %d carve steps)", width, height, seed, algo.step_count)
    return grid
