from array import array
from typing import Iterator, Tuple

import numpy as np

from maze_trace.core.errors import OutOfBounds, InvalidDimensions

Coord = Tuple[int, int]

class Grid:
    # Cell States
    WALL    = 0
    PATH    = 1
    START   = 2
    END     = 3
    VISITED = 4

    STATES = (WALL, PATH, START, END, VISITED)

    # Text form used by render() and the golden files
    SYMBOLS = {WALL: '#', PATH: '.', START: 'S', END: 'E', VISITED: 'o'}

    __slots__ = ('width', 'height', 'cells')

    def __init__(self, width: int, height: int):
        if width < 1 or height < 1:
            raise InvalidDimensions(f"Grid must be at least 1x1, got {width}x{height}")
        self.width = width
        self.height = height
        # Every cell starts as a wall
        # using 'B' (unsigned char) -> 1 byte per cell
        self.cells = array('B', [self.WALL] * (width * height))

    @classmethod
    def create(cls, width: int, height: int) -> "Grid":
        return cls(width, height)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_index(self, x: int, y: int) -> int:
        if 0 <= x < self.width and 0 <= y < self.height:
            return y * self.width + x
        raise OutOfBounds(x, y, self.width, self.height)

    def get(self, x: int, y: int) -> int:
        return self.cells[self.get_index(x, y)]

    def set(self, x: int, y: int, state: int):
        if state not in self.STATES:
            raise ValueError(f"Unknown cell state {state!r}")
        self.cells[self.get_index(x, y)] = state

    def mark_visited(self, x: int, y: int) -> bool:
        # Only plain path cells change; Start and End keep their identity
        idx = self.get_index(x, y)
        if self.cells[idx] == self.PATH:
            self.cells[idx] = self.VISITED
            return True
        return False

    def is_open(self, x: int, y: int) -> bool:
        """True for any cell a search may stand on (everything but walls)."""
        return self.get(x, y) != self.WALL

    def find(self, state: int) -> Iterator[Coord]:
        """Yields (x, y) for every cell currently in 'state', row by row."""
        for idx, val in enumerate(self.cells):
            if val == state:
                yield (idx % self.width, idx // self.width)

    def count(self, state: int) -> int:
        return self.cells.count(state)

    def clear_visited(self) -> int:
        """Turns every Visited cell back into Path. Returns how many were reset."""
        reset = 0
        for idx, val in enumerate(self.cells):
            if val == self.VISITED:
                self.cells[idx] = self.PATH
                reset += 1
        return reset

    def copy(self) -> "Grid":
        clone = Grid(self.width, self.height)
        clone.cells = array('B', self.cells)
        return clone

    def snapshot(self) -> np.ndarray:
        """
        Read-only (height, width) uint8 copy of the cell states.
        Presentation code reads this instead of the live grid so a running
        search never writes underneath it.
        """
        view = np.frombuffer(self.cells.tobytes(), dtype=np.uint8).reshape(self.height, self.width)
        view = view.copy()
        view.setflags(write=False)
        return view

    def render(self) -> str:
        rows = []
        for y in range(self.height):
            row = self.cells[y * self.width:(y + 1) * self.width]
            rows.append(''.join(self.SYMBOLS[val] for val in row))
        return '\n'.join(rows)

    @classmethod
    def from_text(cls, text: str) -> "Grid":
        """Inverse of render(). Handy for hand-built test mazes."""
        lookup = {sym: state for state, sym in cls.SYMBOLS.items()}
        lines = [line for line in text.strip().splitlines() if line.strip()]
        grid = cls(len(lines[0]), len(lines))
        for y, line in enumerate(lines):
            if len(line) != grid.width:
                raise InvalidDimensions(f"Row {y} has {len(line)} cells, expected {grid.width}")
            for x, sym in enumerate(line):
                grid.set(x, y, lookup[sym])
        return grid
