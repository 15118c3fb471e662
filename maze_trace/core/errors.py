class MazeError(Exception):
    """Base class for all maze_trace failures."""


class OutOfBounds(MazeError, IndexError):
    def __init__(self, x: int, y: int, width: int, height: int):
        super().__init__(f"Coordinate ({x}, {y}) out of bounds for {width}x{height} grid")
        self.x = x
        self.y = y


class InvalidStart(MazeError, ValueError):
    pass


class InvalidDimensions(MazeError, ValueError):
    pass
