import struct
from dataclasses import dataclass
from typing import Iterator, Tuple, Union

# Terminal Statuses
FOUND = "found"
EXHAUSTED = "exhausted"

# Trace Record Types
EVT_VISIT = 0x01
EVT_GOAL = 0x02
EVT_FINISH = 0x03

# Status <-> byte for EVT_FINISH records
_STATUS_CODES = {FOUND: 1, EXHAUSTED: 2}
_CODE_STATUS = {v: k for k, v in _STATUS_CODES.items()}


@dataclass(frozen=True)
class VisitEvent:
    """A cell discovered by a search. is_goal is set for the End cell."""
    x: int
    y: int
    is_goal: bool = False

    @property
    def coord(self) -> Tuple[int, int]:
        return (self.x, self.y)


@dataclass(frozen=True)
class FinishEvent:
    status: str


Event = Union[VisitEvent, FinishEvent]


class EventWriter:
    """
    Records a session's event stream to a compact binary log so a search
    can be replayed step by step later.
    Layout: MAGIC "MAZETRACE" + Width (4b) + Height (4b), then records.
    """
    MAGIC = b"MAZETRACE"
    # Coordinates are packed as unsigned shorts
    MAX_SIDE = 0xFFFF + 1

    def __init__(self, filename: str):
        self.filename = filename
        self.file = open(filename, "wb")
        self.record_count = 0

    def write_header(self, width: int, height: int):
        if not (0 < width <= self.MAX_SIDE and 0 < height <= self.MAX_SIDE):
            raise ValueError(f"Trace logs hold grids up to {self.MAX_SIDE}x{self.MAX_SIDE}, got {width}x{height}")
        self.file.write(self.MAGIC)
        self.file.write(struct.pack(">II", width, height))

    def log_visit(self, x: int, y: int, is_goal: bool = False):
        # 1 byte type + 2b X + 2b Y
        code = EVT_GOAL if is_goal else EVT_VISIT
        self.file.write(struct.pack(">BHH", code, x, y))
        self.record_count += 1

    def log_finish(self, status: str):
        self.file.write(struct.pack(">BB", EVT_FINISH, _STATUS_CODES[status]))
        self.record_count += 1

    def handle(self, event: Event):
        """Sink usable directly as a scheduler on_event callback."""
        if isinstance(event, VisitEvent):
            self.log_visit(event.x, event.y, event.is_goal)
        else:
            self.log_finish(event.status)

    def close(self):
        if self.file:
            self.file.close()
            self.file = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class EventReader:
    def __init__(self, filename: str):
        self.filename = filename
        self.file = open(filename, "rb")
        self.width = 0
        self.height = 0

    def read_header(self) -> Tuple[int, int]:
        magic = self.file.read(len(EventWriter.MAGIC))
        if magic != EventWriter.MAGIC:
            raise ValueError("Invalid trace log file")
        data = self.file.read(8)
        self.width, self.height = struct.unpack(">II", data)
        return self.width, self.height

    def stream_events(self) -> Iterator[Event]:
        while True:
            type_byte = self.file.read(1)
            if not type_byte:
                break

            type_code = ord(type_byte)

            if type_code in (EVT_VISIT, EVT_GOAL):
                x, y = struct.unpack(">HH", self.file.read(4))
                yield VisitEvent(x, y, is_goal=(type_code == EVT_GOAL))

            elif type_code == EVT_FINISH:
                code = ord(self.file.read(1))
                yield FinishEvent(_CODE_STATUS[code])

            else:
                raise ValueError(f"Unknown record type 0x{type_code:02x}")

    def close(self):
        if self.file:
            self.file.close()
            self.file = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
