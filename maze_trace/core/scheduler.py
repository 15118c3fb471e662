import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Tuple

from maze_trace.core.events import Event, VisitEvent, FinishEvent
from maze_trace.algo.search import CANCELLED as STEP_CANCELLED

logger = logging.getLogger(__name__)

# Handle States
RUNNING = "running"
FINISHED = "finished"
CANCELLED = "cancelled"


class MonotonicClock:
    """Wall clock in milliseconds."""
    def now(self) -> float:
        return time.monotonic() * 1000.0

    def sleep(self, ms: float):
        if ms > 0:
            time.sleep(ms / 1000.0)


class ManualClock:
    """Fake clock for tests and frame loops: time only moves when told to."""
    def __init__(self, start: float = 0.0):
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, ms: float):
        self.current += ms

    def sleep(self, ms: float):
        self.advance(ms)


class SessionHandle:
    """What the caller holds on to for a running search: status and cancel()."""

    def __init__(self, scheduler: "StepScheduler", session, on_event: Callable[[Event], None], tick_delay_ms: float):
        self.scheduler = scheduler
        self.session = session
        self.on_event = on_event
        self.tick_delay_ms = tick_delay_ms
        self.state = RUNNING
        self.final_status: Optional[str] = None
        self.ticks = 0

    @property
    def cancelled(self) -> bool:
        return self.state == CANCELLED

    @property
    def active(self) -> bool:
        return self.state == RUNNING

    def cancel(self):
        self.scheduler.cancel(self)


class StepScheduler:
    """
    Cooperative driver: one step() per tick, the next tick queued tick_delay_ms
    later only while the search keeps expanding. Nothing runs on its own;
    ticks fire from pump() or run_until_complete(), so everything stays on
    the caller's thread.

    One scheduler drives one session at a time. Starting a new run cancels
    whatever was in flight.
    """

    def __init__(self, clock=None):
        self.clock = clock if clock is not None else MonotonicClock()
        # Heap of (due_ms, seq, handle); seq keeps issuance order for equal due times
        self._timers: List[Tuple[float, int, SessionHandle]] = []
        self._seq = itertools.count()
        self.current: Optional[SessionHandle] = None

    @property
    def pending(self) -> int:
        return len(self._timers)

    def run(self, session, on_event: Callable[[Event], None], tick_delay_ms: float = 100) -> SessionHandle:
        if self.current is not None and self.current.active:
            logger.debug("Cancelling in-flight session before starting a new one")
            self.cancel(self.current)

        handle = SessionHandle(self, session, on_event, tick_delay_ms)
        self.current = handle
        self._tick(handle)
        return handle

    def cancel(self, handle: SessionHandle):
        """Idempotent. Drops any queued tick for the handle."""
        if handle.state != RUNNING:
            return
        handle.state = CANCELLED
        handle.session.cancel()
        self._timers = [t for t in self._timers if t[2] is not handle]
        heapq.heapify(self._timers)
        logger.debug("Session cancelled after %d ticks", handle.ticks)

    def pump(self) -> int:
        """Fires every tick due at the clock's current time. Returns how many ran."""
        fired = 0
        now = self.clock.now()
        while self._timers and self._timers[0][0] <= now:
            _, _, handle = heapq.heappop(self._timers)
            if handle.state != RUNNING:
                continue
            self._tick(handle)
            fired += 1
        return fired

    def run_until_complete(self, handle: SessionHandle) -> Optional[str]:
        """Sleeps on the clock between ticks until the handle stops running."""
        while handle.active and self._timers:
            due = self._timers[0][0]
            wait = due - self.clock.now()
            if wait > 0:
                self.clock.sleep(wait)
            self.pump()
        return handle.final_status

    def _schedule(self, handle: SessionHandle):
        due = self.clock.now() + handle.tick_delay_ms
        heapq.heappush(self._timers, (due, next(self._seq), handle))

    def _dispatch(self, handle: SessionHandle, event: Event) -> bool:
        # The sink may cancel from inside the callback
        if handle.state == CANCELLED:
            return False
        handle.on_event(event)
        return handle.state != CANCELLED

    def _tick(self, handle: SessionHandle):
        session = handle.session
        result = session.engine.step(session)
        if result.kind == STEP_CANCELLED:
            # Session was cancelled directly rather than through the handle
            self.cancel(handle)
            return
        handle.ticks += 1

        for coord in result.discovered:
            is_goal = result.terminal and coord == result.cell
            if not self._dispatch(handle, VisitEvent(coord[0], coord[1], is_goal)):
                return

        if result.terminal:
            handle.state = FINISHED
            handle.final_status = result.kind
            logger.debug("Session finished: %s after %d ticks", result.kind, handle.ticks)
            handle.on_event(FinishEvent(result.kind))
        elif handle.state == RUNNING:
            self._schedule(handle)
