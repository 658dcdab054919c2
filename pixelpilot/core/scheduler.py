"""
Scheduler abstraction for simulated latency.

Every delayed side effect in Pixel Pilot (OTP dispatch, resend, assistant
replies, debounce and throttle timers) goes through ``schedule_after`` so
the same engine code runs on a real event loop or on a virtual clock.
"""

import asyncio
import heapq
import itertools
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from loguru import logger

Callback = Callable[[], None]


class TimerHandle(ABC):
    """Handle to a scheduled callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Cancel the callback. Safe to call more than once."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """True while the callback is still due to run."""


class Scheduler(ABC):
    """
    Abstract clock plus delayed-callback queue.

    Implementations:
    - AsyncioScheduler: real time on the running asyncio loop
    - ManualScheduler: virtual time advanced explicitly (tests, replays)
    """

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""

    @abstractmethod
    def schedule_after(self, delay: float, callback: Callback) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""


# =============================================================================
# ASYNCIO
# =============================================================================


class _AsyncioTimerHandle(TimerHandle):
    def __init__(self) -> None:
        self._handle: asyncio.TimerHandle | None = None
        self._done = False

    def cancel(self) -> None:
        if self._handle is not None and not self._done:
            self._handle.cancel()
        self._done = True

    @property
    def active(self) -> bool:
        return not self._done


class AsyncioScheduler(Scheduler):
    """
    Scheduler backed by ``loop.call_later``.

    Usage:
        scheduler = AsyncioScheduler()
        scheduler.schedule_after(2.0, on_otp_sent)
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """Get the bound loop, falling back to the running one."""
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.monotonic()

    def schedule_after(self, delay: float, callback: Callback) -> TimerHandle:
        handle = _AsyncioTimerHandle()

        def _run() -> None:
            if handle._done:
                return
            handle._done = True
            callback()

        handle._handle = self.loop.call_later(max(0.0, delay), _run)
        return handle


# =============================================================================
# VIRTUAL CLOCK
# =============================================================================


class _ManualTimerHandle(TimerHandle):
    def __init__(self, due: float, callback: Callback, on_cancel: Callback) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False
        self._on_cancel = on_cancel

    def cancel(self) -> None:
        if self.active:
            self.cancelled = True
            self._on_cancel()

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class ManualScheduler(Scheduler):
    """
    Virtual-clock scheduler.

    Time only moves when ``advance`` is called. Callbacks fire in due-time
    order, first-scheduled first on ties, including callbacks scheduled by
    other callbacks while advancing.

    Example:
        >>> scheduler = ManualScheduler()
        >>> fired = []
        >>> _ = scheduler.schedule_after(1.0, lambda: fired.append("x"))
        >>> scheduler.advance(1.0)
        1
        >>> fired
        ['x']
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, _ManualTimerHandle]] = []
        self._sequence = itertools.count()
        self._live = 0

    def now(self) -> float:
        return self._now

    def schedule_after(self, delay: float, callback: Callback) -> TimerHandle:
        handle = _ManualTimerHandle(self._now + max(0.0, delay), callback, self._on_cancel)
        heapq.heappush(self._queue, (handle.due, next(self._sequence), handle))
        self._live += 1
        return handle

    @property
    def pending(self) -> int:
        """Number of callbacks still due to run."""
        return self._live

    @property
    def queued(self) -> int:
        """Heap entries, cancelled ones not yet discarded included."""
        return len(self._queue)

    def _on_cancel(self) -> None:
        self._live -= 1
        # Cancelled entries may make up at most half the heap
        if len(self._queue) > 2 * self._live:
            self._queue = [entry for entry in self._queue if entry[2].active]
            heapq.heapify(self._queue)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every callback that becomes due.

        Args:
            seconds: Amount of virtual time to elapse.

        Returns:
            Number of callbacks fired.
        """
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")

        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self._now = max(self._now, due)
            handle.fired = True
            self._live -= 1
            handle.callback()
            fired += 1

        self._now = target
        if fired:
            logger.debug(f"Virtual clock at {self._now:.3f}s, fired {fired} callback(s)")
        return fired

    def run_all(self) -> int:
        """Advance until no callbacks remain."""
        fired = 0
        while self._live:
            while not self._queue[0][2].active:
                heapq.heappop(self._queue)
            fired += self.advance(max(0.0, self._queue[0][0] - self._now))
        return fired
