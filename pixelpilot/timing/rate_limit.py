"""
Debounce and throttle wrappers for user-driven triggers.

Both run on an injected Scheduler and can be torn down with ``cancel()``
or by using them as context managers, so nothing fires after the owner
is gone.
"""

from collections.abc import Callable
from functools import update_wrapper
from typing import Any

from loguru import logger

from pixelpilot.core.scheduler import Scheduler, TimerHandle


class _RateLimited:
    """Shared pending-call bookkeeping."""

    def __init__(self, fn: Callable[..., Any], delay: float, scheduler: Scheduler):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.fn = fn
        self.delay = delay
        self.scheduler = scheduler
        self._timer: TimerHandle | None = None
        self._args: tuple[Any, ...] | None = None
        self._kwargs: dict[str, Any] = {}
        self._closed = False
        update_wrapper(self, fn, updated=())

    @property
    def pending(self) -> bool:
        """True while an invocation is scheduled."""
        return self._timer is not None and self._timer.active

    def cancel(self):
        """Drop any pending invocation."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._args = None
        self._kwargs = {}

    def close(self):
        """Cancel and refuse further calls."""
        self.cancel()
        self._closed = True

    def flush(self) -> Any:
        """Run the pending invocation now, if any."""
        if not self.pending:
            return None
        self._timer.cancel()
        return self._fire()

    def _fire(self) -> Any:
        self._timer = None
        if self._args is None:
            return None
        args, kwargs = self._args, self._kwargs
        self._args = None
        self._kwargs = {}
        return self.fn(*args, **kwargs)

    def _remember(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> bool:
        if self._closed:
            logger.debug(f"Ignoring call to closed {type(self).__name__} for {self.fn!r}")
            return False
        self._args = args
        self._kwargs = kwargs
        return True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class Debounced(_RateLimited):
    """
    Calls ``fn`` with the last arguments once ``delay`` seconds pass
    without another call.

    Usage:
        search = Debounced(apply_filter, 0.3, scheduler)
        search("p"); search("pi"); search("pix")  # apply_filter("pix") once
    """

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        if not self._remember(args, kwargs):
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self.scheduler.schedule_after(self.delay, self._fire)


class Throttled(_RateLimited):
    """
    Calls ``fn`` at most once per ``delay`` window, on the trailing edge,
    with the most recent arguments seen during the window.

    Only one invocation is ever pending; calls made while it is pending
    just replace its arguments.
    """

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        if not self._remember(args, kwargs):
            return
        if self._timer is None or not self._timer.active:
            self._timer = self.scheduler.schedule_after(self.delay, self._fire)


def debounce(fn: Callable[..., Any], delay: float, scheduler: Scheduler) -> Debounced:
    """Wrap ``fn`` so bursts of calls collapse into the last one."""
    return Debounced(fn, delay, scheduler)


def throttle(fn: Callable[..., Any], delay: float, scheduler: Scheduler) -> Throttled:
    """Wrap ``fn`` so it runs at most once per ``delay`` seconds."""
    return Throttled(fn, delay, scheduler)
