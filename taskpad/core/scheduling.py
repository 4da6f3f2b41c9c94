from __future__ import annotations

"""Cooperative timers for a single-threaded event loop.

The engine never sleeps or spawns threads. Anything time-based (debounced
persistence writes, the sync settle guard, auto-scroll frames) goes through a
:class:`Scheduler`, which the host maps onto its event loop: Tk's ``after``
in the desktop app (see :mod:`taskpad.ui.tk_scheduler`), or the virtual clock
of :class:`ManualScheduler` in headless use and tests.
"""

import heapq
import itertools
import logging
from typing import Any, Callable, List, Optional, Protocol, Tuple

__all__ = ["Scheduler", "ManualScheduler", "Debouncer"]

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Minimal timer interface consumed by the engine."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        """Run ``callback`` once after ``delay`` seconds; return a cancel handle."""
        ...

    def cancel(self, handle: Any) -> None:
        """Cancel a pending callback; unknown or fired handles are ignored."""
        ...


class ManualScheduler:
    """Deterministic scheduler driven by :meth:`advance`.

    Callbacks fire in due-time order (ties in scheduling order) as the virtual
    clock passes their due time. Callbacks may schedule further callbacks; a
    callback scheduled with zero delay during ``advance`` fires in the same call.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, Callable[[], None]]] = []
        self._cancelled: set[int] = set()

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return sum(1 for _, seq, _ in self._queue if seq not in self._cancelled)

    def call_later(self, delay: float, callback: Callable[[], None]) -> int:
        handle = next(self._seq)
        heapq.heappush(self._queue, (self._now + max(0.0, delay), handle, callback))
        return handle

    def cancel(self, handle: Any) -> None:
        if isinstance(handle, int):
            self._cancelled.add(handle)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due callbacks; returns how many fired."""
        target = self._now + max(0.0, seconds)
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, handle, callback = heapq.heappop(self._queue)
            if handle in self._cancelled:
                self._cancelled.discard(handle)
                continue
            self._now = due
            callback()
            fired += 1
        self._now = target
        return fired


class Debouncer:
    """Coalesce rapid calls into one trailing call after ``delay`` seconds.

    Each :meth:`call` cancels the pending invocation and restarts the window
    with the latest arguments. :meth:`flush` runs the pending call now.
    """

    def __init__(self, scheduler: Scheduler, delay: float, func: Callable[..., None]) -> None:
        self._scheduler = scheduler
        self._delay = delay
        self._func = func
        self._handle: Any = None
        self._args: Optional[Tuple[Any, ...]] = None

    @property
    def pending(self) -> bool:
        return self._args is not None

    def call(self, *args: Any) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
        self._args = args
        self._handle = self._scheduler.call_later(self._delay, self._fire)

    def flush(self) -> None:
        if self._args is None:
            return
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
        self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
        self._handle = None
        self._args = None

    def _fire(self) -> None:
        args = self._args
        self._handle = None
        self._args = None
        if args is None:
            return
        try:
            self._func(*args)
        except Exception:
            # The receiver is an external collaborator; keep the engine alive.
            logger.error("Debounced call to %r failed", self._func, exc_info=True)
