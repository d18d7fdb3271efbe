"""Single-threaded reactor driven by polling.

The :class:`ReactorPort` protocol is everything the time advancer needs
from an event loop: a non-blocking ``poll_once()`` plus ``is_stopped()``
and ``reset()``.  :class:`Reactor` is a small built-in implementation
whose timers are scheduled against a :class:`~timewarp.ClockProvider`,
so installing virtual clocks makes its deadlines virtual too.

Polling semantics follow the classic io_service model:

- ``poll_once()`` runs every callback that is ready *now* — queued
  ``call_soon`` work and timers whose deadline has been reached — plus
  any work that becomes ready while those callbacks run.  It never
  waits.
- Timers run in non-decreasing deadline order; equal deadlines run in
  registration order.
- A poll that leaves no outstanding work marks the reactor stopped.
  Callers that keep scheduling (the time advancer) call ``reset()``
  before the next poll.
- An exception raised by a callback propagates out of ``poll_once()``
  immediately.  Work that had not run yet stays queued.

A lazily created process-wide instance is available through
:func:`get_global_reactor`; :func:`reset_global_reactor` discards it so
each test starts with an empty reactor.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Protocol, runtime_checkable

from timewarp._clock import ClockProvider, clock_provider
from timewarp._errors import InvalidArgumentError, ReactorClosedError

logger = logging.getLogger(__name__)

# Rebuild the timer heap once this many cancelled timers sit in it and
# they make up more than half of it.
_MIN_CANCELLED_TIMERS_TO_COMPACT = 100


@runtime_checkable
class ReactorPort(Protocol):
    """The slice of an event loop driven by the time advancer."""

    def is_stopped(self) -> bool: ...

    def reset(self) -> None: ...

    def poll_once(self) -> None:
        """Run all currently ready work without blocking."""
        ...


class Cancellable(Protocol):
    def cancel(self) -> None: ...


@runtime_checkable
class SchedulingReactorPort(ReactorPort, Protocol):
    """A reactor that can also schedule timers and be stopped."""

    def call_later(
        self,
        delay: timedelta,
        callback: Callable[..., Any],
        *args: Any,
    ) -> Cancellable: ...

    def stop(self) -> None: ...


@dataclass(eq=False)
class TimerHandle:
    """A scheduled callback.

    Attributes:
        when: Steady-clock deadline, or ``None`` for ``call_soon`` work.
        callback: Callable invoked with ``*args`` when the handle runs.
    """

    when: timedelta | None
    callback: Callable[..., Any]
    args: tuple[Any, ...] = ()
    _cancelled: bool = field(default=False, repr=False)
    # Set while a reactor still counts this handle as outstanding.
    _reactor: Reactor | None = field(default=None, repr=False)
    # True while the handle sits in the reactor's timer heap.
    _scheduled: bool = field(default=False, repr=False)

    def cancel(self) -> None:
        """Prevent the callback from running.  Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._reactor is not None:
            self._reactor._handle_cancelled(self)
            self._reactor = None

    def cancelled(self) -> bool:
        return self._cancelled

    def _run(self) -> None:
        self.callback(*self.args)


class Reactor:
    """Polling event reactor with clock-relative timers.

    Args:
        clock: Provider consulted for steady time.  Defaults to the
            process-wide provider, so clocks installed by a
            :class:`~timewarp.TimeFixture` are picked up automatically.

    Usage::

        reactor = Reactor()
        reactor.call_later(timedelta(milliseconds=3), fired.append, "a")
        reactor.poll_once()   # runs "a" once steady time reaches +3 ms
    """

    def __init__(self, clock: ClockProvider | None = None) -> None:
        self._clock = clock if clock is not None else clock_provider
        self._ready: deque[TimerHandle] = deque()
        self._timers: list[tuple[timedelta, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._live = 0
        self._timer_cancelled_count = 0
        self._stopped = False
        self._closed = False

    # -- scheduling -----------------------------------------------------------

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Queue *callback* to run on the next poll."""
        self._check_open()
        handle = TimerHandle(None, callback, args, _reactor=self)
        self._live += 1
        self._ready.append(handle)
        return handle

    def call_later(
        self,
        delay: timedelta,
        callback: Callable[..., Any],
        *args: Any,
    ) -> TimerHandle:
        """Schedule *callback* to run *delay* after the current steady time."""
        if delay < timedelta(0):
            raise InvalidArgumentError(f"delay must be non-negative, got {delay!r}")
        return self.call_at(self._clock.steady_now() + delay, callback, *args)

    def call_at(
        self,
        when: timedelta,
        callback: Callable[..., Any],
        *args: Any,
    ) -> TimerHandle:
        """Schedule *callback* at an absolute steady-clock deadline."""
        self._check_open()
        handle = TimerHandle(when, callback, args, _reactor=self, _scheduled=True)
        self._live += 1
        heapq.heappush(self._timers, (when, next(self._seq), handle))
        return handle

    def time(self) -> timedelta:
        """Current steady time as seen by this reactor."""
        return self._clock.steady_now()

    def pending(self) -> int:
        """Number of scheduled callbacks that have neither run nor been cancelled."""
        return self._live

    # -- run state ------------------------------------------------------------

    def stop(self) -> None:
        """Stop processing; polls are no-ops until :meth:`reset`."""
        self._stopped = True

    def is_stopped(self) -> bool:
        return self._stopped

    def reset(self) -> None:
        self._stopped = False

    def close(self) -> None:
        """Drop all pending work and refuse further use."""
        self._ready.clear()
        self._timers.clear()
        self._live = 0
        self._timer_cancelled_count = 0
        self._stopped = True
        self._closed = True

    def is_closed(self) -> bool:
        return self._closed

    # -- polling --------------------------------------------------------------

    def poll_once(self) -> None:
        """Run all ready callbacks without blocking.

        Raises:
            ReactorClosedError: The reactor was closed.
            Exception: Whatever a callback raised, unchanged.
        """
        self._check_open()
        if self._stopped:
            return

        while not self._stopped:
            if not self._ready:
                self._collect_due()
                if not self._ready:
                    break
            handle = self._ready.popleft()
            if handle.cancelled():
                continue
            handle._reactor = None
            self._live -= 1
            handle._run()

        if not self.pending():
            self._stopped = True

    def _collect_due(self) -> None:
        if (
            self._timer_cancelled_count > _MIN_CANCELLED_TIMERS_TO_COMPACT
            and self._timer_cancelled_count * 2 > len(self._timers)
        ):
            live_timers: list[tuple[timedelta, int, TimerHandle]] = []
            for entry in self._timers:
                if entry[2].cancelled():
                    entry[2]._scheduled = False
                else:
                    live_timers.append(entry)
            heapq.heapify(live_timers)
            self._timers = live_timers
            self._timer_cancelled_count = 0
        else:
            while self._timers and self._timers[0][2].cancelled():
                _, _, handle = heapq.heappop(self._timers)
                handle._scheduled = False
                self._timer_cancelled_count -= 1

        now = self._clock.steady_now()
        while self._timers and self._timers[0][0] <= now:
            _, _, handle = heapq.heappop(self._timers)
            handle._scheduled = False
            if handle.cancelled():
                self._timer_cancelled_count -= 1
            else:
                self._ready.append(handle)

    def _handle_cancelled(self, handle: TimerHandle) -> None:
        if self._closed:
            return
        self._live -= 1
        if handle._scheduled:
            self._timer_cancelled_count += 1

    def _check_open(self) -> None:
        if self._closed:
            raise ReactorClosedError("reactor is closed")


# ---------------------------------------------------------------------------
# Process-wide reactor
# ---------------------------------------------------------------------------

_global_reactor: Reactor | None = None


def get_global_reactor() -> Reactor:
    """Return the process-wide reactor, creating it on first use."""
    global _global_reactor
    if _global_reactor is None:
        _global_reactor = Reactor()
        logger.debug("Created global reactor")
    return _global_reactor


def reset_global_reactor() -> None:
    """Close and discard the process-wide reactor."""
    global _global_reactor
    if _global_reactor is not None:
        _global_reactor.close()
        _global_reactor = None
        logger.debug("Reset global reactor")
