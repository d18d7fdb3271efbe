"""Tick-discretized advancement of virtual time.

Advancing a virtual clock straight to ``now + total`` would make every
timer inside that window due at once, collapsing their relative order.
:class:`TimeAdvancer` instead moves both clocks forward in bounded
steps of at most ``tick`` and polls the reactor after each step.  A
callback scheduled for ``t + 3ms`` therefore runs, with the clocks
reading ``t + 3ms`` (when ``tick`` divides evenly), before one scheduled
for ``t + 10ms`` even if both fall inside a single ``advance()`` call.

The last step may be shorter than ``tick`` so that the sum of all steps
is exactly ``total``.

An exception raised by a callback during a poll propagates immediately.
Steps already applied stay applied; the remainder is abandoned.  Tests
use this to assert that scheduled work failed at a specific virtual
time.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from timewarp._errors import InvalidArgumentError
from timewarp._reactor import ReactorPort
from timewarp._virtual import VirtualSteadyClock, VirtualSystemClock

logger = logging.getLogger(__name__)

_ZERO = timedelta(0)


def _require_duration(name: str, value: object) -> None:
    if not isinstance(value, timedelta):
        raise TypeError(f"{name} must be a timedelta, got {type(value).__name__}")


class TimeAdvancer:
    """Advance a steady/system clock pair and drain a reactor per tick.

    Args:
        steady: Virtual steady clock to advance.
        system: Virtual system clock advanced in lock-step with *steady*.
        reactor: Reactor polled once after every step.
    """

    def __init__(
        self,
        steady: VirtualSteadyClock,
        system: VirtualSystemClock,
        reactor: ReactorPort,
    ) -> None:
        self._steady = steady
        self._system = system
        self._reactor = reactor

    @property
    def reactor(self) -> ReactorPort:
        return self._reactor

    def advance(self, tick: timedelta, total: timedelta) -> None:
        """Advance both clocks by *total* in steps of at most *tick*.

        After each step the reactor is reset if it was stopped and then
        polled once.

        Raises:
            TypeError: *tick* or *total* is not a ``timedelta``.
            InvalidArgumentError: ``tick <= 0`` or ``total < 0``.  No
                clock is touched.
            Exception: Anything raised by a callback during a poll.
        """
        _require_duration("tick", tick)
        _require_duration("total", total)
        if tick <= _ZERO:
            raise InvalidArgumentError(f"tick must be positive, got {tick!r}")
        if total < _ZERO:
            raise InvalidArgumentError(f"total must be non-negative, got {total!r}")

        logger.debug("Advancing clocks by %s in ticks of %s", total, tick)
        remaining = total
        while remaining > _ZERO:
            step = min(tick, remaining)
            self._steady.advance(step)
            self._system.advance(step)
            remaining -= step

            if self._reactor.is_stopped():
                self._reactor.reset()
            try:
                self._reactor.poll_once()
            except Exception:
                logger.debug(
                    "Poll raised at steady time %s; abandoning remaining %s",
                    self._steady.now(),
                    remaining,
                )
                raise

    def advance_ticks(self, tick: timedelta, n_ticks: int = 1) -> None:
        """Advance by exactly *n_ticks* steps of *tick*."""
        if isinstance(n_ticks, bool) or not isinstance(n_ticks, int):
            raise TypeError(f"n_ticks must be an int, got {type(n_ticks).__name__}")
        if n_ticks < 0:
            raise InvalidArgumentError(f"n_ticks must be non-negative, got {n_ticks}")
        _require_duration("tick", tick)
        if tick <= _ZERO:
            raise InvalidArgumentError(f"tick must be positive, got {tick!r}")
        self.advance(tick, tick * n_ticks)
