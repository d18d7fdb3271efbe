"""Settable virtual clocks.

A virtual clock only moves when :meth:`advance` is called.  Two
flavours exist, one per :class:`~timewarp.ClockKind`, and both satisfy
the matching real-clock port so they can be installed on a
:class:`~timewarp.ClockProvider` in place of the real clocks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import ClassVar, Protocol, runtime_checkable

from timewarp._clock import ClockKind
from timewarp._errors import InvalidArgumentError

DEFAULT_STEADY_START = timedelta(0)

DEFAULT_SYSTEM_START = datetime.fromtimestamp(1415684132, tz=UTC)
"""Initial virtual wall time: 2014-11-11T05:35:32Z."""


@runtime_checkable
class VirtualClock(Protocol):
    """A clock advanced programmatically instead of by elapsed time."""

    kind: ClassVar[ClockKind]

    def now(self) -> timedelta | datetime: ...

    def advance(self, delta: timedelta) -> None: ...


def _check_delta(delta: timedelta) -> None:
    if not isinstance(delta, timedelta):
        raise TypeError(
            f"delta must be a timedelta, got {type(delta).__name__}",
        )
    if delta < timedelta(0):
        raise InvalidArgumentError(f"cannot advance a clock by {delta!r}")


@dataclass
class VirtualSteadyClock:
    """Virtual monotonic clock.

    Attributes:
        current: Elapsed steady time since the clock's epoch.
        advance_count: Number of :meth:`advance` calls so far.

    Example::

        clock = VirtualSteadyClock()
        clock.advance(timedelta(milliseconds=5))
        assert clock.now() == timedelta(milliseconds=5)
    """

    kind: ClassVar[ClockKind] = ClockKind.STEADY

    current: timedelta = DEFAULT_STEADY_START
    advance_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.current < timedelta(0):
            raise InvalidArgumentError("steady clock cannot start before its epoch")

    def now(self) -> timedelta:
        return self.current

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward by *delta*.

        Raises:
            InvalidArgumentError: *delta* is negative.  The clock is
                left untouched.
        """
        _check_delta(delta)
        self.current += delta
        self.advance_count += 1


@dataclass
class VirtualSystemClock:
    """Virtual wall clock.

    Advanced in lock-step with :class:`VirtualSteadyClock` by the
    time advancer.  Independent jumps (NTP corrections) are not
    modelled.
    """

    kind: ClassVar[ClockKind] = ClockKind.SYSTEM

    current: datetime = DEFAULT_SYSTEM_START
    advance_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.current.tzinfo is None:
            raise InvalidArgumentError("system clock start must be timezone-aware")
        self.current = self.current.astimezone(UTC)

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward by *delta* (must be non-negative)."""
        _check_delta(delta)
        self.current += delta
        self.advance_count += 1
