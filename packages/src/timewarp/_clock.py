"""Clock ports, real clock adapters, and the clock provider slot.

Two kinds of time are read by code under test:

- **Steady time** — a monotonic :class:`~datetime.timedelta` measured
  from an arbitrary epoch.  Only *differences* between readings are
  meaningful (PEP 418).  Timers and timeouts are computed against it.
- **System time** — a timezone-aware UTC :class:`~datetime.datetime`.
  Used for timestamps that leave the process.

Components never call ``time.monotonic()`` or ``datetime.now()``
directly.  They read time through a :class:`ClockProvider`, which
defaults to the real clocks and can be switched to virtual clocks for
the duration of a test.

A process-wide provider, :data:`clock_provider`, backs the module-level
helpers :func:`steady_now`, :func:`system_now`, and
:func:`set_custom_clocks`.  Components that accept a ``clock`` argument
use it when none is given, so tests can either inject a private
provider or install virtual clocks on the shared one.

See Also:
    :class:`~timewarp.ClockInstallation` for scoped substitution.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Protocol, runtime_checkable


class ClockKind(StrEnum):
    """Which time source a clock represents."""

    STEADY = "steady"
    SYSTEM = "system"


@runtime_checkable
class SteadyClockPort(Protocol):
    """Monotonic clock for timing measurements and timer deadlines."""

    def now(self) -> timedelta:
        """Return monotonic time as a duration from an arbitrary epoch."""
        ...


@runtime_checkable
class SystemClockPort(Protocol):
    """Wall clock returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        """Return the current wall-clock time in UTC."""
        ...


class SteadyClock:
    """Production steady clock wrapping ``time.monotonic()``.

    Satisfies :class:`SteadyClockPort` via structural subtyping — no
    base-class inheritance required (PEP 544).
    """

    def now(self) -> timedelta:
        """Return monotonic time as a :class:`~datetime.timedelta`."""
        return timedelta(seconds=time.monotonic())


class SystemClock:
    """Production wall clock wrapping ``datetime.now(UTC)``."""

    def now(self) -> datetime:
        """Return the current UTC time."""
        return datetime.now(UTC)


_REAL_STEADY = SteadyClock()
_REAL_SYSTEM = SystemClock()


class ClockProvider:
    """Indirection point consulted for the current steady and system time.

    Holds at most one custom clock of each kind.  When a slot is empty
    the corresponding real clock answers instead.

    Usage::

        provider = ClockProvider()
        provider.set_custom_clocks(VirtualSteadyClock(), VirtualSystemClock())
        provider.steady_now()          # virtual
        provider.set_custom_clocks()   # back to real time
    """

    def __init__(self) -> None:
        self._steady: SteadyClockPort | None = None
        self._system: SystemClockPort | None = None

    def set_custom_clocks(
        self,
        steady: SteadyClockPort | None = None,
        system: SystemClockPort | None = None,
    ) -> None:
        """Replace the active clocks.

        Passing ``None`` for both restores real-time behaviour.
        """
        self._steady = steady
        self._system = system

    @property
    def is_custom(self) -> bool:
        """True while either slot holds a substituted clock."""
        return self._steady is not None or self._system is not None

    @property
    def steady(self) -> SteadyClockPort:
        """The steady clock currently in force."""
        return self._steady if self._steady is not None else _REAL_STEADY

    @property
    def system(self) -> SystemClockPort:
        """The system clock currently in force."""
        return self._system if self._system is not None else _REAL_SYSTEM

    def steady_now(self) -> timedelta:
        return self.steady.now()

    def system_now(self) -> datetime:
        return self.system.now()


clock_provider = ClockProvider()
"""The process-wide clock provider slot."""


def set_custom_clocks(
    steady: SteadyClockPort | None = None,
    system: SystemClockPort | None = None,
) -> None:
    """Install clocks on the process-wide provider (``None`` restores real time)."""
    clock_provider.set_custom_clocks(steady, system)


def steady_now() -> timedelta:
    """Current steady time from the process-wide provider."""
    return clock_provider.steady_now()


def system_now() -> datetime:
    """Current system time from the process-wide provider."""
    return clock_provider.system_now()
