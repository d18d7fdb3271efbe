"""Per-test fixtures owning a reactor and a virtual clock pair.

:class:`BaseFixture` hands every test a reactor.  When none is supplied
it uses the process-wide reactor and resets it on close, so each test
starts with an empty one.

:class:`TimeFixture` adds a steady/system virtual clock pair.  The
clocks are installed on construction and uninstalled exactly once on
:meth:`~TimeFixture.close`; using the fixture as a context manager (or
through the pytest plugin) guarantees the uninstall on every exit path.

Lifecycle::

    UNINSTALLED --construct--> INSTALLED --close--> UNINSTALLED
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import StrEnum
from types import TracebackType
from typing import Any, Self

from timewarp._advancer import TimeAdvancer
from timewarp._clock import ClockProvider
from timewarp._errors import FixtureClosedError
from timewarp._install import ClockInstallation
from timewarp._reactor import (
    Reactor,
    ReactorPort,
    get_global_reactor,
    reset_global_reactor,
)
from timewarp._settings import TimewarpSettings
from timewarp._virtual import (
    DEFAULT_STEADY_START,
    DEFAULT_SYSTEM_START,
    VirtualSteadyClock,
    VirtualSystemClock,
)

logger = logging.getLogger(__name__)


class FixtureState(StrEnum):
    UNINSTALLED = "uninstalled"
    INSTALLED = "installed"


class BaseFixture:
    """Provide a reactor for one test.

    Args:
        reactor: Reactor to drive.  When ``None`` the process-wide
            reactor is used and reset on :meth:`close`.  A reactor
            passed in is never closed by the fixture.
    """

    def __init__(self, reactor: ReactorPort | None = None) -> None:
        self._uses_global_reactor = reactor is None
        self.reactor: ReactorPort = (
            reactor if reactor is not None else get_global_reactor()
        )

    def close(self) -> None:
        if self._uses_global_reactor:
            reset_global_reactor()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class TimeFixture(BaseFixture):
    """Fixture that replaces the steady and system clocks with virtual ones.

    Args:
        reactor: Reactor polled after every tick (see :class:`BaseFixture`).
        provider: Clock provider to install on.  Defaults to the
            process-wide provider.  When a provider is given without a
            reactor, the fixture creates and closes a private
            :class:`~timewarp.Reactor` bound to that provider.
        steady_start: Initial virtual steady time.
        system_start: Initial virtual wall time (timezone-aware).
        default_tick: Tick used by helpers such as
            :class:`~timewarp.LimitedIo` when none is given.

    Raises:
        ClockAlreadyInstalledError: Another fixture is active on the
            same provider.  Nothing is installed in that case.

    Usage::

        with TimeFixture() as fx:
            fx.reactor.call_later(timedelta(milliseconds=3), fired.append, "a")
            fx.advance_clocks(timedelta(milliseconds=1), 5)
    """

    def __init__(
        self,
        *,
        reactor: ReactorPort | None = None,
        provider: ClockProvider | None = None,
        steady_start: timedelta = DEFAULT_STEADY_START,
        system_start: datetime = DEFAULT_SYSTEM_START,
        default_tick: timedelta = timedelta(milliseconds=1),
    ) -> None:
        self.steady_clock = VirtualSteadyClock(steady_start)
        self.system_clock = VirtualSystemClock(system_start)
        self.default_tick = default_tick
        # Install before touching the reactor so a failed install has
        # nothing to undo.
        self._installation = ClockInstallation(
            self.steady_clock,
            self.system_clock,
            provider=provider,
        )
        self._owned_reactor: Reactor | None = None
        if reactor is None and provider is not None:
            reactor = self._owned_reactor = Reactor(clock=provider)
        super().__init__(reactor)
        self._advancer = TimeAdvancer(
            self.steady_clock, self.system_clock, self.reactor
        )
        self._state = FixtureState.INSTALLED

    @classmethod
    def from_settings(
        cls,
        settings: TimewarpSettings | None = None,
        **kwargs: Any,
    ) -> Self:
        """Build a fixture whose clock defaults come from *settings*.

        Keyword arguments (``reactor``, ``provider``) are forwarded.
        """
        resolved = settings if settings is not None else TimewarpSettings()
        return cls(
            steady_start=resolved.steady_start,
            system_start=resolved.system_start,
            default_tick=resolved.default_tick,
            **kwargs,
        )

    @property
    def state(self) -> FixtureState:
        return self._state

    @property
    def provider(self) -> ClockProvider:
        return self._installation.provider

    def advance_clocks(self, tick: timedelta, total: timedelta | int = 1) -> None:
        """Advance steady and system clocks, polling the reactor after each tick.

        *total* selects the overload:

        - an ``int`` is a tick count — clocks move by ``tick * total``
          in steps of exactly *tick*;
        - a ``timedelta`` is a duration — clocks move by *total* in
          steps of *tick*, the last one possibly shorter.

        Exceptions raised during a poll propagate and stop advancement.
        """
        if self._state is not FixtureState.INSTALLED:
            raise FixtureClosedError(
                "cannot advance clocks after the fixture is closed"
            )
        if isinstance(total, timedelta):
            self._advancer.advance(tick, total)
        else:
            self._advancer.advance_ticks(tick, total)

    def close(self) -> None:
        """Uninstall the virtual clocks.  Only the first call has an effect."""
        if self._state is FixtureState.UNINSTALLED:
            return
        self._state = FixtureState.UNINSTALLED
        logger.debug(
            "Closing time fixture at steady=%s system=%s",
            self.steady_clock.now(),
            self.system_clock.now().isoformat(),
        )
        try:
            self._installation.release()
        finally:
            if self._owned_reactor is not None:
                self._owned_reactor.close()
            super().close()
