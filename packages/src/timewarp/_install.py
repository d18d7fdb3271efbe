"""Scoped installation of virtual clocks on a clock provider.

:class:`ClockInstallation` is a guard object: constructing it swaps the
provider's clocks for the given virtual pair, and :meth:`release`
(called by ``__exit__`` on every exit path) puts the real clocks back.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Self

from timewarp._clock import ClockProvider, clock_provider
from timewarp._errors import ClockAlreadyInstalledError
from timewarp._virtual import VirtualSteadyClock, VirtualSystemClock

logger = logging.getLogger(__name__)


class ClockInstallation:
    """Install a virtual clock pair for the lifetime of this object.

    Only one installation may be active per provider.  Installing on a
    provider that already carries custom clocks raises
    :class:`~timewarp.ClockAlreadyInstalledError` and changes nothing.

    Args:
        steady: Virtual steady clock to install.
        system: Virtual system clock to install.
        provider: Provider to install on.  Defaults to the
            process-wide :data:`~timewarp.clock_provider`.

    Usage::

        with ClockInstallation(steady, system):
            ...  # steady_now() / system_now() read the virtual clocks
    """

    def __init__(
        self,
        steady: VirtualSteadyClock,
        system: VirtualSystemClock,
        *,
        provider: ClockProvider | None = None,
    ) -> None:
        self._provider = provider if provider is not None else clock_provider
        if self._provider.is_custom:
            raise ClockAlreadyInstalledError(
                "virtual clocks are already installed on this provider",
            )
        self._steady = steady
        self._system = system
        self._provider.set_custom_clocks(steady, system)
        self._active = True
        logger.debug("Installed virtual clocks on %r", self._provider)

    @property
    def active(self) -> bool:
        return self._active

    @property
    def provider(self) -> ClockProvider:
        return self._provider

    def release(self) -> None:
        """Restore real clocks.  Subsequent calls are no-ops."""
        if not self._active:
            return
        self._active = False
        if (
            self._provider.steady is not self._steady
            or self._provider.system is not self._system
        ):
            logger.warning(
                "Clock provider %r was modified while virtual clocks were "
                "installed; restoring real clocks anyway",
                self._provider,
            )
        self._provider.set_custom_clocks(None, None)
        logger.debug("Restored real clocks on %r", self._provider)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
