"""Bounded virtual-time runs.

:class:`LimitedIo` advances a :class:`~timewarp.TimeFixture` tick by
tick until one of these happens:

- the code under test has reported ``n_ops_limit`` operations through
  :meth:`LimitedIo.after_op`;
- ``time_limit`` of virtual time has elapsed;
- the reactor ran out of work;
- a callback raised.

The outcome is reported as a :class:`StopReason` instead of an
exception, which keeps "wait until N packets were sent, but no longer
than 1s" style tests to a single assertion::

    limited_io = LimitedIo(fixture)
    face.on_send = lambda _pkt: limited_io.after_op()
    assert limited_io.run(2, timedelta(seconds=1)) is StopReason.EXCEED_OPS
"""

from __future__ import annotations

import logging
import sys
from datetime import timedelta
from enum import StrEnum

from timewarp._errors import InvalidArgumentError
from timewarp._fixture import TimeFixture
from timewarp._reactor import Cancellable, SchedulingReactorPort

logger = logging.getLogger(__name__)

UNLIMITED_OPS = sys.maxsize


class StopReason(StrEnum):
    """Why :meth:`LimitedIo.run` returned."""

    NO_WORK = "no_work"
    EXCEED_OPS = "exceed_ops"
    EXCEED_TIME = "exceed_time"
    EXCEPTION = "exception"


class LimitedIo:
    """Run a fixture's reactor under an operation budget and a time limit.

    Args:
        fixture: Time fixture to advance.  Its reactor must be able to
            schedule timers and be stopped (:class:`~timewarp.Reactor`
            and :class:`~timewarp.AsyncioReactor` both qualify).

    Attributes:
        last_exception: Exception that ended the last run with
            :attr:`StopReason.EXCEPTION`, else ``None``.

    Note:
        A reactor that never reports running out of work (the asyncio
        adapter) should always be given a ``time_limit``.
    """

    def __init__(self, fixture: TimeFixture) -> None:
        if not isinstance(fixture.reactor, SchedulingReactorPort):
            raise TypeError(
                f"{type(fixture.reactor).__name__} cannot schedule timers; "
                "LimitedIo needs call_later() and stop()",
            )
        self._fixture = fixture
        self._reactor: SchedulingReactorPort = fixture.reactor
        self._is_running = False
        self._n_ops_remaining = 0
        self._reason = StopReason.NO_WORK
        self._stop_requested = False
        self.last_exception: Exception | None = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    def run(
        self,
        n_ops_limit: int = UNLIMITED_OPS,
        time_limit: timedelta | None = None,
        tick: timedelta | None = None,
    ) -> StopReason:
        """Advance the fixture until a limit is hit.

        Args:
            n_ops_limit: Number of :meth:`after_op` calls that end the run.
            time_limit: Virtual time after which the run ends.  ``None``
                means no time limit.
            tick: Step size; defaults to the fixture's ``default_tick``.

        Returns:
            The reason the run stopped.

        Raises:
            RuntimeError: Called while another run is in progress.
            TypeError: *tick* is not a ``timedelta``.
            InvalidArgumentError: *tick* is not positive or *time_limit*
                is negative.  Nothing runs in either case.
        """
        if self._is_running:
            raise RuntimeError("LimitedIo.run() is not reentrant")
        if n_ops_limit <= 0:
            return StopReason.EXCEED_OPS

        step = tick if tick is not None else self._fixture.default_tick
        if not isinstance(step, timedelta):
            raise TypeError(f"tick must be a timedelta, got {type(step).__name__}")
        if step <= timedelta(0):
            raise InvalidArgumentError(f"tick must be positive, got {step!r}")

        # A rejected time limit must leave the run inactive.
        timeout: Cancellable | None = None
        if time_limit is not None:
            timeout = self._reactor.call_later(time_limit, self._after_timeout)

        self._is_running = True
        self._stop_requested = False
        self._reason = StopReason.NO_WORK
        self._n_ops_remaining = n_ops_limit
        self.last_exception = None

        try:
            while not self._stop_requested:
                self._fixture.advance_clocks(step, 1)
                if not self._stop_requested and self._reactor.is_stopped():
                    break
        except Exception as exc:
            self._reason = StopReason.EXCEPTION
            self.last_exception = exc
            logger.debug("Limited run ended by %r", exc)
        finally:
            self._reactor.reset()
            if timeout is not None:
                timeout.cancel()
            self._is_running = False

        return self._reason

    def defer(self, duration: timedelta) -> None:
        """Let *duration* of virtual time pass, processing events meanwhile."""
        self.run(UNLIMITED_OPS, duration)

    def after_op(self) -> None:
        """Report one completed operation; ends the run when the budget is spent."""
        self._n_ops_remaining -= 1
        if self._n_ops_remaining <= 0 and self._is_running:
            self._request_stop(StopReason.EXCEED_OPS)

    def _after_timeout(self) -> None:
        self._request_stop(StopReason.EXCEED_TIME)

    def _request_stop(self, reason: StopReason) -> None:
        if self._stop_requested:
            return
        self._reason = reason
        self._stop_requested = True
        self._reactor.stop()
