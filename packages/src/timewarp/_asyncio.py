"""asyncio event loop running on virtual time.

:class:`VirtualTimeEventLoop` is a selector event loop whose ``time()``
reads the steady clock of a :class:`~timewarp.ClockProvider`.  With
virtual clocks installed, ``asyncio.sleep()``, ``loop.call_later()`` and
``asyncio.wait_for()`` deadlines are all measured in virtual time.

:class:`AsyncioReactor` wraps such a loop behind
:class:`~timewarp.ReactorPort` so the time advancer can drive coroutine
code exactly like it drives the built-in :class:`~timewarp.Reactor`.

Each poll runs non-blocking loop iterations (``stop()`` before
``run_forever()``; see the asyncio docs for ``loop.stop``) until no
callback is ready and no timer is due.  A coroutine woken by a due timer
therefore resumes inside the same poll, not one tick later.

Exceptions raised by plain loop callbacks are captured through the
loop's exception handler and re-raised from :meth:`AsyncioReactor.poll_once`.
Exceptions raised inside tasks stay on the task, as usual in asyncio.

The loop must not already be running: drive it from synchronous test
code, not from inside an ``async def`` test.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from datetime import timedelta
from typing import Any, TypeVar

from timewarp._clock import ClockProvider, clock_provider
from timewarp._errors import InvalidArgumentError, ReactorClosedError

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class VirtualTimeEventLoop(asyncio.SelectorEventLoop):
    """Selector event loop whose clock is a :class:`~timewarp.ClockProvider`."""

    def __init__(self, clock: ClockProvider | None = None) -> None:
        super().__init__()
        self._virtual_clock = clock if clock is not None else clock_provider

    def time(self) -> float:
        return self._virtual_clock.steady_now().total_seconds()

    def has_ready_work(self) -> bool:
        """True when a callback is queued or a live timer is due."""
        if self._ready:  # type: ignore[attr-defined]
            return True
        end_time = self.time() + self._clock_resolution  # type: ignore[attr-defined]
        return any(
            not handle.cancelled() and handle.when() < end_time
            for handle in self._scheduled  # type: ignore[attr-defined]
        )

    def cancel_timers(self) -> int:
        """Cancel every live scheduled timer and return how many there were."""
        live = [
            handle
            for handle in self._scheduled  # type: ignore[attr-defined]
            if not handle.cancelled()
        ]
        for handle in live:
            handle.cancel()
        return len(live)


class AsyncioReactor:
    """:class:`~timewarp.ReactorPort` adapter over a virtual-time event loop.

    Args:
        clock: Provider the loop reads steady time from.  Defaults to
            the process-wide provider.

    Usage::

        reactor = AsyncioReactor()
        fixture = TimeFixture(reactor=reactor)
        task = reactor.create_task(retry_with_backoff())
        fixture.advance_clocks(timedelta(milliseconds=10), timedelta(seconds=2))
        assert task.done()
    """

    def __init__(self, clock: ClockProvider | None = None) -> None:
        self._loop = VirtualTimeEventLoop(clock)
        self._loop.set_exception_handler(self._on_loop_exception)
        self._stopped = False
        self._failure: BaseException | None = None

    @property
    def loop(self) -> VirtualTimeEventLoop:
        return self._loop

    # -- scheduling -----------------------------------------------------------

    def create_task(self, coro: Coroutine[Any, Any, _T]) -> asyncio.Task[_T]:
        self._check_open()
        return self._loop.create_task(coro)

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> asyncio.Handle:
        self._check_open()
        return self._loop.call_soon(callback, *args)

    def call_later(
        self,
        delay: timedelta,
        callback: Callable[..., Any],
        *args: Any,
    ) -> asyncio.TimerHandle:
        """Schedule *callback* after *delay* of loop (virtual) time."""
        self._check_open()
        if delay < timedelta(0):
            raise InvalidArgumentError(f"delay must be non-negative, got {delay!r}")
        return self._loop.call_later(delay.total_seconds(), callback, *args)

    # -- ReactorPort ----------------------------------------------------------

    def stop(self) -> None:
        self._stopped = True

    def is_stopped(self) -> bool:
        return self._stopped

    def reset(self) -> None:
        self._stopped = False

    def poll_once(self) -> None:
        """Run loop iterations until nothing is ready, without blocking.

        Raises:
            ReactorClosedError: The loop was closed.
            Exception: The first exception raised by a loop callback.
        """
        self._check_open()
        while not self._stopped:
            self._loop.stop()
            self._loop.run_forever()
            if self._failure is not None:
                failure, self._failure = self._failure, None
                raise failure
            if not self._loop.has_ready_work():
                break

    # -- lifecycle ------------------------------------------------------------

    def close(self) -> None:
        """Cancel outstanding timers and tasks, then close the loop.

        Timers are cancelled before the loop runs again: by now the
        virtual clocks are usually uninstalled, and a deadline measured
        in virtual time would count as long past on the real clock.
        Idempotent.
        """
        if self._loop.is_closed():
            return
        dropped = self._loop.cancel_timers()
        if dropped:
            logger.debug("Dropping %d unreached timer(s) on close", dropped)
        tasks = asyncio.all_tasks(self._loop)
        for task in tasks:
            task.cancel()
        if tasks:
            logger.debug("Cancelling %d pending task(s) on close", len(tasks))
            self._loop.run_until_complete(
                asyncio.gather(*tasks, return_exceptions=True),
            )
        self._loop.run_until_complete(self._loop.shutdown_asyncgens())
        self._loop.close()
        self._stopped = True

    def is_closed(self) -> bool:
        return self._loop.is_closed()

    def _check_open(self) -> None:
        if self._loop.is_closed():
            raise ReactorClosedError("event loop is closed")

    def _on_loop_exception(
        self,
        loop: asyncio.AbstractEventLoop,
        context: dict[str, Any],
    ) -> None:
        exc = context.get("exception")
        if exc is not None and "handle" in context and self._failure is None:
            self._failure = exc
            return
        loop.default_exception_handler(context)
