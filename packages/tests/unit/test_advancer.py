"""Unit tests for timewarp._advancer — tick-discretized time advancement.

Uses :class:`~timewarp.testing.FakeReactor` so the algorithm is
verified without any event loop.

Test Techniques Used:
    - Specification-based Testing: Exact totals, step sizes, poll counts
    - Boundary Value Analysis: Zero total, zero ticks, non-positive tick
    - Property-style Testing: Sum of steps equals total for many
      tick/total combinations
    - Error Condition Testing: Poll failures abandon the remainder
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from timewarp._advancer import TimeAdvancer
from timewarp._errors import InvalidArgumentError
from timewarp._virtual import (
    DEFAULT_SYSTEM_START,
    VirtualSteadyClock,
    VirtualSystemClock,
)
from timewarp.testing import FakeReactor

MS = timedelta(milliseconds=1)


@pytest.fixture
def steady() -> VirtualSteadyClock:
    return VirtualSteadyClock()


@pytest.fixture
def system() -> VirtualSystemClock:
    return VirtualSystemClock()


@pytest.fixture
def reactor() -> FakeReactor:
    return FakeReactor()


@pytest.fixture
def advancer(
    steady: VirtualSteadyClock, system: VirtualSystemClock, reactor: FakeReactor
) -> TimeAdvancer:
    return TimeAdvancer(steady, system, reactor)


def _record_steps(reactor: FakeReactor, steady: VirtualSteadyClock) -> list[timedelta]:
    """Collect steady time at every poll."""
    readings: list[timedelta] = []
    reactor.on_poll.append(lambda: readings.append(steady.now()))
    return readings


class TestAdvanceTotal:
    """advance(tick, total): exact totals with a shorter final step."""

    def test_uneven_total_ends_with_remainder_step(
        self,
        advancer: TimeAdvancer,
        steady: VirtualSteadyClock,
        reactor: FakeReactor,
    ) -> None:
        """tick=10ms, total=25ms → steps 10, 10, 5.

        Technique: Specification-based — documented scenario.
        """
        readings = _record_steps(reactor, steady)

        advancer.advance(10 * MS, 25 * MS)

        assert readings == [10 * MS, 20 * MS, 25 * MS]
        assert steady.now() == 25 * MS
        assert reactor.poll_count == 3

    @pytest.mark.parametrize(
        ("tick", "total"),
        [
            (MS, 7 * MS),
            (3 * MS, 10 * MS),
            (timedelta(microseconds=7), timedelta(microseconds=1000)),
            (timedelta(seconds=1), 250 * MS),
            (timedelta(hours=1), timedelta(days=1, microseconds=1)),
        ],
    )
    def test_clock_delta_equals_total_exactly(
        self,
        advancer: TimeAdvancer,
        steady: VirtualSteadyClock,
        system: VirtualSystemClock,
        tick: timedelta,
        total: timedelta,
    ) -> None:
        """Both clocks move by exactly *total* whatever the divisibility.

        Technique: Property-style Testing.
        """
        advancer.advance(tick, total)

        assert steady.now() == total
        assert system.now() - DEFAULT_SYSTEM_START == total

    def test_clocks_advance_in_lock_step(
        self,
        advancer: TimeAdvancer,
        steady: VirtualSteadyClock,
        system: VirtualSystemClock,
        reactor: FakeReactor,
    ) -> None:
        """At every poll, steady and system clocks have moved equally.

        Technique: Specification-based — no drift between clocks.
        """
        pairs: list[tuple[timedelta, timedelta]] = []
        reactor.on_poll.append(
            lambda: pairs.append((steady.now(), system.now() - DEFAULT_SYSTEM_START))
        )

        advancer.advance(4 * MS, 10 * MS)

        assert all(s == w for s, w in pairs)
        assert len(pairs) == 3

    def test_zero_total_does_nothing(
        self,
        advancer: TimeAdvancer,
        steady: VirtualSteadyClock,
        reactor: FakeReactor,
    ) -> None:
        """total=0 → loop body never executes.

        Technique: Boundary Value Analysis — lower bound.
        """
        advancer.advance(MS, timedelta(0))

        assert steady.now() == timedelta(0)
        assert reactor.poll_count == 0

    def test_clock_is_non_decreasing_within_call(
        self,
        advancer: TimeAdvancer,
        steady: VirtualSteadyClock,
        reactor: FakeReactor,
    ) -> None:
        """Technique: Property-style Testing — monotonicity."""
        readings = _record_steps(reactor, steady)

        advancer.advance(3 * MS, 20 * MS)
        advancer.advance(7 * MS, 20 * MS)

        assert readings == sorted(readings)
        assert all(later > earlier for earlier, later in zip(readings, readings[1:]))


class TestAdvanceTicks:
    """advance_ticks(tick, n_ticks): exactly n steps of tick."""

    @pytest.mark.parametrize("n_ticks", [1, 2, 17])
    def test_polls_once_per_tick(
        self,
        advancer: TimeAdvancer,
        steady: VirtualSteadyClock,
        reactor: FakeReactor,
        n_ticks: int,
    ) -> None:
        """Clock moves tick * n_ticks and poll_once runs n_ticks times.

        Technique: Specification-based Testing.
        """
        readings = _record_steps(reactor, steady)

        advancer.advance_ticks(3 * MS, n_ticks)

        assert steady.now() == 3 * MS * n_ticks
        assert reactor.poll_count == n_ticks
        assert readings == [3 * MS * (i + 1) for i in range(n_ticks)]

    def test_default_is_one_tick(
        self, advancer: TimeAdvancer, reactor: FakeReactor
    ) -> None:
        advancer.advance_ticks(MS)

        assert reactor.poll_count == 1

    def test_zero_ticks_does_nothing(
        self,
        advancer: TimeAdvancer,
        steady: VirtualSteadyClock,
        reactor: FakeReactor,
    ) -> None:
        """tick=1ms, n_ticks=0 → no change, no polls.

        Technique: Boundary Value Analysis — documented scenario.
        """
        advancer.advance_ticks(MS, 0)

        assert steady.now() == timedelta(0)
        assert reactor.poll_count == 0

    def test_negative_tick_count_rejected(
        self, advancer: TimeAdvancer, steady: VirtualSteadyClock
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            advancer.advance_ticks(MS, -1)

        assert steady.now() == timedelta(0)

    def test_non_int_tick_count_rejected(self, advancer: TimeAdvancer) -> None:
        with pytest.raises(TypeError):
            advancer.advance_ticks(MS, 2.5)  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            advancer.advance_ticks(MS, True)


class TestPreconditions:
    """Programmer errors fail before any clock mutation.

    Technique: Boundary Value Analysis / Error Condition Testing.
    """

    @pytest.mark.parametrize("tick", [timedelta(0), -MS])
    def test_non_positive_tick_rejected(
        self,
        advancer: TimeAdvancer,
        steady: VirtualSteadyClock,
        system: VirtualSystemClock,
        reactor: FakeReactor,
        tick: timedelta,
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            advancer.advance(tick, 10 * MS)

        assert steady.advance_count == 0
        assert system.advance_count == 0
        assert reactor.poll_count == 0

    def test_negative_tick_rejected_by_tick_overload(
        self, advancer: TimeAdvancer, steady: VirtualSteadyClock
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            advancer.advance_ticks(-MS, 3)

        assert steady.advance_count == 0

    def test_negative_total_rejected(
        self, advancer: TimeAdvancer, steady: VirtualSteadyClock
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            advancer.advance(MS, -MS)

        assert steady.advance_count == 0

    def test_non_timedelta_rejected(self, advancer: TimeAdvancer) -> None:
        with pytest.raises(TypeError):
            advancer.advance(0.001, 10 * MS)  # type: ignore[arg-type]

    def test_invalid_argument_is_a_value_error(self, advancer: TimeAdvancer) -> None:
        """Callers catching ValueError also catch precondition failures."""
        with pytest.raises(ValueError):
            advancer.advance(timedelta(0), MS)


class TestReactorInteraction:
    """Reset-before-poll and failure propagation.

    Technique: State-based / Error Condition Testing.
    """

    def test_stopped_reactor_is_reset_before_each_poll(
        self, advancer: TimeAdvancer, reactor: FakeReactor
    ) -> None:
        """A reactor that stops itself on every poll is reset every tick."""
        reactor.stopped = True
        reactor.on_poll.append(lambda: setattr(reactor, "stopped", True))

        advancer.advance_ticks(MS, 4)

        assert reactor.reset_count == 4
        assert reactor.poll_count == 4

    def test_running_reactor_is_not_reset(
        self, advancer: TimeAdvancer, reactor: FakeReactor
    ) -> None:
        advancer.advance_ticks(MS, 3)

        assert reactor.reset_count == 0

    def test_failure_abandons_remaining_ticks(
        self,
        advancer: TimeAdvancer,
        steady: VirtualSteadyClock,
        system: VirtualSystemClock,
        reactor: FakeReactor,
    ) -> None:
        """A poll failing at step k leaves the clocks at k * tick.

        Technique: Error Condition Testing — partial progress.
        """

        def fail_at_third_tick() -> None:
            if reactor.poll_count == 3:
                raise RuntimeError("deadline missed")

        reactor.on_poll.append(fail_at_third_tick)

        with pytest.raises(RuntimeError, match="deadline missed"):
            advancer.advance_ticks(2 * MS, 10)

        assert steady.now() == 6 * MS
        assert system.now() - DEFAULT_SYSTEM_START == 6 * MS
        assert reactor.poll_count == 3

    def test_advancing_again_after_failure_continues_from_partial_time(
        self,
        advancer: TimeAdvancer,
        steady: VirtualSteadyClock,
        reactor: FakeReactor,
    ) -> None:
        failures = iter([RuntimeError("once")])

        def fail_once() -> None:
            exc = next(failures, None)
            if exc is not None:
                raise exc

        reactor.on_poll.append(fail_once)

        with pytest.raises(RuntimeError):
            advancer.advance(MS, 5 * MS)
        advancer.advance(MS, 5 * MS)

        assert steady.now() == 6 * MS
