"""timewarp.

Deterministic virtual time for testing timers, scheduled callbacks, and
retry/backoff loops without waiting on the wall clock.
"""

from importlib.metadata import PackageNotFoundError, version

from timewarp._advancer import TimeAdvancer
from timewarp._asyncio import AsyncioReactor, VirtualTimeEventLoop
from timewarp._clock import (
    ClockKind,
    ClockProvider,
    SteadyClock,
    SteadyClockPort,
    SystemClock,
    SystemClockPort,
    clock_provider,
    set_custom_clocks,
    steady_now,
    system_now,
)
from timewarp._errors import (
    ClockAlreadyInstalledError,
    FixtureClosedError,
    InvalidArgumentError,
    ReactorClosedError,
    TimewarpError,
)
from timewarp._fixture import BaseFixture, FixtureState, TimeFixture
from timewarp._install import ClockInstallation
from timewarp._limited_io import UNLIMITED_OPS, LimitedIo, StopReason
from timewarp._reactor import (
    Reactor,
    ReactorPort,
    SchedulingReactorPort,
    TimerHandle,
    get_global_reactor,
    reset_global_reactor,
)
from timewarp._settings import TimewarpSettings
from timewarp._virtual import (
    DEFAULT_STEADY_START,
    DEFAULT_SYSTEM_START,
    VirtualClock,
    VirtualSteadyClock,
    VirtualSystemClock,
)

try:
    # Fallback to installed package metadata
    __version__ = version("timewarp")
except PackageNotFoundError:
    # Last resort fallback for source checkouts without metadata
    __version__ = "0.0.0+unknown"

__all__ = [
    # Version
    "__version__",
    # Clock
    "ClockKind",
    "ClockProvider",
    "SteadyClock",
    "SteadyClockPort",
    "SystemClock",
    "SystemClockPort",
    "clock_provider",
    "set_custom_clocks",
    "steady_now",
    "system_now",
    # Virtual clocks
    "DEFAULT_STEADY_START",
    "DEFAULT_SYSTEM_START",
    "VirtualClock",
    "VirtualSteadyClock",
    "VirtualSystemClock",
    "ClockInstallation",
    # Reactor
    "AsyncioReactor",
    "Reactor",
    "ReactorPort",
    "SchedulingReactorPort",
    "TimerHandle",
    "VirtualTimeEventLoop",
    "get_global_reactor",
    "reset_global_reactor",
    # Advancement
    "BaseFixture",
    "FixtureState",
    "LimitedIo",
    "StopReason",
    "TimeAdvancer",
    "TimeFixture",
    "UNLIMITED_OPS",
    # Errors
    "ClockAlreadyInstalledError",
    "FixtureClosedError",
    "InvalidArgumentError",
    "ReactorClosedError",
    "TimewarpError",
    # Settings
    "TimewarpSettings",
]
