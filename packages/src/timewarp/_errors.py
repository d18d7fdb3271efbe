"""Exception hierarchy for timewarp.

Every error raised by the package derives from :class:`TimewarpError`.
Concrete classes also inherit from the closest built-in exception so
callers that only know the standard library (``ValueError``,
``RuntimeError``) still catch them.

Two families exist:

- **Programmer errors** — a negative clock delta, a non-positive tick,
  a nested clock installation.  These are never expected in correct
  test code and are raised eagerly, *before* any state is mutated.
- **Runtime errors** — using a reactor after it was closed.

Exceptions raised by callbacks running inside a reactor poll are *not*
wrapped: they propagate verbatim to the caller of
:meth:`~timewarp.TimeAdvancer.advance`.

Preconditions are checked with explicit ``raise`` statements rather than
``assert`` so they survive ``python -O``.
"""

from __future__ import annotations


class TimewarpError(Exception):
    """Base class for all timewarp errors."""


class InvalidArgumentError(TimewarpError, ValueError):
    """A precondition on a duration or count was violated.

    Raised for negative clock deltas, a tick that is not strictly
    positive, a negative total, or a negative tick count.
    """


class ClockAlreadyInstalledError(TimewarpError, RuntimeError):
    """Virtual clocks are already installed on this provider.

    At most one :class:`~timewarp.ClockInstallation` may be active per
    :class:`~timewarp.ClockProvider`.  Nesting fixtures is a programming
    error.
    """


class ReactorClosedError(TimewarpError, RuntimeError):
    """The reactor has been closed and can no longer schedule or poll."""


class FixtureClosedError(TimewarpError, RuntimeError):
    """The time fixture has already uninstalled its clocks."""
