"""Public test-support utilities for timewarp.

Re-exports test doubles and factories so that consumer test suites
can import everything from a single ``timewarp.testing`` namespace
instead of reaching into private modules.

Provided symbols:

- :class:`FakeReactor` — recording reactor double for advancer tests.
- :func:`make_settings` — factory for ``TimewarpSettings`` without ``.env`` files.

The pytest fixtures live in :mod:`timewarp.testing._plugin`, registered
through the ``pytest11`` entry point.
"""

from timewarp.testing._reactor import FakeReactor
from timewarp.testing._settings import make_settings

__all__ = [
    "FakeReactor",
    "make_settings",
]
