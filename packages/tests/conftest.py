"""Pytest configuration and shared fixtures."""

from collections.abc import Iterator

import pytest

# The timewarp testing plugin is registered via a ``pytest11`` entry
# point (pyproject.toml) for external consumers.  In our own test
# suite we disable it (``-p no:timewarp``) and load explicitly here
# instead, because conftest-based loading is processed during
# ``pytest_load_initial_conftests`` — after ``pytest-cov`` starts
# coverage tracing — so the timewarp import chain is measured.
pytest_plugins = ["timewarp.testing._plugin"]


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (may require external services)"
    )


@pytest.fixture(autouse=True)
def _isolate_process_clocks() -> Iterator[None]:
    """Restore real clocks and drop the global reactor after every test.

    A test that fails between constructing and closing a fixture must
    not leave virtual clocks behind for the next one.
    """
    from timewarp._clock import clock_provider
    from timewarp._reactor import reset_global_reactor

    yield
    clock_provider.set_custom_clocks(None, None)
    reset_global_reactor()
