"""Fixture configuration via pydantic-settings.

Defaults for virtual-time fixtures can be tuned per project through
environment variables (prefix ``TIMEWARP_``) or a ``.env`` file, so a
test suite can pick a coarser default tick or a different virtual epoch
without touching test code.

Durations accept anything pydantic parses as a ``timedelta``; from the
environment that is usually an ISO 8601 duration such as ``PT5S``.

Example ``.env``::

    TIMEWARP_DEFAULT_TICK=PT0.005S
    TIMEWARP_SYSTEM_START=2024-01-01T00:00:00Z
"""

from __future__ import annotations

from datetime import timedelta

from pydantic import AwareDatetime, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from timewarp._virtual import DEFAULT_STEADY_START, DEFAULT_SYSTEM_START


class TimewarpSettings(BaseSettings):
    """Defaults applied when building time fixtures.

    Example with overrides::

        settings = TimewarpSettings(default_tick=timedelta(milliseconds=10))
        fixture = TimeFixture.from_settings(settings)
    """

    model_config = SettingsConfigDict(
        env_prefix="TIMEWARP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_tick: timedelta = Field(
        default=timedelta(milliseconds=1),
        gt=timedelta(0),
        description="Tick used when a caller does not pass one explicitly.",
    )
    steady_start: timedelta = Field(
        default=DEFAULT_STEADY_START,
        ge=timedelta(0),
        description="Initial reading of the virtual steady clock.",
    )
    system_start: AwareDatetime = Field(
        default=DEFAULT_SYSTEM_START,
        description="Initial reading of the virtual system clock (timezone-aware).",
    )
