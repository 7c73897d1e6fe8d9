"""Shared pytest fixtures for Tournament Guard tests.

Fixture summary
---------------
fake_clock      - Manually advanced millisecond clock for limiter tests.
limits          - The default LimitsRegistry.
guard           - MutationGuard driven by ``fake_clock``.

Every test starts from a clean process state: cached settings and the
process default guard are cleared, and ``TOURNAMENT_GUARD_*`` variables
from the developer's shell are removed so ``Settings()`` sees defaults
unless a test sets them explicitly.
"""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest

from tournament_guard.config.limits import DEFAULT_LIMITS, LimitsRegistry
from tournament_guard.config.settings import get_settings
from tournament_guard.core.logging_config import caller_key_var
from tournament_guard.core.rate_limiter import MutationGuard, get_default_guard

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------

for _key in [k for k in os.environ if k.startswith("TOURNAMENT_GUARD_")]:
    del os.environ[_key]


class FakeClock:
    """Millisecond clock that only moves when told to.

    Usage::

        clock = FakeClock(start=1_000)
        limiter = RateLimiter(max_requests=2, window_ms=1000, clock=clock)
        clock.advance(500)
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


# ---------------------------------------------------------------------------
# Autouse: isolate cached process state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_process_state() -> Iterator[None]:
    """Clear lru_caches and the caller context var around every test."""
    get_settings.cache_clear()
    get_default_guard.cache_clear()
    token = caller_key_var.set(None)
    yield
    caller_key_var.reset(token)
    get_settings.cache_clear()
    get_default_guard.cache_clear()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock(start=1_000_000)


@pytest.fixture()
def limits() -> LimitsRegistry:
    return DEFAULT_LIMITS


@pytest.fixture()
def guard(fake_clock: FakeClock, limits: LimitsRegistry) -> MutationGuard:
    return MutationGuard(limits, clock=fake_clock)
