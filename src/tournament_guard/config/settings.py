"""Process settings loaded from environment variables.

Uses Pydantic Settings v2 for validated, type-safe configuration.  Every
variable carries the ``TOURNAMENT_GUARD_`` prefix and may also come from an
optional ``.env`` file.  Never call ``os.getenv`` elsewhere in the package.

Usage::

    from tournament_guard.config.settings import get_settings

    settings = get_settings()
    settings.log_level
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Admission-gate configuration backed by the environment.

    Only operational knobs live here.  Product limits (name lengths, roster
    caps, ...) are fixed in :mod:`tournament_guard.config.limits`; the
    rate-limit values below are copied into the registry by
    :func:`~tournament_guard.config.limits.build_limits`.
    """

    model_config = SettingsConfigDict(
        env_prefix="TOURNAMENT_GUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    log_level: str = "INFO"
    """Logging verbosity.  One of: DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    mutations_per_minute: int = Field(default=30, ge=1)
    """Mutations admitted per sliding window for one caller."""

    rate_limit_window_ms: int = Field(default=60_000, ge=0)
    """Length of the mutation sliding window in milliseconds."""

    bio_update_cooldown_ms: int = Field(default=30_000, ge=0)
    """Minimum spacing between two bio updates from the same caller.

    The bio limiter admits one update per window of this length.
    """

    max_tracked_callers: int = Field(default=100, ge=1)
    """Number of per-caller guards kept before idle ones are evicted.

    Eviction only drops guards whose windows are already empty, so a busy
    caller never loses its history.
    """


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings singleton.

    The environment and ``.env`` file are read once per process.  In tests,
    call ``get_settings.cache_clear()`` after patching environment variables.
    """
    return Settings()
