"""Exception hierarchy for the tournament admission gate.

All custom exceptions subclass ``TournamentGuardError`` so callers can catch
the entire hierarchy with a single ``except`` clause when needed.

Only the rate-limit path raises during normal operation.  Field validation
failures are returned as :class:`~tournament_guard.validation.base.ValidationResult`
data so they can be rendered inline next to the offending field, and the
sanitizer never raises.

Hierarchy::

    TournamentGuardError
    ├── ConfigurationError       (also a ValueError)
    └── RateLimitExceededError   (retry_after_ms: int, purpose: str)
"""

from __future__ import annotations

import math


class TournamentGuardError(Exception):
    """Base class for all tournament guard exceptions."""


class ConfigurationError(TournamentGuardError, ValueError):
    """Raised when a limits registry or rate limiter is built with bad values.

    This is a programming or deployment error (for example a negative window
    coming from the environment), not something an end user can fix.
    """


class RateLimitExceededError(TournamentGuardError):
    """Raised by ``check_rate_limit()`` when the mutation quota is exhausted.

    The message is meant to be shown to the end user verbatim.  The caller
    decides whether to retry; nothing here waits or retries automatically.

    Args:
        message: Human-readable description including the retry countdown.
        retry_after_ms: Milliseconds until the oldest request in the window
            expires and a slot frees up.  Advisory only.
        purpose: Limiter purpose that rejected the request
            (e.g. ``"mutation"``).
    """

    def __init__(
        self,
        message: str,
        retry_after_ms: int = 0,
        purpose: str | None = None,
    ) -> None:
        super().__init__(message)
        self.retry_after_ms = retry_after_ms
        self.purpose = purpose

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds to wait, rounded up, never less than one."""
        return max(1, math.ceil(self.retry_after_ms / 1000))
