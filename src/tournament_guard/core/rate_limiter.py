"""In-process sliding window rate limiter for tournament mutations.

Keeps an exact log of request timestamps instead of fixed buckets, so the
bound ``max_requests`` per ``window_ms`` holds for *every* trailing window,
not just aligned ones.  Expired timestamps are pruned lazily on the next
``check``/``record``/``get_usage`` call; nothing runs on a timer.

Two purposes are configured from the limits registry:

- ``mutation``: ``mutations_per_minute`` requests per ``rate_limit_window_ms``
- ``bio-update``: one request per ``bio_update_cooldown_ms``

Limiter state is owned by a :class:`MutationGuard`, and a
:class:`GuardRegistry` hands out one guard per caller key so that different
users sharing a process do not share a quota.  The module-level helpers
(:func:`check_rate_limit`, :func:`can_make_request`,
:func:`check_bio_rate_limit`) operate on a lazily built default guard for
single-user processes.

Typical usage::

    registry = GuardRegistry(limits)
    guard = registry.get(user_id)

    guard.check_rate_limit()            # raises RateLimitExceededError
    message = guard.check_bio_rate_limit()
    if message is not None:
        show_error(message)

State is kept in memory only; it does not survive a restart and is not
shared between processes.  A trusted backend must enforce its own limits.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable

from tournament_guard.config.limits import DEFAULT_LIMITS, LimitsRegistry, build_limits
from tournament_guard.config.settings import Settings, get_settings
from tournament_guard.core.exceptions import ConfigurationError, RateLimitExceededError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
"""Zero-argument callable returning the current instant in milliseconds."""

MUTATION_PURPOSE = "mutation"
BIO_UPDATE_PURPOSE = "bio-update"


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a :meth:`RateLimiter.check` or :meth:`RateLimiter.try_acquire`.

    Attributes:
        allowed: Whether a request may proceed now.
        remaining: Free slots left in the current window (``0`` when
            rejected).
        retry_after_ms: Only set when rejected.  Milliseconds until the
            oldest request leaves the window, i.e. the earliest moment a
            slot frees up.  Advisory; nothing enforces the wait.
    """

    allowed: bool
    remaining: int
    retry_after_ms: int | None = None


@dataclass(frozen=True)
class RateLimitUsage:
    """Current occupancy of a limiter window."""

    used: int
    limit: int
    remaining: int


# ---------------------------------------------------------------------------
# RateLimiter
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class RateLimiter:
    """Sliding window rate limiter backed by an exact timestamp log.

    A request is admitted only while fewer than ``max_requests`` timestamps
    fall inside ``(now - window_ms, now]``.  Reaching the cap exactly already
    counts as exhausted, so at most ``max_requests`` requests are admitted
    per window.

    :meth:`try_acquire` holds a lock across check and record, so two threads
    sharing a limiter can never both take the last slot.

    Attributes:
        max_requests: Requests admitted per window.  Must be at least 1.
        window_ms: Window length in milliseconds.  Must not be negative.
        purpose: Label used in logs and errors (e.g. ``"mutation"``).
        clock: Returns the current instant in milliseconds.  Defaults to a
            monotonic clock; tests inject a fake.
    """

    max_requests: int = DEFAULT_LIMITS.mutations_per_minute
    window_ms: int = DEFAULT_LIMITS.rate_limit_window_ms
    purpose: str = MUTATION_PURPOSE
    clock: Clock = field(default=_monotonic_ms, repr=False)
    _timestamps: list[float] = field(default_factory=list, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ConfigurationError(
                f"max_requests must be at least 1, got {self.max_requests}"
            )
        if self.window_ms < 0:
            raise ConfigurationError(f"window_ms must not be negative, got {self.window_ms}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _prune(self, now: float) -> None:
        """Drop timestamps at or before ``now - window_ms``."""
        window_start = now - self.window_ms
        self._timestamps = [t for t in self._timestamps if t > window_start]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def timestamps(self) -> tuple[float, ...]:
        """Recorded request instants, oldest first (not pruned)."""
        return tuple(self._timestamps)

    def check(self) -> RateLimitResult:
        """Report whether a request is allowed without consuming a slot.

        Prunes expired timestamps as a side effect.

        Returns:
            A :class:`RateLimitResult`.  When rejected, ``retry_after_ms``
            is the time until the oldest recorded request expires.
        """
        with self._lock:
            now = self.clock()
            self._prune(now)
            used = len(self._timestamps)

            if used >= self.max_requests:
                retry_after = self._timestamps[0] + self.window_ms - now
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    retry_after_ms=max(0, math.ceil(retry_after)),
                )

            return RateLimitResult(allowed=True, remaining=max(0, self.max_requests - used))

    def record(self) -> None:
        """Record a request at the current instant.

        Does not check the limit.  Call it after a successful :meth:`check`,
        or to pre-commit a request speculatively.
        """
        with self._lock:
            now = self.clock()
            self._timestamps.append(now)
            self._prune(now)

    def try_acquire(self) -> RateLimitResult:
        """Check the limit and record the request if it is allowed.

        Returns:
            The result of the check performed before recording.
        """
        with self._lock:
            result = self.check()
            if result.allowed:
                self.record()
            return result

    def reset(self) -> None:
        """Forget every recorded request."""
        with self._lock:
            self._timestamps = []
        logger.debug("Rate limiter reset", extra={"purpose": self.purpose})

    def get_usage(self) -> RateLimitUsage:
        """Prune expired timestamps and report current occupancy."""
        with self._lock:
            self._prune(self.clock())
            used = len(self._timestamps)
            return RateLimitUsage(
                used=used,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - used),
            )


# ---------------------------------------------------------------------------
# Retry message helpers
# ---------------------------------------------------------------------------


def retry_after_seconds(result: RateLimitResult) -> int:
    """Whole seconds until *result* frees a slot, rounded up, at least one.

    A missing or zero ``retry_after_ms`` is reported as one second.
    """
    retry_ms = result.retry_after_ms or 1000
    return max(1, math.ceil(retry_ms / 1000))


def _plural_seconds(seconds: int) -> str:
    return f"{seconds} second{'' if seconds == 1 else 's'}"


# ---------------------------------------------------------------------------
# MutationGuard
# ---------------------------------------------------------------------------


class MutationGuard:
    """Per-caller pair of limiters: general mutations and bio updates.

    Args:
        limits: Registry providing the quotas.  Defaults to
            :data:`~tournament_guard.config.limits.DEFAULT_LIMITS`.
        clock: Shared clock for both limiters.
    """

    def __init__(
        self,
        limits: LimitsRegistry = DEFAULT_LIMITS,
        *,
        clock: Clock = _monotonic_ms,
    ) -> None:
        self.limits = limits
        self.mutation_limiter = RateLimiter(
            max_requests=limits.mutations_per_minute,
            window_ms=limits.rate_limit_window_ms,
            purpose=MUTATION_PURPOSE,
            clock=clock,
        )
        self.bio_limiter = RateLimiter(
            max_requests=1,
            window_ms=limits.bio_update_cooldown_ms,
            purpose=BIO_UPDATE_PURPOSE,
            clock=clock,
        )

    def check_rate_limit(self) -> None:
        """Consume a mutation slot or raise.

        Raises:
            RateLimitExceededError: When the mutation quota is exhausted.
                The message includes a "Try again in N seconds" countdown.
        """
        result = self.mutation_limiter.try_acquire()
        if result.allowed:
            return

        seconds = retry_after_seconds(result)
        logger.info(
            "Rate limited",
            extra={
                "purpose": MUTATION_PURPOSE,
                "retry_after_ms": result.retry_after_ms,
            },
        )
        raise RateLimitExceededError(
            f"{self.limits.messages.rate_limit_exceeded} "
            f"Try again in {_plural_seconds(seconds)}.",
            retry_after_ms=result.retry_after_ms or 0,
            purpose=MUTATION_PURPOSE,
        )

    def can_make_request(self) -> bool:
        """Return whether a mutation would be admitted, without consuming a slot."""
        return self.mutation_limiter.check().allowed

    def check_bio_rate_limit(self) -> str | None:
        """Consume the bio-update slot if free.

        Returns:
            ``None`` when the update is allowed, otherwise a message asking
            the user to wait.
        """
        result = self.bio_limiter.try_acquire()
        if result.allowed:
            return None

        seconds = retry_after_seconds(result)
        logger.info(
            "Rate limited",
            extra={
                "purpose": BIO_UPDATE_PURPOSE,
                "retry_after_ms": result.retry_after_ms,
            },
        )
        return f"Please wait {_plural_seconds(seconds)} before updating your bio again."

    def is_idle(self) -> bool:
        """True when neither limiter holds a timestamp inside its window."""
        return (
            self.mutation_limiter.get_usage().used == 0
            and self.bio_limiter.get_usage().used == 0
        )

    def reset(self) -> None:
        """Reset both limiters."""
        self.mutation_limiter.reset()
        self.bio_limiter.reset()


# ---------------------------------------------------------------------------
# GuardRegistry
# ---------------------------------------------------------------------------


class GuardRegistry:
    """Hands out one :class:`MutationGuard` per caller key.

    Keys are opaque strings chosen by the caller (user id, session id, ...).
    When ``max_tracked_callers`` guards already exist, idle guards are
    evicted before a new one is created.  Guards with requests still inside
    a window are never evicted, so eviction cannot reset anyone's quota.

    Args:
        limits: Registry shared by every guard.
        max_tracked_callers: Size at which idle guards are pruned.
        clock: Clock shared by every guard.
    """

    def __init__(
        self,
        limits: LimitsRegistry = DEFAULT_LIMITS,
        *,
        max_tracked_callers: int = 100,
        clock: Clock = _monotonic_ms,
    ) -> None:
        if max_tracked_callers < 1:
            raise ConfigurationError(
                f"max_tracked_callers must be at least 1, got {max_tracked_callers}"
            )
        self.limits = limits
        self.max_tracked_callers = max_tracked_callers
        self._clock = clock
        self._guards: dict[str, MutationGuard] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, *, clock: Clock = _monotonic_ms) -> GuardRegistry:
        """Build a registry from environment-backed settings."""
        return cls(
            build_limits(settings),
            max_tracked_callers=settings.max_tracked_callers,
            clock=clock,
        )

    def __len__(self) -> int:
        return len(self._guards)

    def __contains__(self, caller_key: object) -> bool:
        return caller_key in self._guards

    def get(self, caller_key: str) -> MutationGuard:
        """Return the guard for *caller_key*, creating it on first use."""
        with self._lock:
            guard = self._guards.get(caller_key)
            if guard is None:
                if len(self._guards) >= self.max_tracked_callers:
                    self._prune_locked()
                guard = MutationGuard(self.limits, clock=self._clock)
                self._guards[caller_key] = guard
            return guard

    def prune(self) -> int:
        """Evict idle guards.

        Returns:
            Number of guards removed.
        """
        with self._lock:
            return self._prune_locked()

    def _prune_locked(self) -> int:
        idle = [key for key, guard in self._guards.items() if guard.is_idle()]
        for key in idle:
            del self._guards[key]
        if idle:
            logger.debug(
                "Evicted idle rate-limit guards",
                extra={"evicted": len(idle), "tracked": len(self._guards)},
            )
        return len(idle)

    def reset(self, caller_key: str | None = None) -> None:
        """Reset one caller's guard, or drop every guard when no key is given."""
        with self._lock:
            if caller_key is None:
                self._guards.clear()
                return
            guard = self._guards.get(caller_key)
        if guard is not None:
            guard.reset()


# ---------------------------------------------------------------------------
# Process default guard
# ---------------------------------------------------------------------------


@lru_cache
def get_default_guard() -> MutationGuard:
    """Return the process-wide guard built from :func:`get_settings`.

    Built lazily on first use.  In tests, call
    ``get_default_guard.cache_clear()`` to start from an empty window.
    """
    return MutationGuard(build_limits(get_settings()))


def check_rate_limit() -> None:
    """Consume a mutation slot on the default guard or raise.

    Raises:
        RateLimitExceededError: When the mutation quota is exhausted.
    """
    get_default_guard().check_rate_limit()


def can_make_request() -> bool:
    """Return whether the default guard would admit a mutation now."""
    return get_default_guard().can_make_request()


def check_bio_rate_limit() -> str | None:
    """Consume the default guard's bio slot; return a wait message if taken."""
    return get_default_guard().check_bio_rate_limit()
