"""Unit tests for RateLimiter, MutationGuard and GuardRegistry.

Tests cover:
- RateLimiter rejects invalid construction values with ConfigurationError
- RateLimiter.check() admits up to max_requests and never consumes a slot
- RateLimiter.check() reports retry_after_ms from the oldest timestamp
- RateLimiter prunes timestamps at exactly now - window_ms (boundary)
- RateLimiter recovers automatically once the window has passed
- RateLimiter.try_acquire() records only admitted requests
- RateLimiter.reset() restores full capacity
- RateLimiter.get_usage() reports occupancy after pruning
- Sliding-window equivalence for an arbitrary record() sequence
- retry_after_seconds() rounds up and never reports less than one second
- MutationGuard.check_rate_limit() raises RateLimitExceededError with countdown
- MutationGuard.can_make_request() does not consume a slot
- MutationGuard.check_bio_rate_limit() enforces the bio cooldown
- GuardRegistry isolates callers and evicts only idle guards
- Module-level helpers operate on the lazily built default guard

Time is driven by FakeClock; no test sleeps.
"""

from __future__ import annotations

import threading

import pytest

from tests.conftest import FakeClock
from tournament_guard.config.limits import DEFAULT_LIMITS
from tournament_guard.config.settings import Settings
from tournament_guard.core.exceptions import ConfigurationError, RateLimitExceededError
from tournament_guard.core.rate_limiter import (
    BIO_UPDATE_PURPOSE,
    MUTATION_PURPOSE,
    GuardRegistry,
    MutationGuard,
    RateLimiter,
    RateLimitResult,
    can_make_request,
    check_bio_rate_limit,
    check_rate_limit,
    get_default_guard,
    retry_after_seconds,
)


# ---------------------------------------------------------------------------
# Helper: build a RateLimiter driven by a fake clock
# ---------------------------------------------------------------------------


def _make_limiter(
    *,
    max_requests: int = 3,
    window_ms: int = 1_000,
    start: float = 10_000,
) -> tuple[RateLimiter, FakeClock]:
    """Return a (RateLimiter, FakeClock) pair with the clock at *start*."""
    clock = FakeClock(start=start)
    limiter = RateLimiter(max_requests=max_requests, window_ms=window_ms, clock=clock)
    return limiter, clock


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestRateLimiterConstruction:
    def test_defaults_match_mutation_limits(self) -> None:
        limiter = RateLimiter()
        assert limiter.max_requests == 30
        assert limiter.window_ms == 60_000
        assert limiter.purpose == MUTATION_PURPOSE

    def test_zero_max_requests_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            RateLimiter(max_requests=0, window_ms=1_000)

    def test_negative_window_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            RateLimiter(max_requests=1, window_ms=-1)

    def test_configuration_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            RateLimiter(max_requests=-5, window_ms=1_000)


# ---------------------------------------------------------------------------
# check / record / try_acquire
# ---------------------------------------------------------------------------


class TestRateLimiterCheck:
    def test_empty_limiter_allows_with_full_remaining(self) -> None:
        limiter, _ = _make_limiter(max_requests=3)
        result = limiter.check()
        assert result == RateLimitResult(allowed=True, remaining=3, retry_after_ms=None)

    def test_check_does_not_consume_a_slot(self) -> None:
        limiter, _ = _make_limiter(max_requests=1)
        for _ in range(5):
            assert limiter.check().allowed is True
        assert limiter.timestamps == ()

    def test_remaining_decreases_with_records(self) -> None:
        limiter, _ = _make_limiter(max_requests=3)
        limiter.record()
        assert limiter.check().remaining == 2
        limiter.record()
        assert limiter.check().remaining == 1

    def test_reaching_the_cap_exactly_blocks(self) -> None:
        """The cap is inclusive: max_requests recorded means the next is rejected."""
        limiter, _ = _make_limiter(max_requests=2)
        limiter.record()
        limiter.record()
        result = limiter.check()
        assert result.allowed is False
        assert result.remaining == 0

    def test_retry_after_measures_from_oldest_timestamp(self) -> None:
        limiter, clock = _make_limiter(max_requests=2, window_ms=1_000)
        limiter.record()  # t = 10_000
        clock.advance(300)
        limiter.record()  # t = 10_300
        clock.advance(200)  # now = 10_500
        result = limiter.check()
        assert result.allowed is False
        assert result.retry_after_ms == 500

    def test_retry_after_is_rounded_up_to_whole_ms(self) -> None:
        limiter, clock = _make_limiter(max_requests=1, window_ms=1_000, start=0.25)
        limiter.record()
        clock.advance(0.5)
        assert limiter.check().retry_after_ms == 1_000

    def test_timestamp_at_window_edge_is_pruned(self) -> None:
        """A request exactly window_ms old no longer counts."""
        limiter, clock = _make_limiter(max_requests=1, window_ms=1_000)
        limiter.record()
        clock.advance(999)
        assert limiter.check().allowed is False
        clock.advance(1)
        assert limiter.check().allowed is True
        assert limiter.timestamps == ()

    def test_zero_window_never_blocks(self) -> None:
        limiter, _ = _make_limiter(max_requests=1, window_ms=0)
        for _ in range(3):
            assert limiter.try_acquire().allowed is True

    def test_record_is_unconditional(self) -> None:
        limiter, _ = _make_limiter(max_requests=1)
        limiter.record()
        limiter.record()
        assert len(limiter.timestamps) == 2
        assert limiter.get_usage().remaining == 0


class TestRateLimiterTryAcquire:
    def test_same_instant_burst_admits_exactly_max_requests(self) -> None:
        limiter, _ = _make_limiter(max_requests=30, window_ms=60_000)
        results = [limiter.try_acquire() for _ in range(31)]
        assert all(r.allowed for r in results[:30])
        assert results[30].allowed is False
        assert results[30].retry_after_ms is not None
        assert results[30].retry_after_ms > 0

    def test_rejected_attempt_is_not_recorded(self) -> None:
        limiter, _ = _make_limiter(max_requests=1)
        limiter.try_acquire()
        limiter.try_acquire()
        assert len(limiter.timestamps) == 1

    def test_returned_remaining_is_pre_record_value(self) -> None:
        limiter, _ = _make_limiter(max_requests=3)
        assert limiter.try_acquire().remaining == 3
        assert limiter.try_acquire().remaining == 2

    def test_recovers_after_window(self) -> None:
        limiter, clock = _make_limiter(max_requests=2, window_ms=1_000)
        limiter.try_acquire()
        limiter.try_acquire()
        assert limiter.try_acquire().allowed is False
        clock.advance(1_000)
        assert limiter.try_acquire().allowed is True

    def test_concurrent_acquires_never_exceed_cap(self) -> None:
        limiter, _ = _make_limiter(max_requests=10, window_ms=60_000)
        admitted: list[bool] = []
        lock = threading.Lock()

        def worker() -> None:
            for _ in range(10):
                result = limiter.try_acquire()
                with lock:
                    admitted.append(result.allowed)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert admitted.count(True) == 10


class TestSlidingWindowEquivalence:
    def test_usage_matches_brute_force_count(self) -> None:
        """After any record() sequence, used == count of timestamps in (now - w, now]."""
        window = 1_000
        limiter, clock = _make_limiter(max_requests=1_000, window_ms=window, start=0)
        recorded: list[float] = []
        steps = [0, 10, 250, 0, 600, 140, 1, 999, 1_000, 3, 2_500, 0, 400]

        for step in steps:
            clock.advance(step)
            limiter.record()
            recorded.append(clock.now)
            expected = sum(1 for t in recorded if clock.now - window < t <= clock.now)
            assert limiter.get_usage().used == expected

    def test_timestamps_stay_ascending_and_in_window(self) -> None:
        limiter, clock = _make_limiter(max_requests=100, window_ms=500, start=0)
        for step in (0, 100, 100, 400, 50, 600, 10):
            clock.advance(step)
            limiter.record()
            stamps = limiter.timestamps
            assert list(stamps) == sorted(stamps)
            assert all(clock.now - 500 < t <= clock.now for t in stamps)


class TestRateLimiterResetAndUsage:
    def test_reset_restores_full_capacity(self) -> None:
        limiter, _ = _make_limiter(max_requests=2)
        limiter.try_acquire()
        limiter.try_acquire()
        limiter.reset()
        result = limiter.check()
        assert result.allowed is True
        assert result.remaining == 2

    def test_get_usage_reports_after_pruning(self) -> None:
        limiter, clock = _make_limiter(max_requests=5, window_ms=1_000)
        limiter.record()
        clock.advance(600)
        limiter.record()
        usage = limiter.get_usage()
        assert (usage.used, usage.limit, usage.remaining) == (2, 5, 3)
        clock.advance(400)
        assert limiter.get_usage().used == 1

    def test_limiters_compare_by_identity(self) -> None:
        first, _ = _make_limiter()
        second, _ = _make_limiter()
        assert first != second


class TestRetryAfterSeconds:
    @pytest.mark.parametrize(
        ("retry_after_ms", "expected"),
        [(None, 1), (0, 1), (1, 1), (999, 1), (1_000, 1), (1_001, 2), (59_999, 60)],
    )
    def test_rounding(self, retry_after_ms: int | None, expected: int) -> None:
        result = RateLimitResult(allowed=False, remaining=0, retry_after_ms=retry_after_ms)
        assert retry_after_seconds(result) == expected


# ---------------------------------------------------------------------------
# MutationGuard
# ---------------------------------------------------------------------------


class TestMutationGuard:
    def test_check_rate_limit_admits_quota_then_raises(self, guard: MutationGuard) -> None:
        for _ in range(30):
            guard.check_rate_limit()
        with pytest.raises(RateLimitExceededError) as exc_info:
            guard.check_rate_limit()

        err = exc_info.value
        assert err.purpose == MUTATION_PURPOSE
        assert err.retry_after_ms == 60_000
        assert str(err) == (
            "Too many requests. Please wait around 1 minute before trying again. "
            "Try again in 60 seconds."
        )

    def test_countdown_uses_singular_second(
        self, guard: MutationGuard, fake_clock: FakeClock
    ) -> None:
        for _ in range(30):
            guard.check_rate_limit()
        fake_clock.advance(59_500)
        with pytest.raises(RateLimitExceededError) as exc_info:
            guard.check_rate_limit()
        assert str(exc_info.value).endswith("Try again in 1 second.")
        assert exc_info.value.retry_after_seconds == 1

    def test_quota_comes_from_injected_limits(self, fake_clock: FakeClock) -> None:
        guard = MutationGuard(DEFAULT_LIMITS.replace(mutations_per_minute=2), clock=fake_clock)
        guard.check_rate_limit()
        guard.check_rate_limit()
        with pytest.raises(RateLimitExceededError):
            guard.check_rate_limit()

    def test_can_make_request_does_not_consume(self, guard: MutationGuard) -> None:
        for _ in range(100):
            assert guard.can_make_request() is True
        assert guard.mutation_limiter.get_usage().used == 0

    def test_can_make_request_false_when_exhausted(self, guard: MutationGuard) -> None:
        for _ in range(30):
            guard.check_rate_limit()
        assert guard.can_make_request() is False

    def test_bio_cooldown(self, guard: MutationGuard, fake_clock: FakeClock) -> None:
        assert guard.check_bio_rate_limit() is None
        fake_clock.advance(10_000)
        assert guard.check_bio_rate_limit() == (
            "Please wait 20 seconds before updating your bio again."
        )
        fake_clock.advance(20_000)
        assert guard.check_bio_rate_limit() is None

    def test_bio_limiter_is_separate_from_mutations(self, guard: MutationGuard) -> None:
        assert guard.bio_limiter.purpose == BIO_UPDATE_PURPOSE
        assert guard.check_bio_rate_limit() is None
        assert guard.mutation_limiter.get_usage().used == 0

    def test_reset_clears_both_limiters(self, guard: MutationGuard) -> None:
        for _ in range(30):
            guard.check_rate_limit()
        guard.check_bio_rate_limit()
        guard.reset()
        assert guard.is_idle() is True
        assert guard.can_make_request() is True
        assert guard.check_bio_rate_limit() is None

    def test_is_idle_after_window_passes(
        self, guard: MutationGuard, fake_clock: FakeClock
    ) -> None:
        guard.check_rate_limit()
        assert guard.is_idle() is False
        fake_clock.advance(60_000)
        assert guard.is_idle() is True


# ---------------------------------------------------------------------------
# GuardRegistry
# ---------------------------------------------------------------------------


class TestGuardRegistry:
    def test_same_key_returns_same_guard(self, fake_clock: FakeClock) -> None:
        registry = GuardRegistry(clock=fake_clock)
        assert registry.get("alice") is registry.get("alice")
        assert "alice" in registry
        assert len(registry) == 1

    def test_callers_do_not_share_quota(self, fake_clock: FakeClock) -> None:
        registry = GuardRegistry(DEFAULT_LIMITS.replace(mutations_per_minute=1), clock=fake_clock)
        registry.get("alice").check_rate_limit()
        with pytest.raises(RateLimitExceededError):
            registry.get("alice").check_rate_limit()
        registry.get("bob").check_rate_limit()

    def test_idle_guards_evicted_when_full(self, fake_clock: FakeClock) -> None:
        registry = GuardRegistry(max_tracked_callers=2, clock=fake_clock)
        registry.get("idle")
        registry.get("busy").check_rate_limit()
        registry.get("new")
        assert "idle" not in registry
        assert "busy" in registry
        assert "new" in registry

    def test_eviction_starts_once_size_is_reached(self, fake_clock: FakeClock) -> None:
        registry = GuardRegistry(max_tracked_callers=3, clock=fake_clock)
        registry.get("a")
        registry.get("b")
        registry.get("c")
        assert len(registry) == 3
        registry.get("d")
        assert len(registry) == 1
        assert "d" in registry

    def test_busy_guards_survive_eviction(self, fake_clock: FakeClock) -> None:
        registry = GuardRegistry(max_tracked_callers=2, clock=fake_clock)
        registry.get("a").check_rate_limit()
        registry.get("b").check_rate_limit()
        registry.get("c")
        assert len(registry) == 3

    def test_prune_returns_evicted_count(self, fake_clock: FakeClock) -> None:
        registry = GuardRegistry(clock=fake_clock)
        registry.get("a").check_rate_limit()
        registry.get("b")
        registry.get("c")
        assert registry.prune() == 2
        fake_clock.advance(60_000)
        assert registry.prune() == 1
        assert len(registry) == 0

    def test_reset_single_caller(self, fake_clock: FakeClock) -> None:
        registry = GuardRegistry(DEFAULT_LIMITS.replace(mutations_per_minute=1), clock=fake_clock)
        registry.get("alice").check_rate_limit()
        registry.reset("alice")
        registry.get("alice").check_rate_limit()

    def test_reset_all(self, fake_clock: FakeClock) -> None:
        registry = GuardRegistry(clock=fake_clock)
        registry.get("a")
        registry.get("b")
        registry.reset()
        assert len(registry) == 0

    def test_invalid_size_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            GuardRegistry(max_tracked_callers=0)

    def test_from_settings(self, fake_clock: FakeClock) -> None:
        settings = Settings(mutations_per_minute=5, max_tracked_callers=7)
        registry = GuardRegistry.from_settings(settings, clock=fake_clock)
        assert registry.max_tracked_callers == 7
        assert registry.get("x").mutation_limiter.max_requests == 5


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


class TestDefaultGuardHelpers:
    def test_default_guard_is_cached(self) -> None:
        assert get_default_guard() is get_default_guard()

    def test_default_guard_reads_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOURNAMENT_GUARD_MUTATIONS_PER_MINUTE", "2")
        monkeypatch.setenv("TOURNAMENT_GUARD_BIO_UPDATE_COOLDOWN_MS", "5000")
        guard = get_default_guard()
        assert guard.mutation_limiter.max_requests == 2
        assert guard.bio_limiter.window_ms == 5_000

    def test_helpers_share_the_default_guard(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOURNAMENT_GUARD_MUTATIONS_PER_MINUTE", "1")
        assert can_make_request() is True
        check_rate_limit()
        assert can_make_request() is False
        with pytest.raises(RateLimitExceededError):
            check_rate_limit()

    def test_bio_helper(self) -> None:
        assert check_bio_rate_limit() is None
        message = check_bio_rate_limit()
        assert message is not None
        assert message.startswith("Please wait ")
