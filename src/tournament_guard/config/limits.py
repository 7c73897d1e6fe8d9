"""Resource limits shared by every validator and rate limiter.

:data:`DEFAULT_LIMITS` is the single source of truth for the thresholds the
admission gate enforces: tournament, round, player, title, text-field,
rate-limit, username, bio and import size limits.  The registry is a frozen
dataclass, so a value built at startup cannot drift at runtime.

Components never import :data:`DEFAULT_LIMITS` implicitly when a caller has
injected a registry; every validator and every
:class:`~tournament_guard.core.rate_limiter.MutationGuard` takes a ``limits``
argument and only falls back to the defaults when none is given.  Use
:func:`build_limits` to derive a registry from :class:`Settings` overrides::

    from tournament_guard.config import build_limits, get_settings

    limits = build_limits(get_settings())

A trusted backend must enforce the same or stricter limits; these values
only gate requests before they leave the process.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from tournament_guard.core.exceptions import ConfigurationError
from tournament_guard.tournaments.round_robin import get_round_robin_max_players

if TYPE_CHECKING:
    from tournament_guard.config.settings import Settings


@dataclass(frozen=True)
class LimitMessages:
    """Human-readable messages rendered from a :class:`LimitsRegistry`.

    Attributes mirror the product copy shown next to the offending control.
    They are built once per registry so the numbers always match the limits
    actually enforced.
    """

    tournament_limit_reached: str
    player_limit_reached: str
    round_limit_reached: str
    title_limit_reached: str
    round_robin_player_limit_reached: str
    rate_limit_exceeded: str
    invalid_tournament_name: str
    invalid_player_name: str
    invalid_rating: str
    invalid_rounds: str


@dataclass(frozen=True)
class LimitsRegistry:
    """Immutable table of named thresholds.

    Attributes:
        max_tournaments_per_user: Tournaments a single account may own.
        min_tournament_name_length: Shortest accepted sanitized name.
        max_tournament_name_length: Longest accepted sanitized name.
        min_rounds_per_tournament: Lower bound for ``total_rounds``.
        max_rounds_per_tournament: Upper bound for ``total_rounds`` and for
            the number of rounds a tournament document may hold.
        max_players_per_tournament: Player roster cap.
        min_player_name_length: Shortest accepted sanitized player name.
        max_player_name_length: Longest accepted sanitized player name.
        max_rating: Highest accepted rating.
        min_rating: Lowest accepted rating.
        max_titles_per_player: Titles a single player may carry.
        max_custom_titles_per_tournament: Custom title definitions per
            tournament.
        max_title_name_length: Longest custom title name.
        max_description_length: Tournament description cap.
        max_location_length: Location and federation cap.
        max_time_control_length: Time-control string cap.
        max_organizer_length: Organizers field cap.
        max_arbiter_length: Tournament director and chief arbiter cap.
        mutations_per_minute: Mutation quota per rate-limit window.
        rate_limit_window_ms: Sliding window length for the mutation quota.
        max_requests_per_window: Per-caller quota used by backend-style
            admission (same window as the mutation quota).
        max_username_length: Longest accepted trimmed username.
        min_username_length: Shortest accepted trimmed username.
        max_bio_length: Longest accepted sanitized bio.
        bio_update_cooldown_ms: Window of the one-update bio limiter.
        max_csv_file_size_bytes: Largest accepted CSV import.
        max_tournament_data_length: Largest serialized tournament document
            or player database.
    """

    # Tournament limits
    max_tournaments_per_user: int = 10
    min_tournament_name_length: int = 1
    max_tournament_name_length: int = 100

    # Round limits
    min_rounds_per_tournament: int = 1
    max_rounds_per_tournament: int = 50

    # Player limits
    max_players_per_tournament: int = 300
    min_player_name_length: int = 1
    max_player_name_length: int = 100
    max_rating: int = 1_000_000
    min_rating: int = 0
    max_titles_per_player: int = 5

    # Custom title limits
    max_custom_titles_per_tournament: int = 10
    max_title_name_length: int = 20

    # Text field limits
    max_description_length: int = 100
    max_location_length: int = 100
    max_time_control_length: int = 50
    max_organizer_length: int = 100
    max_arbiter_length: int = 100

    # Rate limiting
    mutations_per_minute: int = 30
    rate_limit_window_ms: int = 60 * 1000
    max_requests_per_window: int = 30

    # User profile limits
    max_username_length: int = 20
    min_username_length: int = 3
    max_bio_length: int = 500
    bio_update_cooldown_ms: int = 30 * 1000

    # Import limits
    max_csv_file_size_bytes: int = 100 * 1024
    max_tournament_data_length: int = 200 * 1024

    messages: LimitMessages = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for f in dataclasses.fields(self):
            if f.name == "messages":
                continue
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(
                    f"Limit {f.name!r} must be a non-negative integer, got {value!r}"
                )
        if self.mutations_per_minute < 1 or self.max_requests_per_window < 1:
            raise ConfigurationError("Rate-limit quotas must allow at least one request")
        if self.min_rounds_per_tournament > self.max_rounds_per_tournament:
            raise ConfigurationError("min_rounds_per_tournament exceeds max_rounds_per_tournament")
        if self.min_username_length > self.max_username_length:
            raise ConfigurationError("min_username_length exceeds max_username_length")
        # Frozen dataclass: bypass __setattr__ for the derived field.
        object.__setattr__(self, "messages", self._render_messages())

    @property
    def max_round_robin_players(self) -> int:
        """Largest roster a round-robin can schedule within the round cap."""
        return get_round_robin_max_players(self.max_rounds_per_tournament)

    def as_dict(self) -> dict[str, int]:
        """Return the registry as a ``{limit_name: value}`` mapping.

        Includes the derived ``max_round_robin_players`` entry.
        """
        values = {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if f.name != "messages"
        }
        values["max_round_robin_players"] = self.max_round_robin_players
        return values

    def replace(self, **overrides: Any) -> LimitsRegistry:
        """Return a copy of this registry with *overrides* applied."""
        return dataclasses.replace(self, **overrides)

    def _render_messages(self) -> LimitMessages:
        return LimitMessages(
            tournament_limit_reached=(
                f"You can create a maximum of {self.max_tournaments_per_user} tournaments."
            ),
            player_limit_reached=(
                f"A tournament can have a maximum of {self.max_players_per_tournament} players."
            ),
            round_limit_reached=(
                f"A tournament can have a maximum of {self.max_rounds_per_tournament} rounds."
            ),
            title_limit_reached=(
                "A tournament can have a maximum of "
                f"{self.max_custom_titles_per_tournament} custom titles."
            ),
            round_robin_player_limit_reached=(
                "Round-robin tournaments can have at most "
                f"{self.max_round_robin_players} players."
            ),
            rate_limit_exceeded=(
                "Too many requests. Please wait around 1 minute before trying again."
            ),
            invalid_tournament_name=(
                f"Tournament name must be between {self.min_tournament_name_length} "
                f"and {self.max_tournament_name_length} characters."
            ),
            invalid_player_name=(
                f"Player name must be between {self.min_player_name_length} "
                f"and {self.max_player_name_length} characters."
            ),
            invalid_rating=f"Rating must be between {self.min_rating} and {self.max_rating}.",
            invalid_rounds=(
                f"Rounds must be between {self.min_rounds_per_tournament} "
                f"and {self.max_rounds_per_tournament}."
            ),
        )


DEFAULT_LIMITS: LimitsRegistry = LimitsRegistry()
"""Process-wide default limits.

Used whenever a component is constructed without an explicit registry.
Applications that override limits through the environment should build
their own registry with :func:`build_limits` and pass it down instead.
"""


def build_limits(settings: Settings) -> LimitsRegistry:
    """Build a :class:`LimitsRegistry` from environment-backed settings.

    Only the rate-limit values are configurable; every other limit is part
    of the product contract and stays at its default.

    Args:
        settings: The validated application settings.

    Returns:
        A new registry carrying the configured rate-limit values.

    Raises:
        ConfigurationError: If the configured values are out of range.
    """
    return DEFAULT_LIMITS.replace(
        mutations_per_minute=settings.mutations_per_minute,
        max_requests_per_window=settings.mutations_per_minute,
        rate_limit_window_ms=settings.rate_limit_window_ms,
        bio_update_cooldown_ms=settings.bio_update_cooldown_ms,
    )


# ---------------------------------------------------------------------------
# Resource-count helpers
# ---------------------------------------------------------------------------


def can_create_tournament(current_count: int, limits: LimitsRegistry = DEFAULT_LIMITS) -> bool:
    return current_count < limits.max_tournaments_per_user


def can_add_player(current_count: int, limits: LimitsRegistry = DEFAULT_LIMITS) -> bool:
    return current_count < limits.max_players_per_tournament


def can_create_round(current_count: int, limits: LimitsRegistry = DEFAULT_LIMITS) -> bool:
    return current_count < limits.max_rounds_per_tournament


def can_add_custom_title(current_count: int, limits: LimitsRegistry = DEFAULT_LIMITS) -> bool:
    return current_count < limits.max_custom_titles_per_tournament


def get_remaining_tournaments(current_count: int, limits: LimitsRegistry = DEFAULT_LIMITS) -> int:
    return max(0, limits.max_tournaments_per_user - current_count)


def get_remaining_players(current_count: int, limits: LimitsRegistry = DEFAULT_LIMITS) -> int:
    return max(0, limits.max_players_per_tournament - current_count)


def get_remaining_rounds(current_count: int, limits: LimitsRegistry = DEFAULT_LIMITS) -> int:
    return max(0, limits.max_rounds_per_tournament - current_count)


def get_remaining_custom_titles(
    current_count: int, limits: LimitsRegistry = DEFAULT_LIMITS
) -> int:
    return max(0, limits.max_custom_titles_per_tournament - current_count)
