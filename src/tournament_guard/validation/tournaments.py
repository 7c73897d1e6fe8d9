"""Tournament, player, custom title and settings validation.

Field validators take the raw value plus an optional
:class:`~tournament_guard.config.limits.LimitsRegistry` and return a
:class:`~tournament_guard.validation.base.ValidationResult`.  Text fields
are sanitized before their length is measured, so markup never counts
toward (or hides behind) a limit.

Composite validators run their field checks in a fixed order and report
only the first failure:

- :func:`validate_tournament_input`: name, system, bye value, total rounds
- :func:`validate_player_input`: name, rating, FIDE id, titles
- :func:`validate_custom_title_input`: name, colour
- :func:`validate_tournament_settings`: dates, text fields, total rounds

Composites accept either the input dataclasses below or plain mappings
using the web client's camelCase keys (``byeValue``, ``totalRounds``,
``fideId``).
"""

from __future__ import annotations

import datetime
import math
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from tournament_guard.config.limits import DEFAULT_LIMITS, LimitsRegistry
from tournament_guard.core.sanitizer import sanitize_string, sanitize_text_field
from tournament_guard.tournaments.round_robin import get_round_robin_required_rounds
from tournament_guard.validation.base import ValidationResult, read_field, run_chain

_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
_DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")

VALID_BYE_VALUES: tuple[float, ...] = (0, 0.5, 1)


class TournamentSystem(str, Enum):
    """Pairing systems a tournament can be created with."""

    NORMAL_SWISS = "normal-swiss"
    ROUND_ROBIN = "round-robin"


_VALID_SYSTEMS: tuple[str, ...] = tuple(s.value for s in TournamentSystem)


# ---------------------------------------------------------------------------
# Input bundles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TournamentInput:
    """Fields required to create a tournament."""

    name: Any
    system: Any
    bye_value: Any
    total_rounds: Any


@dataclass(frozen=True)
class PlayerInput:
    """Fields required to add or edit a player.

    ``fide_id`` and ``titles`` are optional; ``titles`` is only validated
    when provided.
    """

    name: Any
    rating: Any
    fide_id: Any = None
    titles: Any = None


@dataclass(frozen=True)
class CustomTitleInput:
    """A tournament-specific title badge."""

    name: Any
    color: Any


@dataclass(frozen=True)
class TournamentSettingsUpdate:
    """Partial update of a tournament's settings tab.

    Every field is optional; ``None`` means "leave unchanged".
    """

    start_date: Any = None
    end_date: Any = None
    time_control: Any = None
    location: Any = None
    federation: Any = None
    organizers: Any = None
    tournament_director: Any = None
    chief_arbiter: Any = None
    description: Any = None
    total_rounds: Any = None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_whole_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


# ---------------------------------------------------------------------------
# Tournament validation
# ---------------------------------------------------------------------------


def validate_tournament_name(name: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> ValidationResult:
    sanitized = sanitize_string(name)
    if len(sanitized) < limits.min_tournament_name_length:
        return ValidationResult.fail("Tournament name is required.")
    if len(sanitized) > limits.max_tournament_name_length:
        return ValidationResult.fail(limits.messages.invalid_tournament_name)
    return ValidationResult.ok()


def validate_tournament_system(
    system: Any, limits: LimitsRegistry = DEFAULT_LIMITS  # noqa: ARG001
) -> ValidationResult:
    if not isinstance(system, str) or system not in _VALID_SYSTEMS:
        return ValidationResult.fail("Invalid tournament system.")
    return ValidationResult.ok()


def validate_bye_value(
    bye_value: Any, limits: LimitsRegistry = DEFAULT_LIMITS  # noqa: ARG001
) -> ValidationResult:
    if not _is_number(bye_value) or bye_value not in VALID_BYE_VALUES:
        return ValidationResult.fail("Bye value must be 0, 0.5, or 1.")
    return ValidationResult.ok()


def validate_total_rounds(rounds: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> ValidationResult:
    if not _is_whole_number(rounds):
        return ValidationResult.fail("Rounds must be a whole number.")
    if not limits.min_rounds_per_tournament <= rounds <= limits.max_rounds_per_tournament:
        return ValidationResult.fail(limits.messages.invalid_rounds)
    return ValidationResult.ok()


def coerce_tournament_input(source: Any) -> TournamentInput:
    """Build a :class:`TournamentInput` from a dataclass, object or mapping."""
    if isinstance(source, TournamentInput):
        return source
    return TournamentInput(
        name=read_field(source, "name"),
        system=read_field(source, "system"),
        bye_value=read_field(source, "bye_value", "byeValue"),
        total_rounds=read_field(source, "total_rounds", "totalRounds"),
    )


def validate_tournament_input(
    source: Any, limits: LimitsRegistry = DEFAULT_LIMITS
) -> ValidationResult:
    """Validate a tournament-creation payload, stopping at the first failure.

    Order: name, system, bye value, total rounds.

    Example::

        >>> validate_tournament_input(
        ...     {"name": "", "system": "normal-swiss", "byeValue": 0.5, "totalRounds": 5}
        ... ).error
        'Tournament name is required.'
    """
    data = coerce_tournament_input(source)
    return run_chain([
        lambda: validate_tournament_name(data.name, limits),
        lambda: validate_tournament_system(data.system, limits),
        lambda: validate_bye_value(data.bye_value, limits),
        lambda: validate_total_rounds(data.total_rounds, limits),
    ])


def sanitize_tournament_input(
    source: Any, limits: LimitsRegistry = DEFAULT_LIMITS
) -> TournamentInput:
    """Return the payload with its name sanitized and capped to the name limit."""
    data = coerce_tournament_input(source)
    return replace(data, name=sanitize_text_field(data.name, limits.max_tournament_name_length))


# ---------------------------------------------------------------------------
# Player validation
# ---------------------------------------------------------------------------


def validate_player_name(name: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> ValidationResult:
    sanitized = sanitize_string(name)
    if len(sanitized) < limits.min_player_name_length:
        return ValidationResult.fail("Player name is required.")
    if len(sanitized) > limits.max_player_name_length:
        return ValidationResult.fail(limits.messages.invalid_player_name)
    return ValidationResult.ok()


def validate_rating(rating: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> ValidationResult:
    # math.isnan would overflow on ints too large for a float
    if not _is_number(rating) or (isinstance(rating, float) and math.isnan(rating)):
        return ValidationResult.fail("Rating must be a number.")
    if not limits.min_rating <= rating <= limits.max_rating:
        return ValidationResult.fail(limits.messages.invalid_rating)
    return ValidationResult.ok()


def validate_fide_id(
    fide_id: Any, limits: LimitsRegistry = DEFAULT_LIMITS  # noqa: ARG001
) -> ValidationResult:
    if fide_id is None:
        return ValidationResult.ok()
    if not _is_whole_number(fide_id) or fide_id <= 0:
        return ValidationResult.fail("FIDE ID must be a positive integer.")
    return ValidationResult.ok()


def validate_player_titles(titles: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> ValidationResult:
    if not isinstance(titles, (list, tuple)):
        return ValidationResult.fail("Titles must be an array.")
    if len(titles) > limits.max_titles_per_player:
        return ValidationResult.fail(
            f"A player can have at most {limits.max_titles_per_player} titles."
        )
    return ValidationResult.ok()


def coerce_player_input(source: Any) -> PlayerInput:
    """Build a :class:`PlayerInput` from a dataclass, object or mapping."""
    if isinstance(source, PlayerInput):
        return source
    return PlayerInput(
        name=read_field(source, "name"),
        rating=read_field(source, "rating"),
        fide_id=read_field(source, "fide_id", "fideId"),
        titles=read_field(source, "titles"),
    )


def validate_player_input(source: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> ValidationResult:
    """Validate a player payload, stopping at the first failure.

    Order: name, rating, FIDE id, titles.  Titles are skipped when absent.
    """
    data = coerce_player_input(source)
    checks = [
        lambda: validate_player_name(data.name, limits),
        lambda: validate_rating(data.rating, limits),
        lambda: validate_fide_id(data.fide_id, limits),
    ]
    if data.titles is not None:
        checks.append(lambda: validate_player_titles(data.titles, limits))
    return run_chain(checks)


def sanitize_player_input(source: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> PlayerInput:
    """Return the payload with a sanitized name and a concrete titles list."""
    data = coerce_player_input(source)
    return replace(
        data,
        name=sanitize_text_field(data.name, limits.max_player_name_length),
        titles=list(data.titles) if data.titles is not None else [],
    )


# ---------------------------------------------------------------------------
# Settings validation
# ---------------------------------------------------------------------------


def validate_date_string(
    value: Any, limits: LimitsRegistry = DEFAULT_LIMITS  # noqa: ARG001
) -> ValidationResult:
    """Accept an empty value or a real ``YYYY-MM-DD`` calendar date."""
    if not value:
        return ValidationResult.ok()
    if not isinstance(value, str) or not _DATE_RE.fullmatch(value):
        return ValidationResult.fail("Invalid date format. Use YYYY-MM-DD.")
    try:
        datetime.date.fromisoformat(value)
    except ValueError:
        return ValidationResult.fail("Invalid date.")
    return ValidationResult.ok()


def validate_time_control(time_control: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> ValidationResult:
    if time_control is None or time_control == "":
        return ValidationResult.ok()
    if not isinstance(time_control, str):
        return ValidationResult.fail("Time control must be text.")
    if len(sanitize_string(time_control)) > limits.max_time_control_length:
        return ValidationResult.fail(
            f"Time control cannot exceed {limits.max_time_control_length} characters."
        )
    return ValidationResult.ok()


def validate_text_field(value: Any, label: str, max_length: int) -> ValidationResult:
    """Accept an empty value or one whose sanitized length fits *max_length*."""
    if value is None or value == "":
        return ValidationResult.ok()
    if not isinstance(value, str):
        return ValidationResult.fail(f"{label} must be text.")
    if len(sanitize_string(value)) > max_length:
        return ValidationResult.fail(f"{label} cannot exceed {max_length} characters.")
    return ValidationResult.ok()


def _settings_text_fields(limits: LimitsRegistry) -> tuple[tuple[str, str, int], ...]:
    # (attribute, label, cap)
    return (
        ("location", "Location", limits.max_location_length),
        ("federation", "Federation", limits.max_location_length),
        ("organizers", "Organizers", limits.max_organizer_length),
        ("tournament_director", "Tournament Director", limits.max_arbiter_length),
        ("chief_arbiter", "Chief Arbiter", limits.max_arbiter_length),
        ("description", "Description", limits.max_description_length),
    )


def coerce_settings_update(source: Any) -> TournamentSettingsUpdate:
    """Build a :class:`TournamentSettingsUpdate` from a dataclass, object or mapping."""
    if isinstance(source, TournamentSettingsUpdate):
        return source
    return TournamentSettingsUpdate(
        start_date=read_field(source, "start_date", "startDate"),
        end_date=read_field(source, "end_date", "endDate"),
        time_control=read_field(source, "time_control", "timeControl"),
        location=read_field(source, "location"),
        federation=read_field(source, "federation"),
        organizers=read_field(source, "organizers"),
        tournament_director=read_field(source, "tournament_director", "tournamentDirector"),
        chief_arbiter=read_field(source, "chief_arbiter", "chiefArbiter"),
        description=read_field(source, "description"),
        total_rounds=read_field(source, "total_rounds", "totalRounds"),
    )


def validate_tournament_settings(
    source: Any,
    limits: LimitsRegistry = DEFAULT_LIMITS,
    *,
    existing_round_count: int = 0,
) -> ValidationResult:
    """Validate a settings update, stopping at the first failure.

    Order: start date, end date, time control, text fields, total rounds.
    Total rounds are only checked when present and may not drop below the
    number of rounds already played.
    """
    data = coerce_settings_update(source)
    checks = [
        lambda: validate_date_string(data.start_date, limits),
        lambda: validate_date_string(data.end_date, limits),
        lambda: validate_time_control(data.time_control, limits),
    ]
    for attribute, label, cap in _settings_text_fields(limits):
        value = getattr(data, attribute)
        checks.append(lambda value=value, label=label, cap=cap: validate_text_field(value, label, cap))
    if data.total_rounds is not None:
        checks.append(lambda: validate_total_rounds(data.total_rounds, limits))
        checks.append(lambda: _validate_rounds_not_below_played(data.total_rounds, existing_round_count))
    return run_chain(checks)


def _validate_rounds_not_below_played(total_rounds: int, existing_round_count: int) -> ValidationResult:
    if total_rounds < existing_round_count:
        return ValidationResult.fail(
            f"Total rounds cannot be less than current round count ({existing_round_count})"
        )
    return ValidationResult.ok()


def sanitize_tournament_settings(
    source: Any, limits: LimitsRegistry = DEFAULT_LIMITS
) -> TournamentSettingsUpdate:
    """Sanitize and truncate every text field present in the update."""
    data = coerce_settings_update(source)
    changes: dict[str, str] = {}
    for attribute, _label, cap in _settings_text_fields(limits):
        value = getattr(data, attribute)
        if value is not None:
            changes[attribute] = sanitize_text_field(value, cap)
    if data.time_control is not None:
        changes["time_control"] = sanitize_text_field(
            data.time_control, limits.max_time_control_length
        )
    return replace(data, **changes)


# ---------------------------------------------------------------------------
# Round-robin constraints
# ---------------------------------------------------------------------------


def validate_round_robin_constraints(
    total_rounds: int,
    active_player_count: int,
    *,
    check_rounds: bool,
    limits: LimitsRegistry = DEFAULT_LIMITS,
) -> ValidationResult:
    """Check that a round-robin can be scheduled within the round cap.

    Args:
        total_rounds: Configured number of rounds.
        active_player_count: Players that will be paired.
        check_rounds: Also require ``total_rounds`` to equal the number of
            rounds a full round-robin of the active players needs.
        limits: Registry providing the round cap.
    """
    max_players = limits.max_round_robin_players
    if active_player_count > max_players:
        return ValidationResult.fail(
            f"Round-robin tournaments can have at most {max_players} active players "
            f"(max {limits.max_rounds_per_tournament} rounds)."
        )
    required = get_round_robin_required_rounds(active_player_count)
    if check_rounds and required > 0 and total_rounds != required:
        return ValidationResult.fail(
            f"Round-robin tournaments with {active_player_count} active players "
            f"need exactly {required} rounds."
        )
    return ValidationResult.ok()


# ---------------------------------------------------------------------------
# Custom title validation
# ---------------------------------------------------------------------------


def validate_custom_title_name(name: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> ValidationResult:
    sanitized = sanitize_string(name)
    if not sanitized:
        return ValidationResult.fail("Title name is required.")
    if len(sanitized) > limits.max_title_name_length:
        return ValidationResult.fail(
            f"Title name cannot exceed {limits.max_title_name_length} characters."
        )
    return ValidationResult.ok()


def validate_hex_color(
    color: Any, limits: LimitsRegistry = DEFAULT_LIMITS  # noqa: ARG001
) -> ValidationResult:
    # fullmatch so a trailing newline is rejected
    if not isinstance(color, str) or not _HEX_COLOR_RE.fullmatch(color):
        return ValidationResult.fail("Invalid color format. Use #RRGGBB.")
    return ValidationResult.ok()


def validate_custom_title_input(
    source: Any, limits: LimitsRegistry = DEFAULT_LIMITS
) -> ValidationResult:
    """Validate a custom title, stopping at the first failure (name, colour)."""
    name = read_field(source, "name")
    color = read_field(source, "color")
    return run_chain([
        lambda: validate_custom_title_name(name, limits),
        lambda: validate_hex_color(color, limits),
    ])


def sanitize_custom_title_input(
    source: Any, limits: LimitsRegistry = DEFAULT_LIMITS
) -> CustomTitleInput:
    """Return a :class:`CustomTitleInput` with a sanitized, capped name."""
    return CustomTitleInput(
        name=sanitize_text_field(read_field(source, "name"), limits.max_title_name_length),
        color=read_field(source, "color"),
    )


# ---------------------------------------------------------------------------
# Import validation
# ---------------------------------------------------------------------------


def validate_import_file_size(
    size_bytes: int, limits: LimitsRegistry = DEFAULT_LIMITS
) -> ValidationResult:
    """Reject CSV imports larger than ``max_csv_file_size_bytes``."""
    if size_bytes > limits.max_csv_file_size_bytes:
        return ValidationResult.fail(
            f"File size exceeds limit of {round(limits.max_csv_file_size_bytes / 1024)}KB"
        )
    return ValidationResult.ok()
