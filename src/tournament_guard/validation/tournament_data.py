"""Whole-document validation for saved tournaments.

Where the composite validators in :mod:`tournament_guard.validation.tournaments`
stop at the first problem, :func:`validate_tournament_document` collects
every problem in a saved tournament (roster, rounds, pairings, text fields,
sizes) into one report.  It mirrors what the backend re-checks on save, so a
client can reject a document locally before uploading it.

The record is parsed with the schemas in
:mod:`tournament_guard.core.schemas.tournament`; a record or document that
does not even match those shapes is reported as a single structural error.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from tournament_guard.config.limits import DEFAULT_LIMITS, LimitsRegistry
from tournament_guard.core.schemas.tournament import (
    VALID_RESULTS,
    DocumentRound,
    TournamentData,
    TournamentRecordInput,
)
from tournament_guard.tournaments.round_robin import (
    get_round_robin_max_players,
    get_round_robin_required_rounds,
)

logger = logging.getLogger(__name__)

ROUND_ROBIN = "round-robin"


@dataclass(frozen=True)
class DocumentValidationResult:
    """Outcome of :func:`validate_tournament_document`.

    Attributes:
        valid: ``True`` when no errors were found.
        errors: Every problem found, in check order.
    """

    valid: bool
    errors: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.valid

    @property
    def message(self) -> str | None:
        """All errors joined into one line, or ``None`` when valid."""
        if self.valid:
            return None
        return "Validation failed: " + "; ".join(self.errors)


def _format_pydantic_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        parts.append(f"{location}: {err.get('msg', 'invalid value')}" if location else err.get("msg", ""))
    return "; ".join(parts)


def _serialized_length(value: Any) -> int:
    """Length of *value* as stored: strings verbatim, objects as compact JSON."""
    if isinstance(value, str):
        return len(value)
    return len(json.dumps(value, separators=(",", ":"), ensure_ascii=False))


def _is_whole(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, int) or (isinstance(value, float) and value.is_integer())


def _display_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ---------------------------------------------------------------------------
# Top-level record checks
# ---------------------------------------------------------------------------


def _check_record_fields(
    record: TournamentRecordInput, limits: LimitsRegistry, errors: list[str]
) -> None:
    if not record.name:
        errors.append("Tournament name is required")
    elif len(record.name) > limits.max_tournament_name_length:
        errors.append(f"Tournament name exceeds {limits.max_tournament_name_length} characters")

    if record.location and len(record.location) > limits.max_location_length:
        errors.append(f"Location exceeds {limits.max_location_length} characters")
    if record.time_control and len(record.time_control) > limits.max_time_control_length:
        errors.append(f"Time control exceeds {limits.max_time_control_length} characters")

    if record.player_database:
        if _serialized_length(record.player_database) > limits.max_tournament_data_length:
            errors.append(
                "Player database too large "
                f"(max {round(limits.max_tournament_data_length / 1024)}KB)"
            )


def _parse_tournament_data(
    raw: str | dict[str, Any], limits: LimitsRegistry, errors: list[str]
) -> TournamentData | None:
    """Size-check and parse ``tournamentData``; return ``None`` on failure."""
    if _serialized_length(raw) > limits.max_tournament_data_length:
        errors.append(
            f"Tournament data too large (max {round(limits.max_tournament_data_length / 1024)}KB)"
        )
        return None

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            errors.append("Invalid tournamentData JSON")
            return None
        if not isinstance(raw, Mapping):
            errors.append("Invalid tournamentData JSON")
            return None

    try:
        return TournamentData.model_validate(raw)
    except ValidationError as exc:
        errors.append(f"Invalid tournamentData structure: {_format_pydantic_errors(exc)}")
        return None


# ---------------------------------------------------------------------------
# Document checks
# ---------------------------------------------------------------------------


def _check_players(data: TournamentData, limits: LimitsRegistry, errors: list[str]) -> set[str]:
    """Validate the roster and return the set of known player ids."""
    players = data.players or []
    player_ids: set[str] = set()

    if len(players) > limits.max_players_per_tournament:
        errors.append(f"Players exceed limit of {limits.max_players_per_tournament}")

    for index, player in enumerate(players, start=1):
        if not player.id:
            errors.append(f"Player {index} is missing an id")
        elif player.id in player_ids:
            errors.append(f"Duplicate player id: {player.id}")
        else:
            player_ids.add(player.id)

        if player.name and len(player.name) > limits.max_player_name_length:
            errors.append(
                f"Player {index} name exceeds {limits.max_player_name_length} characters"
            )
        if player.rating is not None and not (
            limits.min_rating <= player.rating <= limits.max_rating
        ):
            errors.append(
                f"Player {index} rating out of range ({limits.min_rating}-{limits.max_rating})"
            )
        if player.titles and len(player.titles) > limits.max_titles_per_player:
            errors.append(
                f"Player {index} has too many titles (max {limits.max_titles_per_player})"
            )

    return player_ids


def _check_round_totals(
    record: TournamentRecordInput,
    data: TournamentData,
    limits: LimitsRegistry,
    errors: list[str],
) -> None:
    rounds = data.rounds or []
    round_count = len(rounds)

    if round_count > limits.max_rounds_per_tournament:
        errors.append(f"Rounds exceed limit of {limits.max_rounds_per_tournament}")

    total_rounds = data.total_rounds if data.total_rounds is not None else record.total_rounds
    if total_rounds is not None:
        if not _is_whole(total_rounds):
            errors.append("Total rounds must be a whole number")
        elif not (
            limits.min_rounds_per_tournament <= total_rounds <= limits.max_rounds_per_tournament
        ):
            errors.append(
                f"Total rounds must be between {limits.min_rounds_per_tournament} "
                f"and {limits.max_rounds_per_tournament}"
            )

    if record.total_rounds is not None and round_count > record.total_rounds:
        errors.append(
            f"Total rounds ({_display_number(record.total_rounds)}) "
            f"less than existing rounds ({round_count})"
        )
    if data.total_rounds is not None and round_count > data.total_rounds:
        errors.append(
            f"Tournament rounds ({_display_number(data.total_rounds)}) "
            f"less than existing rounds ({round_count})"
        )


def _check_round_robin(data: TournamentData, limits: LimitsRegistry, errors: list[str]) -> None:
    players = data.players or []
    round_count = len(data.rounds or [])
    active_count = sum(1 for player in players if player.active is not False)

    if len(players) > limits.max_round_robin_players:
        errors.append(limits.messages.round_robin_player_limit_reached)

    required = get_round_robin_required_rounds(active_count)
    if required <= 0:
        return
    if required > limits.max_rounds_per_tournament:
        max_players = get_round_robin_max_players(limits.max_rounds_per_tournament)
        errors.append(
            f"Round-robin tournaments can have at most {max_players} active players "
            f"(max {limits.max_rounds_per_tournament} rounds)"
        )
    if 0 < required < round_count:
        errors.append(
            f"Round-robin tournaments with {active_count} active players "
            f"can have at most {required} rounds."
        )


def _check_counters(
    record: TournamentRecordInput, data: TournamentData, system: str | None, errors: list[str]
) -> None:
    """Check the record's denormalised counters against the document."""
    rounds = data.rounds or []

    if record.player_count is not None and data.players is not None:
        if record.player_count != len(data.players):
            errors.append(
                f"Player count ({record.player_count}) does not match players ({len(data.players)})"
            )

    if record.current_round is not None:
        if system == ROUND_ROBIN:
            expected = sum(1 for r in rounds if r.completed)
            label = "completed rounds"
        else:
            expected = len(rounds)
            label = "rounds"
        if record.current_round != expected:
            errors.append(
                f"Current round ({record.current_round}) does not match {label} ({expected})"
            )


def _check_document_text(data: TournamentData, limits: LimitsRegistry, errors: list[str]) -> None:
    if data.custom_titles and len(data.custom_titles) > limits.max_custom_titles_per_tournament:
        errors.append(
            f"Custom titles exceed limit of {limits.max_custom_titles_per_tournament}"
        )

    # (value, message) pairs; a message is emitted when the value is too long
    text_checks = (
        (data.organizers, limits.max_organizer_length, "Organizers exceeds"),
        (data.tournament_director, limits.max_arbiter_length, "Tournament Director exceeds"),
        (data.chief_arbiter, limits.max_arbiter_length, "Chief Arbiter exceeds"),
        (data.location, limits.max_location_length, "Location in tournamentData exceeds"),
        (data.time_control, limits.max_time_control_length, "Time control in tournamentData exceeds"),
    )
    for value, cap, prefix in text_checks:
        if value and len(value) > cap:
            errors.append(f"{prefix} {cap} characters")


def _check_round(
    round_: DocumentRound,
    label: str,
    player_ids: set[str],
    seen_round_numbers: set[float],
    errors: list[str],
) -> None:
    if round_.round_number is not None:
        number = round_.round_number
        if not _is_whole(number) or number < 1:
            errors.append(f"{label} has an invalid round number")
        elif number in seen_round_numbers:
            errors.append(f"Duplicate round number: {_display_number(number)}")
        else:
            seen_round_numbers.add(number)

    pairings = round_.pairings or []
    used: set[str] = set()

    for index, pairing in enumerate(pairings, start=1):
        pairing_label = f"{label} pairing {index}"
        white = pairing.white_player_id
        black = pairing.black_player_id

        if not white:
            errors.append(f"{pairing_label} is missing a white player")
        else:
            if player_ids and white not in player_ids:
                errors.append(f"{pairing_label} references unknown white player")
            if white in used:
                errors.append(f"{pairing_label} repeats a player")
            else:
                used.add(white)

        if black is not None:
            if black == white:
                errors.append(f"{pairing_label} pairs a player against themselves")
            if player_ids and black not in player_ids:
                errors.append(f"{pairing_label} references unknown black player")
            if black in used:
                errors.append(f"{pairing_label} repeats a player")
            else:
                used.add(black)

        if pairing.result is not None and pairing.result not in VALID_RESULTS:
            errors.append(f"{pairing_label} has invalid result")

    if round_.completed and any(p.result is None for p in pairings):
        errors.append(f"{label} is completed but has unset results")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_tournament_document(
    record: TournamentRecordInput | Mapping[str, Any],
    limits: LimitsRegistry = DEFAULT_LIMITS,
) -> DocumentValidationResult:
    """Validate a full tournament record against every resource limit.

    Unlike the composite validators this does not stop at the first
    failure: all problems are collected so a save can be rejected with one
    complete report.  Size and parse failures of ``tournamentData`` end the
    check early because nothing inside the document can be trusted.

    Args:
        record: A :class:`TournamentRecordInput` or the raw mapping the
            client would submit (camelCase keys).
        limits: Registry providing the thresholds.

    Returns:
        A :class:`DocumentValidationResult`.
    """
    if not isinstance(record, TournamentRecordInput):
        try:
            record = TournamentRecordInput.model_validate(record)
        except ValidationError as exc:
            return DocumentValidationResult(
                valid=False,
                errors=(f"Invalid tournament record: {_format_pydantic_errors(exc)}",),
            )

    errors: list[str] = []
    _check_record_fields(record, limits, errors)

    raw = record.tournament_data
    if raw is not None and raw != "":
        data = _parse_tournament_data(raw, limits, errors)
        if data is not None:
            if data.bye_value is not None and data.bye_value not in (0, 0.5, 1):
                errors.append("Bye value must be 0, 0.5, or 1")

            system = data.system if data.system is not None else record.format
            player_ids = _check_players(data, limits, errors)
            _check_round_totals(record, data, limits, errors)
            if system == ROUND_ROBIN:
                _check_round_robin(data, limits, errors)
            _check_counters(record, data, system, errors)
            _check_document_text(data, limits, errors)

            seen_round_numbers: set[float] = set()
            for index, round_ in enumerate(data.rounds or [], start=1):
                _check_round(round_, f"Round {index}", player_ids, seen_round_numbers, errors)

    if errors:
        logger.debug(
            "Tournament document rejected",
            extra={"tournament_id": record.id, "error_count": len(errors)},
        )
    return DocumentValidationResult(valid=not errors, errors=tuple(errors))
