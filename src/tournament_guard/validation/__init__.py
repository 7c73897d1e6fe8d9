"""Validation package for Tournament Guard.

Re-exports the validators callers reach for most, so they can write::

    from tournament_guard.validation import validate_player_input, validate_username

without needing to know which sub-module each symbol lives in.
"""

from __future__ import annotations

from tournament_guard.validation.base import (
    Check,
    ValidationResult,
    Validator,
    read_field,
    run_chain,
)
from tournament_guard.validation.tournament_data import (
    DocumentValidationResult,
    validate_tournament_document,
)
from tournament_guard.validation.tournaments import (
    VALID_BYE_VALUES,
    CustomTitleInput,
    PlayerInput,
    TournamentInput,
    TournamentSettingsUpdate,
    TournamentSystem,
    sanitize_custom_title_input,
    sanitize_player_input,
    sanitize_tournament_input,
    sanitize_tournament_settings,
    validate_bye_value,
    validate_custom_title_input,
    validate_custom_title_name,
    validate_date_string,
    validate_fide_id,
    validate_hex_color,
    validate_import_file_size,
    validate_player_input,
    validate_player_name,
    validate_player_titles,
    validate_rating,
    validate_round_robin_constraints,
    validate_text_field,
    validate_time_control,
    validate_total_rounds,
    validate_tournament_input,
    validate_tournament_name,
    validate_tournament_settings,
    validate_tournament_system,
)
from tournament_guard.validation.users import sanitize_bio, validate_bio, validate_username

__all__ = [
    "VALID_BYE_VALUES",
    "Check",
    "CustomTitleInput",
    "DocumentValidationResult",
    "PlayerInput",
    "TournamentInput",
    "TournamentSettingsUpdate",
    "TournamentSystem",
    "ValidationResult",
    "Validator",
    "read_field",
    "run_chain",
    "sanitize_bio",
    "sanitize_custom_title_input",
    "sanitize_player_input",
    "sanitize_tournament_input",
    "sanitize_tournament_settings",
    "validate_bio",
    "validate_bye_value",
    "validate_custom_title_input",
    "validate_custom_title_name",
    "validate_date_string",
    "validate_fide_id",
    "validate_hex_color",
    "validate_import_file_size",
    "validate_player_input",
    "validate_player_name",
    "validate_player_titles",
    "validate_rating",
    "validate_round_robin_constraints",
    "validate_text_field",
    "validate_time_control",
    "validate_total_rounds",
    "validate_tournament_document",
    "validate_tournament_input",
    "validate_tournament_name",
    "validate_tournament_settings",
    "validate_tournament_system",
    "validate_username",
]
