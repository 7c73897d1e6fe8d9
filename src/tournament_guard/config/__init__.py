"""Configuration package for the tournament guard.

Re-exports the most commonly used configuration symbols so that callers can
write::

    from tournament_guard.config import DEFAULT_LIMITS, build_limits, get_settings

without needing to know which sub-module each symbol lives in.
"""

from __future__ import annotations

from tournament_guard.config.limits import (
    DEFAULT_LIMITS,
    LimitMessages,
    LimitsRegistry,
    build_limits,
    can_add_custom_title,
    can_add_player,
    can_create_round,
    can_create_tournament,
    get_remaining_custom_titles,
    get_remaining_players,
    get_remaining_rounds,
    get_remaining_tournaments,
)
from tournament_guard.config.settings import Settings, get_settings

__all__ = [
    # settings
    "Settings",
    "get_settings",
    # limits
    "DEFAULT_LIMITS",
    "LimitMessages",
    "LimitsRegistry",
    "build_limits",
    "can_add_custom_title",
    "can_add_player",
    "can_create_round",
    "can_create_tournament",
    "get_remaining_custom_titles",
    "get_remaining_players",
    "get_remaining_rounds",
    "get_remaining_tournaments",
]
