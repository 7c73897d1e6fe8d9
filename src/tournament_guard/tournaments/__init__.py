"""Tournament domain helpers used by the admission gate.

Sub-modules:
    round_robin - required rounds / max players arithmetic for round-robins
"""

from __future__ import annotations

from tournament_guard.tournaments.round_robin import (
    get_round_robin_max_players,
    get_round_robin_required_rounds,
)

__all__ = [
    "get_round_robin_max_players",
    "get_round_robin_required_rounds",
]
