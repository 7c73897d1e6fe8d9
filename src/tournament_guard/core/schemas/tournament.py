"""Pydantic schemas for stored tournament documents.

These model the payload a client submits when saving a whole tournament:
a record with top-level metadata plus a ``tournamentData`` JSON document
(players, rounds, pairings, custom titles).  Field names follow the web
client's camelCase via an alias generator; snake_case names are accepted
too.

The schemas are deliberately lenient: every field is optional and unknown
keys are ignored, because the limit and consistency rules live in
:mod:`tournament_guard.validation.tournament_data`, which reports all
problems at once rather than stopping at the first type error.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Number = Union[int, float]

VALID_RESULTS: frozenset[str] = frozenset({
    "1-0",
    "0-1",
    "1/2-1/2",
    "1F-0F",
    "0F-1F",
    "0F-0F",
})
"""Game results a pairing may carry (``F`` marks a forfeit)."""


class _DocumentModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class DocumentPlayer(_DocumentModel):
    id: Optional[str] = None
    name: Optional[str] = None
    rating: Optional[Number] = None
    titles: Optional[list[str]] = None
    points: Optional[Number] = None
    active: Optional[bool] = None


class DocumentPairing(_DocumentModel):
    id: Optional[str] = None
    white_player_id: Optional[str] = None
    black_player_id: Optional[str] = None
    result: Optional[str] = None


class DocumentRound(_DocumentModel):
    id: Optional[str] = None
    round_number: Optional[Number] = None
    pairings: Optional[list[DocumentPairing]] = None
    completed: Optional[bool] = None


class DocumentCustomTitle(_DocumentModel):
    name: Optional[str] = None
    color: Optional[str] = None


class TournamentData(_DocumentModel):
    """Parsed ``tournamentData`` document.

    Attributes:
        system: Pairing system; falls back to the record's ``format`` when
            absent.
        players: Full roster, including inactive players.
        rounds: Rounds created so far, in play order.
        custom_titles: Tournament-specific title definitions.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    system: Optional[str] = None
    bye_value: Optional[Number] = None
    total_rounds: Optional[Number] = None
    rated: Optional[bool] = None
    players: Optional[list[DocumentPlayer]] = None
    rounds: Optional[list[DocumentRound]] = None
    custom_titles: Optional[list[DocumentCustomTitle]] = None
    organizers: Optional[str] = None
    tournament_director: Optional[str] = None
    chief_arbiter: Optional[str] = None
    location: Optional[str] = None
    time_control: Optional[str] = None


class TournamentRecordInput(_DocumentModel):
    """Top-level tournament record submitted for saving.

    ``tournament_data`` and ``player_database`` arrive either as JSON strings
    or as already-parsed objects; both forms are kept verbatim so their
    serialized size can be measured.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    tournament_data: Optional[Union[str, dict[str, Any]]] = None
    player_database: Optional[Union[str, dict[str, Any], list[Any]]] = None
    creator_id: Optional[str] = None
    creator_name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    federation: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    time_control: Optional[str] = None
    format: Optional[str] = None
    total_rounds: Optional[Number] = None
    current_round: Optional[int] = None
    player_count: Optional[int] = None
    status: Optional[str] = None
