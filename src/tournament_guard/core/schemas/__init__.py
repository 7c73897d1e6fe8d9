"""Pydantic schemas for payload parsing.

Sub-modules:
    tournament - TournamentRecordInput, TournamentData and nested players,
                 rounds, pairings and custom titles
"""

from __future__ import annotations
