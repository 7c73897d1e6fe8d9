"""Mutation gate: rate limit, then validate, then hand off.

:class:`MutationGate` is the single entry point a client uses before it
sends a state-changing request.  Every ``submit_*`` method runs the same
three steps:

1. Consume a slot from the caller's :class:`MutationGuard`.  An exhausted
   quota raises :class:`~tournament_guard.core.exceptions.RateLimitExceededError`
   (bio updates use the bio cooldown and report it as a rejected decision).
   Operations that add to a capped collection then compare the caller-supplied
   ``current_count`` against the matching limit.
2. Validate the payload with the matching composite validator.  A failure is
   returned as ``GateDecision(accepted=False, error=...)``; it is never raised.
3. Sanitize the payload and pass it to the transport callable together with
   an action name.  Whatever the transport returns is kept on the decision;
   whatever it raises propagates untouched.

The transport is supplied by the caller (a GraphQL client, an HTTP session,
a test double); the gate never talks to a data store itself.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable

import structlog

from tournament_guard.config.limits import (
    can_add_custom_title,
    can_add_player,
    can_create_round,
    can_create_tournament,
)
from tournament_guard.core.logging_config import caller_key_var
from tournament_guard.core.rate_limiter import MutationGuard
from tournament_guard.validation.tournament_data import validate_tournament_document
from tournament_guard.validation.tournaments import (
    sanitize_custom_title_input,
    sanitize_player_input,
    sanitize_tournament_input,
    sanitize_tournament_settings,
    validate_custom_title_input,
    validate_player_input,
    validate_tournament_input,
    validate_tournament_settings,
)
from tournament_guard.validation.users import sanitize_bio, validate_bio

logger = structlog.get_logger(__name__)

Transport = Callable[[str, Any], Any]
"""``transport(action, payload)``: performs the mutation, returns its response."""

CREATE_TOURNAMENT = "create_tournament"
ADD_PLAYER = "add_player"
CREATE_ROUND = "create_round"
ADD_CUSTOM_TITLE = "add_custom_title"
UPDATE_SETTINGS = "update_settings"
SAVE_TOURNAMENT = "save_tournament"
UPDATE_BIO = "update_bio"


@dataclass(frozen=True)
class GateDecision:
    """Result of one ``submit_*`` call.

    Attributes:
        accepted: ``True`` when the payload reached the transport.
        error: User-facing message when the request was rejected.
        payload: The sanitized payload that was sent (``None`` if rejected).
        response: Return value of the transport (``None`` if rejected).
    """

    accepted: bool
    error: str | None = None
    payload: Any = None
    response: Any = None

    def __bool__(self) -> bool:
        return self.accepted


class MutationGate:
    """Admit or reject client mutations for one caller.

    Args:
        guard: Rate-limit state for the caller, typically from
            :meth:`GuardRegistry.get <tournament_guard.core.rate_limiter.GuardRegistry.get>`.
        transport: Callable performing the actual mutation.
    """

    def __init__(self, guard: MutationGuard, transport: Transport) -> None:
        self.guard = guard
        self.limits = guard.limits
        self._transport = transport

    @staticmethod
    @contextmanager
    def bind_caller(caller_key: str) -> Iterator[None]:
        """Tag every log record emitted inside the block with *caller_key*."""
        token = caller_key_var.set(caller_key)
        try:
            yield
        finally:
            caller_key_var.reset(token)

    # -- internals --------------------------------------------------------

    def _reject(self, action: str, error: str | None) -> GateDecision:
        logger.debug("mutation_rejected", action=action, reason=error)
        return GateDecision(accepted=False, error=error)

    def _send(self, action: str, payload: Any) -> GateDecision:
        response = self._transport(action, payload)
        logger.info("mutation_admitted", action=action)
        return GateDecision(accepted=True, payload=payload, response=response)

    # -- public API -------------------------------------------------------

    def submit_tournament(self, source: Any, *, current_count: int = 0) -> GateDecision:
        """Create a tournament from a :class:`TournamentInput` or mapping.

        *current_count* is the number of tournaments the caller already owns.
        """
        self.guard.check_rate_limit()
        if not can_create_tournament(current_count, self.limits):
            return self._reject(CREATE_TOURNAMENT, self.limits.messages.tournament_limit_reached)
        result = validate_tournament_input(source, self.limits)
        if not result:
            return self._reject(CREATE_TOURNAMENT, result.error)
        return self._send(CREATE_TOURNAMENT, sanitize_tournament_input(source, self.limits))

    def submit_player(
        self, source: Any, *, current_count: int = 0, round_robin: bool = False
    ) -> GateDecision:
        """Add a player from a :class:`PlayerInput` or mapping.

        Args:
            source: The player payload.
            current_count: Roster size before the addition.
            round_robin: The tournament is a round-robin, so the smaller
                round-robin roster cap applies as well.
        """
        self.guard.check_rate_limit()
        if not can_add_player(current_count, self.limits):
            return self._reject(ADD_PLAYER, self.limits.messages.player_limit_reached)
        if round_robin and current_count >= self.limits.max_round_robin_players:
            return self._reject(ADD_PLAYER, self.limits.messages.round_robin_player_limit_reached)
        result = validate_player_input(source, self.limits)
        if not result:
            return self._reject(ADD_PLAYER, result.error)
        return self._send(ADD_PLAYER, sanitize_player_input(source, self.limits))

    def submit_custom_title(self, source: Any, *, current_count: int = 0) -> GateDecision:
        self.guard.check_rate_limit()
        if not can_add_custom_title(current_count, self.limits):
            return self._reject(ADD_CUSTOM_TITLE, self.limits.messages.title_limit_reached)
        result = validate_custom_title_input(source, self.limits)
        if not result:
            return self._reject(ADD_CUSTOM_TITLE, result.error)
        return self._send(ADD_CUSTOM_TITLE, sanitize_custom_title_input(source, self.limits))

    def submit_round(self, round_data: Any, *, current_count: int = 0) -> GateDecision:
        """Create a round; *round_data* is sent verbatim once the round cap allows it."""
        self.guard.check_rate_limit()
        if not can_create_round(current_count, self.limits):
            return self._reject(CREATE_ROUND, self.limits.messages.round_limit_reached)
        return self._send(CREATE_ROUND, round_data)

    def submit_settings(self, source: Any, *, existing_round_count: int = 0) -> GateDecision:
        """Apply a settings update; total rounds may not drop below *existing_round_count*."""
        self.guard.check_rate_limit()
        result = validate_tournament_settings(
            source, self.limits, existing_round_count=existing_round_count
        )
        if not result:
            return self._reject(UPDATE_SETTINGS, result.error)
        return self._send(UPDATE_SETTINGS, sanitize_tournament_settings(source, self.limits))

    def submit_tournament_document(self, record: Any) -> GateDecision:
        """Save a whole tournament record.

        Every problem the document validator finds is joined into the
        decision's ``error`` so the user sees them all at once.
        """
        self.guard.check_rate_limit()
        report = validate_tournament_document(record, self.limits)
        if not report:
            logger.debug(
                "mutation_rejected", action=SAVE_TOURNAMENT, error_count=len(report.errors)
            )
            return GateDecision(accepted=False, error=report.message)
        return self._send(SAVE_TOURNAMENT, record)

    def submit_bio(self, bio: Any) -> GateDecision:
        """Update the caller's bio.

        The bio cooldown takes the place of the mutation quota here, and a
        cooldown hit is reported as a rejected decision rather than raised.
        The cooldown slot is consumed even when validation then fails.
        """
        wait_message = self.guard.check_bio_rate_limit()
        if wait_message is not None:
            return GateDecision(accepted=False, error=wait_message)
        result = validate_bio(bio, self.limits)
        if not result:
            return self._reject(UPDATE_BIO, result.error)
        return self._send(UPDATE_BIO, sanitize_bio(bio, self.limits))
