"""Structured logging configuration using structlog.

Call ``configure_logging()`` once at process start.  Modules then log with
either the stdlib API or structlog directly:

Stdlib usage::

    import logging
    logger = logging.getLogger(__name__)
    logger.info("Rate limited", extra={"purpose": "mutation"})

Structlog usage::

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("mutation_admitted", action="add_player")

The ``caller_key`` context variable is set by
:meth:`tournament_guard.core.gate.MutationGate.bind_caller` and merged into
every record emitted while a mutation for that caller is being admitted.

User-supplied text (names, bios, payloads) is never meant to reach the log
stream; :func:`_redact_sensitive` drops it if a call site passes it anyway.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

import structlog
from structlog.types import EventDict, WrappedLogger

from tournament_guard.config.settings import get_settings

# ---------------------------------------------------------------------------
# Context variable
# ---------------------------------------------------------------------------

caller_key_var: ContextVar[str | None] = ContextVar("caller_key", default=None)
"""Identifier of the caller whose mutation is being admitted.

Usage::

    from tournament_guard.core.logging_config import caller_key_var
    token = caller_key_var.set("user-123")
    ...
    caller_key_var.reset(token)
"""


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


_SENSITIVE_SUBSTRINGS: frozenset[str] = frozenset({
    "password",
    "secret",
    "token",
    "authorization",
    "payload",
    "bio",
    "tournament_data",
    "player_database",
})
"""Lower-cased substrings that identify event-dict keys whose values must be
redacted before the record reaches any renderer."""


def _redact_sensitive(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Replace values of sensitive keys with a redaction marker.

    Keys are matched case-insensitively against :data:`_SENSITIVE_SUBSTRINGS`.
    Nested ``dict`` values are scanned one level deep.
    """
    redacted = "[REDACTED]"
    for key in list(event_dict.keys()):
        if key == "event":
            continue
        key_lower = key.lower()
        if any(marker in key_lower for marker in _SENSITIVE_SUBSTRINGS):
            event_dict[key] = redacted
            continue
        val = event_dict[key]
        if isinstance(val, dict):
            # copy so the caller's own dict is left untouched
            val = dict(val)
            for nested_key in list(val.keys()):
                if any(marker in str(nested_key).lower() for marker in _SENSITIVE_SUBSTRINGS):
                    val[nested_key] = redacted
            event_dict[key] = val
    return event_dict


def _inject_caller_key(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Add the current ``caller_key`` to the event dict if one is set."""
    key = caller_key_var.get()
    if key is not None and "caller_key" not in event_dict:
        event_dict["caller_key"] = key
    return event_dict


# ---------------------------------------------------------------------------
# Public configuration entry-point
# ---------------------------------------------------------------------------


def configure_logging(log_level: str | None = None) -> None:
    """Configure structlog and stdlib logging.

    Below DEBUG verbosity the output is newline-delimited JSON; at DEBUG it
    is structlog's coloured ``ConsoleRenderer``.

    Every record carries ``timestamp`` (ISO 8601), ``level`` (lower-case),
    ``logger`` (module name), ``event`` and, inside an admission, the
    ``caller_key``.

    Calling this more than once is safe: the root handler is replaced and
    structlog's configuration is overwritten.

    Args:
        log_level: One of ``"DEBUG"``, ``"INFO"``, ``"WARNING"``,
            ``"ERROR"``, ``"CRITICAL"``.  Case-insensitive; unknown values
            fall back to INFO.  Defaults to ``Settings.log_level``.
    """
    if log_level is None:
        log_level = get_settings().log_level
    level_upper = log_level.upper()
    numeric_level = getattr(logging, level_upper, logging.INFO)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    is_development = level_upper == "DEBUG"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _inject_caller_key,
        _redact_sensitive,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if is_development:
        final_renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(
            colors=True,
        )
    else:
        final_renderer = structlog.processors.JSONRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        # stdlib records carry their fields in ``extra=``
        foreign_pre_chain=[structlog.stdlib.ExtraAdder(), *shared_processors],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            final_renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    # Avoid duplicate output when called repeatedly (e.g. in tests).
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
