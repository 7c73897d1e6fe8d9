"""Validation result type and fail-fast chain composition.

Every field validator in this package has the same shape::

    validate_<field>(value, limits=DEFAULT_LIMITS) -> ValidationResult

Composite validators are ordered lists of zero-argument checks run through
:func:`run_chain`, which stops at the first failure.  Callers fix one defect
at a time instead of receiving a multi-error report.  Adding a field means
adding one entry to the list; call sites do not change.

Validation failures are data, never exceptions.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ValidationResult:
    """Accept/reject verdict for one field or one aggregate input.

    Attributes:
        valid: ``True`` when the input is acceptable.
        error: Human-readable reason when ``valid`` is ``False``; ``None``
            otherwise.  Meant to be shown to the end user as-is.
    """

    valid: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> ValidationResult:
        return cls(valid=False, error=error)


Validator = Callable[[Any], ValidationResult]
"""A field validator bound to its limits: ``(value) -> ValidationResult``."""

Check = Callable[[], ValidationResult]
"""A validator already bound to the value it checks."""


def run_chain(checks: Iterable[Check]) -> ValidationResult:
    """Run *checks* in order and return the first failure.

    Later checks are not evaluated once one fails.

    Args:
        checks: Zero-argument callables returning a :class:`ValidationResult`.

    Returns:
        The first failing result, or ``ValidationResult.ok()`` when every
        check passes (including when *checks* is empty).
    """
    for check in checks:
        result = check()
        if not result.valid:
            return result
    return ValidationResult.ok()


def read_field(source: Any, attribute: str, alias: str | None = None, default: Any = None) -> Any:
    """Read *attribute* from a dataclass/object or a mapping.

    Mappings may use either the snake_case *attribute* or the camelCase
    *alias* used by the web client (``totalRounds``, ``fideId``, ...).
    """
    if isinstance(source, Mapping):
        if attribute in source:
            return source[attribute]
        if alias is not None and alias in source:
            return source[alias]
        return default
    return getattr(source, attribute, default)
