"""User profile validation: usernames and bios."""

from __future__ import annotations

import re
from typing import Any

from tournament_guard.config.limits import DEFAULT_LIMITS, LimitsRegistry
from tournament_guard.core.sanitizer import sanitize_string, sanitize_text_field
from tournament_guard.validation.base import ValidationResult

#: Letters, digits and underscores only (ASCII).
_USERNAME_RE = re.compile(r"[A-Za-z0-9_]+")


def validate_username(username: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> ValidationResult:
    """Validate a public username.

    Rules, checked in order on the trimmed value: length within
    ``[min_username_length, max_username_length]``, only ASCII letters,
    digits and underscores, and no leading digit.

    Examples::

        >>> validate_username("1abc").error
        'Username cannot start with a number.'
        >>> validate_username("ab").error
        'Username must be at least 3 characters.'
        >>> validate_username("valid_Name1").valid
        True
    """
    if not username or not isinstance(username, str):
        return ValidationResult.fail("Username is required.")

    trimmed = username.strip()

    if len(trimmed) < limits.min_username_length:
        return ValidationResult.fail(
            f"Username must be at least {limits.min_username_length} characters."
        )
    if len(trimmed) > limits.max_username_length:
        return ValidationResult.fail(
            f"Username cannot exceed {limits.max_username_length} characters."
        )
    if not _USERNAME_RE.fullmatch(trimmed):
        return ValidationResult.fail(
            "Username can only contain letters, numbers, and underscores."
        )
    if trimmed[0].isdigit():
        return ValidationResult.fail("Username cannot start with a number.")

    return ValidationResult.ok()


def validate_bio(bio: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> ValidationResult:
    """Accept an empty bio or one whose sanitized length fits ``max_bio_length``."""
    if not bio:
        return ValidationResult.ok()
    if len(sanitize_string(bio)) > limits.max_bio_length:
        return ValidationResult.fail(f"Bio cannot exceed {limits.max_bio_length} characters.")
    return ValidationResult.ok()


def sanitize_bio(bio: Any, limits: LimitsRegistry = DEFAULT_LIMITS) -> str:
    """Sanitize a bio and cap it at ``max_bio_length``."""
    return sanitize_text_field(bio, limits.max_bio_length)
