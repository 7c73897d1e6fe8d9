"""Best-effort text sanitization for user-supplied fields.

Runs before every length or format check so that markup cannot be used to
pad, hide or smuggle content past a validator.  This is not an HTML parser
and does not claim to neutralise every injection vector; it removes the
specific patterns below and nothing else:

- ``<script>`` and ``<style>`` elements together with their content
- anything shaped like a tag (``<...>``)
- the ``javascript:`` scheme prefix (any case)
- inline event-handler prefixes such as ``onclick=`` (any case)

Whitespace runs are then collapsed to a single space and the result is
trimmed.  Neither function ever raises.
"""

from __future__ import annotations

import re
from typing import Any

_SCRIPT_BLOCK_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_JS_SCHEME_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"on\w+=", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_string(value: Any) -> str:
    """Strip markup-like content and normalise whitespace.

    Args:
        value: Raw user input.  Anything that is not a ``str`` yields ``""``.

    Returns:
        The sanitized string.

    Examples::

        >>> sanitize_string("<script>alert(1)</script>Hello  world ")
        'Hello world'
        >>> sanitize_string(None)
        ''
    """
    if not isinstance(value, str):
        return ""
    cleaned = _SCRIPT_BLOCK_RE.sub("", value)
    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = _JS_SCHEME_RE.sub("", cleaned)
    cleaned = _EVENT_HANDLER_RE.sub("", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned)
    return cleaned.strip()


def sanitize_text_field(value: Any, max_length: int) -> str:
    """Sanitize *value* and truncate it to at most *max_length* characters."""
    if max_length <= 0:
        return ""
    return sanitize_string(value)[:max_length]
