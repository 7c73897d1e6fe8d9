"""Unit tests for username and bio validation."""

from __future__ import annotations

import pytest

from tournament_guard.config.limits import DEFAULT_LIMITS
from tournament_guard.validation.users import sanitize_bio, validate_bio, validate_username


class TestValidateUsername:
    @pytest.mark.parametrize("username", ["valid_Name1", "abc", "a" * 20, "_under", "  padded  "])
    def test_valid(self, username: str) -> None:
        assert validate_username(username).valid is True

    @pytest.mark.parametrize("username", ["", None, 123])
    def test_required(self, username: object) -> None:
        assert validate_username(username).error == "Username is required."

    def test_too_short(self) -> None:
        assert validate_username("ab").error == "Username must be at least 3 characters."

    def test_whitespace_only_is_too_short(self) -> None:
        assert validate_username("    ").error == "Username must be at least 3 characters."

    def test_too_long(self) -> None:
        assert validate_username("a" * 21).error == "Username cannot exceed 20 characters."

    @pytest.mark.parametrize("username", ["bad name", "dash-name", "émile", "dot.name"])
    def test_invalid_characters(self, username: str) -> None:
        assert validate_username(username).error == (
            "Username can only contain letters, numbers, and underscores."
        )

    def test_leading_digit(self) -> None:
        assert validate_username("1abc").error == "Username cannot start with a number."

    def test_injected_limits(self) -> None:
        limits = DEFAULT_LIMITS.replace(min_username_length=5)
        assert validate_username("abcd", limits).error == "Username must be at least 5 characters."


class TestValidateBio:
    @pytest.mark.parametrize("bio", [None, "", "Club player from Bergen."])
    def test_valid(self, bio: object) -> None:
        assert validate_bio(bio).valid is True

    def test_limit_inclusive(self) -> None:
        assert validate_bio("b" * 500).valid is True

    def test_too_long(self) -> None:
        assert validate_bio("b" * 501).error == "Bio cannot exceed 500 characters."

    def test_markup_not_counted(self) -> None:
        assert validate_bio("<p>" + "b" * 500 + "</p>").valid is True

    def test_sanitize_bio_truncates(self) -> None:
        assert sanitize_bio("<b>hi</b>   there") == "hi there"
        assert len(sanitize_bio("x" * 600)) == 500
