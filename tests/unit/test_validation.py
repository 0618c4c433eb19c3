import pytest

from storyloom.core.exceptions import ValidationError
from storyloom.utils.text import count_words, sanitize_input
from storyloom.utils.validation import (
    require_valid,
    validate_book_status,
    validate_chapter_number,
    validate_chapter_status,
    validate_chapter_title,
    validate_content,
    validate_email,
    validate_genre,
    validate_language,
    validate_name,
    validate_password,
    validate_summary_length,
)


class TestEmail:
    def test_valid(self):
        assert validate_email("writer@example.com").is_valid

    @pytest.mark.parametrize("value", [None, "", "   ", 42])
    def test_required(self, value):
        assert validate_email(value).errors == ["Email is required"]

    def test_malformed(self):
        assert validate_email("writer@").errors == ["Please provide a valid email address"]


class TestPassword:
    def test_valid(self):
        assert validate_password("Password123").is_valid

    def test_collects_every_failure(self):
        assert validate_password("ABC").errors == [
            "Password must be at least 8 characters long",
            "Password must contain at least one lowercase letter",
            "Password must contain at least one number",
        ]

    def test_too_long(self):
        result = validate_password("Aa1" * 50)
        assert result.errors == ["Password must be less than 128 characters"]

    def test_missing(self):
        assert validate_password(None).errors == ["Password is required"]


class TestTitlesAndContent:
    def test_title_bounds(self):
        assert validate_chapter_title("Ok").is_valid
        assert validate_chapter_title(" a ").errors == [
            "Chapter title must be at least 2 characters long"
        ]
        assert validate_chapter_title("x" * 501).errors == [
            "Chapter title must be less than 500 characters"
        ]
        assert validate_chapter_title("   ").errors == ["Chapter title is required"]

    def test_content(self):
        assert validate_content("").is_valid
        assert validate_content(None).is_valid
        assert validate_content("  ", allow_empty=False).errors == ["Content cannot be empty"]
        assert validate_content(123).errors == ["Content must be text"]
        assert validate_content("abcd", max_length=3).errors == [
            "Content must be less than 3 characters"
        ]


class TestChoices:
    def test_case_insensitive(self):
        assert validate_genre("Science-Fiction").is_valid
        assert validate_language("DE").is_valid
        assert validate_book_status("In_Progress").is_valid
        assert validate_chapter_status("FINALIZED").is_valid
        assert validate_summary_length("Long").is_valid

    def test_optional(self):
        assert validate_genre(None).is_valid
        assert validate_language("").is_valid

    def test_rejects_unknown(self):
        assert validate_language("pt").errors == ["Language must be one of: en, de, es, fr, it"]
        assert validate_chapter_status("published").errors == [
            "Status must be one of: draft, written, reviewed, finalized"
        ]
        assert not validate_genre(7).is_valid


class TestChapterNumber:
    @pytest.mark.parametrize("value", [1, "12", 3.0, 9999])
    def test_valid(self, value):
        assert validate_chapter_number(value).is_valid

    @pytest.mark.parametrize(
        "value, message",
        [
            (None, "Chapter number is required"),
            ("", "Chapter number is required"),
            (True, "Chapter number must be a valid number"),
            ("three", "Chapter number must be a valid number"),
            (1.5, "Chapter number must be a valid number"),
            ([1], "Chapter number must be a valid number"),
            (0, "Chapter number must be greater than 0"),
            (-4, "Chapter number must be greater than 0"),
            (10000, "Chapter number must be less than 10000"),
        ],
    )
    def test_invalid(self, value, message):
        assert validate_chapter_number(value).errors == [message]


class TestNames:
    def test_accented_and_hyphenated(self):
        assert validate_name("Jean-Luc O'Brien", "First name").is_valid
        assert validate_name("José", "First name").is_valid

    def test_empty_is_allowed(self):
        assert validate_name(None).is_valid

    def test_invalid(self):
        assert validate_name("R2D2", "Last name").errors == ["Last name contains invalid characters"]


def test_require_valid_raises_with_errors():
    with pytest.raises(ValidationError) as exc_info:
        require_valid(validate_password("short"), "Password requirements not met")
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Password requirements not met"
    assert "Password must be at least 8 characters long" in exc_info.value.errors


def test_text_helpers():
    assert count_words(None) == 0
    assert count_words("  one\ttwo\nthree  ") == 3
    assert sanitize_input("  too   many\n spaces ") == "too many spaces"
    assert sanitize_input("abcdef", max_length=3) == "abc"
    assert sanitize_input(5) == 5
