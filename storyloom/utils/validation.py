"""
Field validators.

Each validator returns a ``ValidationResult`` and never raises: every failure is
reported as a message in ``errors``. ``require_valid`` turns a failed
result into a 400 ``ValidationError`` for the handlers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from email_validator import EmailNotValidError, validate_email as _check_email

from storyloom.core.exceptions import ValidationError
from storyloom.models.book import BookGenre, BookLanguage, BookStatus
from storyloom.models.chapter import ChapterStatus

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
TITLE_MIN_LENGTH = 2
TITLE_MAX_LENGTH = 500
CONTENT_MAX_LENGTH = 100000
NAME_MAX_LENGTH = 100
CHAPTER_NUMBER_MIN = 1
CHAPTER_NUMBER_MAX = 9999

SUMMARY_LENGTHS = ("short", "medium", "long")

_NAME_PATTERN = re.compile(r"^[a-zA-ZÀ-ÿ\s'-]*$")


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=errors)


def validate_email(email: Any) -> ValidationResult:
    if not email or not isinstance(email, str) or not email.strip():
        return ValidationResult.from_errors(["Email is required"])
    try:
        _check_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        return ValidationResult.from_errors(["Please provide a valid email address"])
    return ValidationResult()


def validate_password(password: Any) -> ValidationResult:
    if not password or not isinstance(password, str):
        return ValidationResult.from_errors(["Password is required"])

    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password must be less than {PASSWORD_MAX_LENGTH} characters")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    return ValidationResult.from_errors(errors)


def _validate_title(title: Any, label: str) -> ValidationResult:
    if not title or not isinstance(title, str) or not title.strip():
        return ValidationResult.from_errors([f"{label} is required"])

    errors = []
    if len(title) > TITLE_MAX_LENGTH:
        errors.append(f"{label} must be less than {TITLE_MAX_LENGTH} characters")
    if len(title.strip()) < TITLE_MIN_LENGTH:
        errors.append(f"{label} must be at least {TITLE_MIN_LENGTH} characters long")
    return ValidationResult.from_errors(errors)


def validate_book_title(title: Any) -> ValidationResult:
    return _validate_title(title, "Book title")


def validate_chapter_title(title: Any) -> ValidationResult:
    return _validate_title(title, "Chapter title")


def validate_content(
    content: Any,
    *,
    max_length: int = CONTENT_MAX_LENGTH,
    allow_empty: bool = True,
) -> ValidationResult:
    if content is not None and not isinstance(content, str):
        return ValidationResult.from_errors(["Content must be text"])
    if not allow_empty and (not content or not content.strip()):
        return ValidationResult.from_errors(["Content cannot be empty"])
    if content and len(content) > max_length:
        return ValidationResult.from_errors(
            [f"Content must be less than {max_length} characters"]
        )
    return ValidationResult()


def _validate_choice(value: Any, allowed: Iterable[str], label: str) -> ValidationResult:
    """Optional field drawn from a closed set; comparison ignores case."""
    allowed = list(allowed)
    if value is None or value == "":
        return ValidationResult()
    if not isinstance(value, str) or value.lower() not in allowed:
        return ValidationResult.from_errors(
            [f"{label} must be one of: {', '.join(allowed)}"]
        )
    return ValidationResult()


def _values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def validate_genre(genre: Any) -> ValidationResult:
    return _validate_choice(genre, _values(BookGenre), "Genre")


def validate_language(language: Any) -> ValidationResult:
    return _validate_choice(language, _values(BookLanguage), "Language")


def validate_book_status(status: Any) -> ValidationResult:
    return _validate_choice(status, _values(BookStatus), "Status")


def validate_chapter_status(status: Any) -> ValidationResult:
    return _validate_choice(status, _values(ChapterStatus), "Status")


def validate_summary_length(length: Any) -> ValidationResult:
    return _validate_choice(length, SUMMARY_LENGTHS, "Summary length")


def validate_chapter_number(chapter_number: Any) -> ValidationResult:
    if chapter_number is None or chapter_number == "":
        return ValidationResult.from_errors(["Chapter number is required"])

    # bool is an int subclass; reject it explicitly.
    if isinstance(chapter_number, bool):
        return ValidationResult.from_errors(["Chapter number must be a valid number"])
    try:
        number = int(chapter_number)
        if isinstance(chapter_number, float) and not chapter_number.is_integer():
            raise ValueError(chapter_number)
    except (TypeError, ValueError):
        return ValidationResult.from_errors(["Chapter number must be a valid number"])

    if number < CHAPTER_NUMBER_MIN:
        return ValidationResult.from_errors(["Chapter number must be greater than 0"])
    if number > CHAPTER_NUMBER_MAX:
        return ValidationResult.from_errors(
            [f"Chapter number must be less than {CHAPTER_NUMBER_MAX + 1}"]
        )
    return ValidationResult()


def validate_name(name: Any, field_name: str = "Name") -> ValidationResult:
    if name is None or name == "":
        return ValidationResult()
    if not isinstance(name, str):
        return ValidationResult.from_errors([f"{field_name} must be text"])

    errors = []
    if len(name) > NAME_MAX_LENGTH:
        errors.append(f"{field_name} must be less than {NAME_MAX_LENGTH} characters")
    if not _NAME_PATTERN.match(name):
        errors.append(f"{field_name} contains invalid characters")
    return ValidationResult.from_errors(errors)


def require_valid(result: ValidationResult, message: str) -> None:
    """Raise a 400 ``ValidationError`` carrying ``result.errors`` if it failed."""
    if not result.is_valid:
        raise ValidationError(message, errors=result.errors)
