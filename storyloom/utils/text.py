"""Plain-text helpers shared by models and services."""

import re

_WHITESPACE_RUN = re.compile(r"\s+")


def count_words(text: str | None) -> int:
    """Number of whitespace-delimited, non-empty tokens in ``text``."""
    if not text:
        return 0
    return len(text.split())


def sanitize_input(value, max_length: int = 10000):
    """Trim, collapse whitespace runs and truncate; non-strings pass through."""
    if not isinstance(value, str):
        return value
    return _WHITESPACE_RUN.sub(" ", value.strip())[:max_length]
