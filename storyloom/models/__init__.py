"""
Database models for the Storyloom API.
"""

from storyloom.models.book import STATUS_PROGRESS, Book, BookGenre, BookLanguage, BookStatus
from storyloom.models.chapter import Chapter, ChapterStatus, ChapterSuggestion
from storyloom.models.user import User

__all__ = [
    "User",
    "Book",
    "BookGenre",
    "BookLanguage",
    "BookStatus",
    "STATUS_PROGRESS",
    "Chapter",
    "ChapterStatus",
    "ChapterSuggestion",
]
