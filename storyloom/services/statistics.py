"""
Chapter and book statistics.

``recompute_book_statistics`` keeps ``Book.total_chapters`` and
``Book.total_words`` equal to the aggregate over the book's chapters. Chapter
handlers call it explicitly after every create, update or delete, in the same
unit of work as the chapter change.

There is no locking: two requests editing different chapters of the same book
can both recompute, and the last commit wins. Books are expected to have a
single concurrent editor.
"""

import logging
import math
import re

from sqlalchemy import func
from sqlalchemy.orm import Session

from storyloom.models.book import Book
from storyloom.models.chapter import WORDS_PER_MINUTE, Chapter
from storyloom.utils.text import count_words

logger = logging.getLogger(__name__)

__all__ = [
    "count_words",
    "reading_time_minutes",
    "count_syllables",
    "readability_score",
    "recompute_book_statistics",
    "build_book_stats",
]

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_NON_ALPHA = re.compile(r"[^a-z]")
_VOWEL_GROUP = re.compile(r"[aeiouy]+")


def reading_time_minutes(words: int) -> int:
    return math.ceil((words or 0) / WORDS_PER_MINUTE)


def count_syllables(word: str) -> int:
    """Crude estimate: vowel groups in the lower-cased alphabetic characters."""
    letters = _NON_ALPHA.sub("", word.lower())
    if not letters:
        return 0
    return max(1, len(_VOWEL_GROUP.findall(letters)))


def readability_score(text: str | None) -> int:
    """Approximate Flesch Reading Ease, rounded and clamped to [0, 100]."""
    if not text:
        return 0

    sentences = len([s for s in _SENTENCE_SPLIT.split(text) if s.strip()])
    words = text.split()
    if sentences == 0 or not words:
        return 0

    syllables = sum(count_syllables(word) for word in words)
    avg_sentence_length = len(words) / sentences
    avg_syllables_per_word = syllables / len(words)

    score = 206.835 - (1.015 * avg_sentence_length) - (84.6 * avg_syllables_per_word)
    return max(0, min(100, round(score)))


def recompute_book_statistics(db: Session, book: Book) -> dict:
    """Rewrite the book's cached chapter count and word total from its chapters.

    Flushes pending chapter changes first so the aggregate sees them. The caller
    owns the commit.
    """
    db.flush()
    chapter_count, total_words = (
        db.query(func.count(Chapter.id), func.coalesce(func.sum(Chapter.word_count), 0))
        .filter(Chapter.book_id == book.id)
        .one()
    )

    book.total_chapters = int(chapter_count or 0)
    book.total_words = int(total_words or 0)
    logger.debug(
        "Recomputed statistics for book %s: %s chapters, %s words",
        book.id,
        book.total_chapters,
        book.total_words,
    )
    return {"totalChapters": book.total_chapters, "totalWords": book.total_words}


def build_book_stats(book: Book, chapters: list[Chapter]) -> dict:
    """Derived statistics for the stats endpoint."""
    total_words = book.total_words or 0
    return {
        "totalChapters": book.total_chapters,
        "totalWords": total_words,
        "averageWordsPerChapter": round(total_words / len(chapters)) if chapters else 0,
        "estimatedReadingTime": reading_time_minutes(total_words),
        "progress": book.progress,
        "status": book.status,
        "lastUpdated": book.updated_at.isoformat() if book.updated_at else None,
        "chapterBreakdown": [
            {
                "chapterNumber": chapter.chapter_number,
                "title": chapter.title,
                "wordCount": chapter.word_count,
                "status": chapter.status,
                "readingTime": chapter.reading_time,
            }
            for chapter in chapters
        ],
    }
