"""
Chapter persistence operations: numbering, conflict checks and suggestions.

These helpers only stage changes on the session. Callers run
``recompute_book_statistics`` and commit.
"""

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storyloom.core.exceptions import ConflictError, NotFoundError
from storyloom.models.book import Book
from storyloom.models.chapter import Chapter, ChapterSuggestion


def get_next_chapter_number(db: Session, book_id: UUID) -> int:
    highest = (
        db.query(func.max(Chapter.chapter_number))
        .filter(Chapter.book_id == book_id)
        .scalar()
    )
    return (highest or 0) + 1


def find_chapter_by_number(db: Session, book_id: UUID, chapter_number: int) -> Chapter | None:
    return (
        db.query(Chapter)
        .filter(Chapter.book_id == book_id, Chapter.chapter_number == chapter_number)
        .first()
    )


def get_owned_chapter(db: Session, book: Book, chapter_id: UUID) -> Chapter:
    """Load a chapter of ``book``; chapters of other books are reported as missing."""
    chapter = (
        db.query(Chapter)
        .filter(Chapter.id == chapter_id, Chapter.book_id == book.id)
        .first()
    )
    if not chapter:
        raise NotFoundError("Chapter not found")
    return chapter


def list_chapters(
    db: Session, book: Book, *, limit: int | None = None, offset: int = 0
) -> list[Chapter]:
    query = (
        db.query(Chapter)
        .filter(Chapter.book_id == book.id)
        .order_by(Chapter.chapter_number.asc())
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def create_chapter_for_book(
    db: Session,
    book: Book,
    *,
    title: str,
    content: str = "",
    chapter_number: int | None = None,
) -> Chapter:
    """Stage a new chapter, numbering it after the current last one when omitted."""
    number = chapter_number or get_next_chapter_number(db, book.id)
    if find_chapter_by_number(db, book.id, number):
        raise ConflictError(f"Chapter {number} already exists for this book")

    chapter = Chapter(
        book_id=book.id,
        chapter_number=number,
        title=title,
        content=content or "",
    )
    db.add(chapter)
    flush_chapter(db, number)
    return chapter


def ensure_chapter_number_available(db: Session, chapter: Chapter, chapter_number: int) -> None:
    if chapter_number == chapter.chapter_number:
        return
    existing = find_chapter_by_number(db, chapter.book_id, chapter_number)
    if existing and existing.id != chapter.id:
        raise ConflictError(f"Chapter {chapter_number} already exists")


def flush_chapter(db: Session, chapter_number: int) -> None:
    """Flush, translating a unique-index race on the chapter number to a conflict."""
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            f"Chapter {chapter_number} already exists for this book"
        ) from exc


def add_suggestion(chapter: Chapter, text: str) -> ChapterSuggestion:
    suggestion = ChapterSuggestion(
        text=text,
        position=len(chapter.suggestions),
        applied=False,
    )
    chapter.suggestions.append(suggestion)
    return suggestion


def apply_suggestion(chapter: Chapter, suggestion_id: UUID) -> ChapterSuggestion:
    for suggestion in chapter.suggestions:
        if suggestion.id == suggestion_id:
            suggestion.applied = True
            chapter.ai_enhanced = True
            return suggestion
    raise NotFoundError("Suggestion not found")
