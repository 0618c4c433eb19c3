"""Book endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storyloom.api.deps import get_current_user, get_db, get_generation_client
from storyloom.core.exceptions import ServiceUnavailableError, ValidationError
from storyloom.models.book import Book
from storyloom.models.user import User
from storyloom.schemas.book import BookCreate, BookSummaryRequest, BookUpdate, book_to_json
from storyloom.schemas.common import envelope
from storyloom.services.books import get_owned_book, list_books_for_user
from storyloom.services.chapters import list_chapters
from storyloom.services.generation_client import GenerationClient
from storyloom.services.statistics import build_book_stats
from storyloom.utils.validation import (
    require_valid,
    validate_book_status,
    validate_book_title,
    validate_genre,
    validate_language,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_PAGE_SIZE = 100


@router.get("")
def list_books(
    status_filter: str | None = Query(None, alias="status"),
    search: str | None = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the current user's books, most recently updated first."""
    limit = min(limit, MAX_PAGE_SIZE)
    books, total = list_books_for_user(
        db, current_user, status=status_filter, search=search, limit=limit, offset=offset
    )
    logger.info("Retrieved %d books for user %s", len(books), current_user.id)
    return envelope(
        {
            "books": [book_to_json(book) for book in books],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": offset + len(books) < total,
            },
        }
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_book(
    payload: BookCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_valid(validate_book_title(payload.title), "Invalid title")
    require_valid(validate_genre(payload.genre), "Invalid genre")
    language = payload.language or "en"
    require_valid(validate_language(language), "Invalid language")

    book = Book(
        user_id=current_user.id,
        title=payload.title.strip(),
        description=payload.description.strip() if payload.description else None,
        genre=payload.genre.lower() if payload.genre else None,
        language=language.lower(),
    )
    db.add(book)
    db.commit()
    db.refresh(book)
    logger.info("Created book %s for user %s", book.id, current_user.id)
    return envelope({"book": book_to_json(book)}, message="Book created successfully")


@router.get("/{book_id}")
def get_book(
    book_id: UUID,
    include_chapters: bool = Query(True, alias="includeChapters"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, current_user, book_id)
    return envelope({"book": book_to_json(book, include_chapters=include_chapters)})


@router.put("/{book_id}")
def update_book(
    book_id: UUID,
    payload: BookUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partial update; empty title, genre, language or status leave the field as is."""
    book = get_owned_book(db, current_user, book_id)
    fields = payload.model_dump(exclude_unset=True)

    if fields.get("title"):
        require_valid(validate_book_title(fields["title"]), "Invalid title")
        book.title = fields["title"].strip()
    if "description" in fields:
        description = fields["description"]
        book.description = description.strip() if description else None
    if fields.get("genre"):
        require_valid(validate_genre(fields["genre"]), "Invalid genre")
        book.genre = fields["genre"].lower()
    if fields.get("language"):
        require_valid(validate_language(fields["language"]), "Invalid language")
        book.language = fields["language"].lower()
    if fields.get("status"):
        require_valid(validate_book_status(fields["status"]), "Invalid status")
        book.status = fields["status"].lower()
    if "cover_image_url" in fields:
        book.cover_image_url = fields["cover_image_url"] or None
    if fields.get("is_public") is not None:
        book.is_public = fields["is_public"]

    db.commit()
    db.refresh(book)
    logger.info("Updated book %s", book.id)
    return envelope({"book": book_to_json(book)}, message="Book updated successfully")


@router.delete("/{book_id}")
def delete_book(
    book_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, current_user, book_id)
    db.delete(book)
    db.commit()
    logger.info("Deleted book %s", book_id)
    return envelope(message="Book deleted successfully")


@router.post("/{book_id}/summary")
async def generate_book_summary(
    book_id: UUID,
    payload: BookSummaryRequest | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generation_client: GenerationClient = Depends(get_generation_client),
):
    """Summarize the whole book for sharing."""
    summary_type = payload.summary_type if payload else "email"
    book = get_owned_book(db, current_user, book_id)
    chapters = list_chapters(db, book)
    if not chapters:
        raise ValidationError("Cannot generate summary for book with no chapters")
    if not generation_client.is_available:
        raise ServiceUnavailableError("AI summary service is not available")

    result = await generation_client.generate_book_summary(
        [
            {
                "chapter_number": chapter.chapter_number,
                "title": chapter.title,
                "content": chapter.content,
                "word_count": chapter.word_count,
            }
            for chapter in chapters
        ],
        title=book.title,
        genre=book.genre,
        language=book.language,
    )
    logger.info("Generated %s summary for book %s", summary_type, book.id)
    return envelope(
        {
            "summary": result.summary,
            "bookInfo": {
                "title": book.title,
                "chapterCount": result.chapter_count,
                "totalWords": result.total_words,
                "genre": book.genre,
                "language": book.language,
            },
            "summaryType": summary_type,
        },
        message="Book summary generated successfully",
    )


@router.get("/{book_id}/stats")
def get_book_stats(
    book_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, current_user, book_id)
    return envelope({"stats": build_book_stats(book, list_chapters(db, book))})
