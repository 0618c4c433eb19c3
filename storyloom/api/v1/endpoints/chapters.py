"""
Chapter endpoints, nested under the owning book.

Every chapter mutation recomputes the book's cached statistics before the
commit, so ``totalChapters`` and ``totalWords`` never drift from the chapters.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storyloom.api.deps import get_current_user, get_db, get_generation_client
from storyloom.core.exceptions import ServiceUnavailableError, ValidationError
from storyloom.models.user import User
from storyloom.schemas.chapter import (
    ChapterCreate,
    ChapterSummaryRequest,
    ChapterUpdate,
    EnhanceRequest,
    IntegrateRequest,
    chapter_to_json,
)
from storyloom.schemas.common import envelope
from storyloom.services.books import get_owned_book
from storyloom.services.chapters import (
    add_suggestion,
    apply_suggestion,
    create_chapter_for_book,
    ensure_chapter_number_available,
    find_chapter_by_number,
    get_owned_chapter,
    list_chapters,
)
from storyloom.services.generation_client import GenerationClient
from storyloom.services.statistics import recompute_book_statistics
from storyloom.utils.validation import (
    require_valid,
    validate_chapter_number,
    validate_chapter_status,
    validate_chapter_title,
    validate_content,
    validate_summary_length,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_PAGE_SIZE = 100


def _require_generation(client: GenerationClient, message: str) -> None:
    if not client.is_available:
        raise ServiceUnavailableError(message)


@router.get("/books/{book_id}/chapters")
def get_chapters(
    book_id: UUID,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, current_user, book_id)
    chapters = list_chapters(db, book, limit=min(limit, MAX_PAGE_SIZE), offset=offset)
    return envelope(
        {
            "chapters": [chapter_to_json(chapter) for chapter in chapters],
            "bookInfo": {
                "id": str(book.id),
                "title": book.title,
                "totalChapters": book.total_chapters,
            },
        }
    )


@router.post("/books/{book_id}/chapters", status_code=status.HTTP_201_CREATED)
def create_chapter(
    book_id: UUID,
    payload: ChapterCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a chapter; without ``chapterNumber`` it goes after the last one."""
    book = get_owned_book(db, current_user, book_id)
    require_valid(validate_chapter_title(payload.title), "Invalid title")
    require_valid(validate_content(payload.content, allow_empty=True), "Invalid content")

    chapter_number = None
    if payload.chapter_number is not None:
        require_valid(validate_chapter_number(payload.chapter_number), "Invalid chapter number")
        chapter_number = int(payload.chapter_number)

    chapter = create_chapter_for_book(
        db,
        book,
        title=payload.title.strip(),
        content=(payload.content or "").strip(),
        chapter_number=chapter_number,
    )
    recompute_book_statistics(db, book)
    db.commit()
    db.refresh(chapter)
    logger.info("Created chapter %s in book %s", chapter.chapter_number, book.id)
    return envelope({"chapter": chapter_to_json(chapter)}, message="Chapter created successfully")


@router.get("/books/{book_id}/chapters/{chapter_id}")
def get_chapter(
    book_id: UUID,
    chapter_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, current_user, book_id)
    chapter = get_owned_chapter(db, book, chapter_id)
    return envelope({"chapter": chapter_to_json(chapter)})


@router.put("/books/{book_id}/chapters/{chapter_id}")
def update_chapter(
    book_id: UUID,
    chapter_id: UUID,
    payload: ChapterUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, current_user, book_id)
    chapter = get_owned_chapter(db, book, chapter_id)
    fields = payload.model_dump(exclude_unset=True)

    if fields.get("title"):
        require_valid(validate_chapter_title(fields["title"]), "Invalid title")
    if fields.get("content") is not None:
        require_valid(validate_content(fields["content"], allow_empty=True), "Invalid content")
    if fields.get("status"):
        require_valid(validate_chapter_status(fields["status"]), "Invalid status")
    new_number = None
    if fields.get("chapter_number") is not None:
        require_valid(validate_chapter_number(fields["chapter_number"]), "Invalid chapter number")
        new_number = int(fields["chapter_number"])
        ensure_chapter_number_available(db, chapter, new_number)

    if fields.get("title"):
        chapter.title = fields["title"].strip()
    if "content" in fields:
        chapter.content = (fields["content"] or "").strip()
    if fields.get("status"):
        chapter.status = fields["status"].lower()
    if new_number is not None:
        chapter.chapter_number = new_number

    recompute_book_statistics(db, book)
    db.commit()
    db.refresh(chapter)
    logger.info("Updated chapter %s", chapter.id)
    return envelope({"chapter": chapter_to_json(chapter)}, message="Chapter updated successfully")


@router.delete("/books/{book_id}/chapters/{chapter_id}")
def delete_chapter(
    book_id: UUID,
    chapter_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, current_user, book_id)
    chapter = get_owned_chapter(db, book, chapter_id)
    db.delete(chapter)
    recompute_book_statistics(db, book)
    db.commit()
    logger.info("Deleted chapter %s from book %s", chapter_id, book.id)
    return envelope(message="Chapter deleted successfully")


@router.post("/books/{book_id}/chapters/{chapter_id}/enhance")
async def enhance_chapter(
    book_id: UUID,
    chapter_id: UUID,
    payload: EnhanceRequest | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generation_client: GenerationClient = Depends(get_generation_client),
):
    """Rewrite the chapter with the generation API and keep its suggestions."""
    enhancement_type = payload.enhancement_type if payload else "general"
    book = get_owned_book(db, current_user, book_id)
    chapter = get_owned_chapter(db, book, chapter_id)
    _require_generation(generation_client, "AI enhancement service is not available")

    previous = None
    if chapter.chapter_number > 1:
        previous = find_chapter_by_number(db, book.id, chapter.chapter_number - 1)

    result = await generation_client.enhance_content(
        chapter.title,
        chapter.content,
        book_title=book.title,
        genre=book.genre,
        language=book.language,
        previous_chapter=previous.content if previous else None,
    )

    original_word_count = chapter.word_count
    chapter.content = result.enhanced_content
    chapter.ai_enhanced = True
    for text in result.suggestions:
        add_suggestion(chapter, text)
    book.ai_enhanced = True

    recompute_book_statistics(db, book)
    db.commit()
    db.refresh(chapter)
    logger.info("Enhanced chapter %s", chapter.id)
    return envelope(
        {
            "chapter": chapter_to_json(chapter),
            "enhancement": {
                "originalWordCount": original_word_count,
                "newWordCount": result.word_count,
                "suggestions": result.suggestions,
                "enhancementType": enhancement_type,
            },
        },
        message="Chapter enhanced successfully",
    )


@router.post("/books/{book_id}/chapters/{chapter_id}/integrate")
async def integrate_thought(
    book_id: UUID,
    chapter_id: UUID,
    payload: IntegrateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generation_client: GenerationClient = Depends(get_generation_client),
):
    """Weave a new idea into the chapter's existing text."""
    thought = (payload.thought or "").strip()
    if not thought:
        raise ValidationError("Thought content is required")

    book = get_owned_book(db, current_user, book_id)
    chapter = get_owned_chapter(db, book, chapter_id)
    _require_generation(generation_client, "AI integration service is not available")

    result = await generation_client.integrate_thought(
        chapter.content,
        thought,
        language=book.language,
        tone=payload.tone,
    )

    chapter.content = result.integrated_content
    chapter.ai_enhanced = True
    book.ai_enhanced = True
    recompute_book_statistics(db, book)
    db.commit()
    db.refresh(chapter)
    logger.info("Integrated thought into chapter %s", chapter.id)
    return envelope(
        {
            "chapter": chapter_to_json(chapter),
            "integration": {
                "originalLength": result.original_length,
                "newLength": result.new_length,
                "addedWords": result.new_length - result.original_length,
                "thought": thought,
                "tone": payload.tone,
            },
        },
        message="Thought integrated successfully",
    )


@router.post("/books/{book_id}/chapters/{chapter_id}/summary")
async def summarize_chapter(
    book_id: UUID,
    chapter_id: UUID,
    payload: ChapterSummaryRequest | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generation_client: GenerationClient = Depends(get_generation_client),
):
    length = payload.length if payload else "medium"
    require_valid(validate_summary_length(length), "Invalid summary length")
    length = length.lower()

    book = get_owned_book(db, current_user, book_id)
    chapter = get_owned_chapter(db, book, chapter_id)
    if not chapter.content or not chapter.content.strip():
        raise ValidationError("Cannot generate summary for empty chapter")
    _require_generation(generation_client, "AI summary service is not available")

    result = await generation_client.summarize_content(
        chapter.content, language=book.language, length=length
    )
    return envelope(
        {
            "summary": result.summary,
            "chapterInfo": {
                "title": chapter.title,
                "chapterNumber": chapter.chapter_number,
                "originalWordCount": result.original_word_count,
                "summaryWordCount": result.summary_word_count,
            },
            "length": length,
        },
        message="Chapter summary generated successfully",
    )


@router.post("/books/{book_id}/chapters/{chapter_id}/suggestions/{suggestion_id}/apply")
def apply_chapter_suggestion(
    book_id: UUID,
    chapter_id: UUID,
    suggestion_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    book = get_owned_book(db, current_user, book_id)
    chapter = get_owned_chapter(db, book, chapter_id)
    apply_suggestion(chapter, suggestion_id)
    db.commit()
    db.refresh(chapter)
    return envelope({"chapter": chapter_to_json(chapter)}, message="Suggestion applied successfully")
