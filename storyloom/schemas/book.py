from datetime import datetime
from typing import Any
from uuid import UUID

from storyloom.schemas.chapter import ChapterResponse
from storyloom.schemas.common import CamelModel


class BookCreate(CamelModel):
    title: str | None = None
    description: str | None = None
    genre: str | None = None
    language: str | None = "en"


class BookUpdate(CamelModel):
    """Partial update; only fields present in the request body are applied."""

    title: str | None = None
    description: str | None = None
    genre: str | None = None
    language: str | None = None
    status: str | None = None
    cover_image_url: str | None = None
    is_public: bool | None = None


class BookSummaryRequest(CamelModel):
    summary_type: str = "email"


class BookResponse(CamelModel):
    id: UUID
    user_id: UUID
    title: str
    description: str | None = None
    genre: str | None = None
    language: str
    status: str
    total_chapters: int
    total_words: int
    progress: int
    cover_image_url: str | None = None
    is_public: bool
    ai_enhanced: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BookDetailResponse(BookResponse):
    chapters: list[ChapterResponse] | None = None


def book_to_json(book: Any, *, include_chapters: bool = False) -> dict:
    if include_chapters:
        return BookDetailResponse.model_validate(book).to_json()
    return BookResponse.model_validate(book).to_json()
