from datetime import datetime
from typing import Any
from uuid import UUID

from storyloom.schemas.common import CamelModel


class ChapterCreate(CamelModel):
    title: str | None = None
    content: str | None = ""
    chapter_number: Any = None


class ChapterUpdate(CamelModel):
    title: str | None = None
    content: str | None = None
    status: str | None = None
    chapter_number: Any = None


class EnhanceRequest(CamelModel):
    enhancement_type: str = "general"


class IntegrateRequest(CamelModel):
    thought: str | None = None
    tone: str = "narrative"


class ChapterSummaryRequest(CamelModel):
    length: str = "medium"


class SuggestionResponse(CamelModel):
    id: UUID
    text: str
    timestamp: datetime | None = None
    applied: bool


class ChapterResponse(CamelModel):
    id: UUID
    book_id: UUID
    chapter_number: int
    title: str
    content: str
    word_count: int
    reading_time: int
    status: str
    audio_url: str | None = None
    audio_duration: int | None = None
    ai_enhanced: bool
    suggestions: list[SuggestionResponse] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


def chapter_to_json(chapter: Any) -> dict:
    return ChapterResponse.model_validate(chapter).to_json()
