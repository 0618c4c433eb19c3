"""
Chapter model for book content.
"""

import enum
import math
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func

from storyloom.db.base import Base
from storyloom.db.types import GUID
from storyloom.utils.text import count_words

WORDS_PER_MINUTE = 200


class ChapterStatus(str, enum.Enum):
    """Chapter status enumeration."""

    DRAFT = "draft"
    WRITTEN = "written"
    REVIEWED = "reviewed"
    FINALIZED = "finalized"


class Chapter(Base):
    """Chapter model for book content."""

    __tablename__ = "chapters"
    __table_args__ = (
        UniqueConstraint("book_id", "chapter_number", name="uq_chapters_book_number"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    book_id = Column(
        GUID(), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    chapter_number = Column(Integer, nullable=False)
    title = Column(String(500), nullable=False)

    # Content
    content = Column(Text, default="", nullable=False)
    word_count = Column(Integer, default=0, nullable=False)

    # Status tracking
    status = Column(String(50), default=ChapterStatus.DRAFT.value, nullable=False)

    # Audio placeholders, not populated yet
    audio_url = Column(Text)
    audio_duration = Column(Integer)  # seconds

    ai_enhanced = Column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    book = relationship("Book", back_populates="chapters")
    suggestions = relationship(
        "ChapterSuggestion",
        back_populates="chapter",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChapterSuggestion.position",
    )

    @validates("content")
    def _recount_words(self, key, value):
        value = value or ""
        self.word_count = count_words(value)
        return value

    @property
    def reading_time(self) -> int:
        """Estimated reading time in minutes."""
        return math.ceil((self.word_count or 0) / WORDS_PER_MINUTE)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Chapter {self.chapter_number}: {self.title}>"


class ChapterSuggestion(Base):
    """An AI-produced suggestion attached to a chapter."""

    __tablename__ = "chapter_suggestions"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    chapter_id = Column(
        GUID(), ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    applied = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    chapter = relationship("Chapter", back_populates="suggestions")

    @property
    def timestamp(self):
        return self.created_at
