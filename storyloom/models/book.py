"""
Book model: a user-owned story with cached chapter statistics.
"""

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storyloom.db.base import Base
from storyloom.db.types import GUID


class BookStatus(str, enum.Enum):
    """Book status enumeration."""

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PUBLISHED = "published"


class BookGenre(str, enum.Enum):
    """Book genre enumeration."""

    FICTION = "fiction"
    NON_FICTION = "non-fiction"
    MYSTERY = "mystery"
    ROMANCE = "romance"
    SCIENCE_FICTION = "science-fiction"
    FANTASY = "fantasy"
    THRILLER = "thriller"
    HORROR = "horror"
    BIOGRAPHY = "biography"
    AUTOBIOGRAPHY = "autobiography"
    HISTORY = "history"
    TRAVEL = "travel"
    SELF_HELP = "self-help"
    BUSINESS = "business"
    POETRY = "poetry"
    DRAMA = "drama"
    COMEDY = "comedy"
    ADVENTURE = "adventure"
    CHILDREN = "children"
    YOUNG_ADULT = "young-adult"
    OTHER = "other"


class BookLanguage(str, enum.Enum):
    """Languages a book can be written in."""

    EN = "en"
    DE = "de"
    ES = "es"
    FR = "fr"
    IT = "it"


# Progress percentage reported for each status once a book has chapters.
STATUS_PROGRESS = {
    BookStatus.DRAFT.value: 10,
    BookStatus.IN_PROGRESS.value: 50,
    BookStatus.COMPLETED.value: 100,
    BookStatus.PUBLISHED.value: 100,
}


class Book(Base):
    """Book model.

    ``total_chapters`` and ``total_words`` are caches of the aggregate over this
    book's chapters; ``services.statistics.recompute_book_statistics`` is the only
    writer.
    """

    __tablename__ = "books"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    genre = Column(String(100))
    language = Column(String(10), default=BookLanguage.EN.value, nullable=False)

    # Status
    status = Column(String(50), default=BookStatus.DRAFT.value, nullable=False)

    # Derived statistics
    total_chapters = Column(Integer, default=0, nullable=False)
    total_words = Column(Integer, default=0, nullable=False)

    cover_image_url = Column(Text)
    is_public = Column(Boolean, default=False, nullable=False)
    ai_enhanced = Column(Boolean, default=False, nullable=False)

    # Owner
    user_id = Column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    owner = relationship("User", back_populates="books")
    chapters = relationship(
        "Chapter",
        back_populates="book",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Chapter.chapter_number",
    )

    @property
    def progress(self) -> int:
        if not self.total_chapters:
            return 0
        return STATUS_PROGRESS.get(self.status, 0)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Book {self.title} ({self.status})>"
