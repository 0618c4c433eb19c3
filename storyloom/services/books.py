"""Book lookups scoped to their owner."""

from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from storyloom.core.exceptions import NotFoundError
from storyloom.models.book import Book
from storyloom.models.user import User


def get_owned_book(db: Session, user: User, book_id: UUID) -> Book:
    """Load ``book_id`` if ``user`` owns it.

    A book owned by someone else is reported exactly like a missing one.
    """
    book = (
        db.query(Book)
        .filter(Book.id == book_id, Book.user_id == user.id)
        .first()
    )
    if not book:
        raise NotFoundError("Book not found")
    return book


def list_books_for_user(
    db: Session,
    user: User,
    *,
    status: str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Book], int]:
    """Return one page of the user's books, most recently updated first, and the total."""
    query = db.query(Book).filter(Book.user_id == user.id)
    if status:
        query = query.filter(Book.status == status.lower())
    if search:
        term = f"%{search.lower()}%"
        query = query.filter(
            or_(
                Book.title.ilike(term),
                Book.description.ilike(term),
                Book.genre.ilike(term),
            )
        )

    total = query.count()
    books = (
        query.order_by(Book.updated_at.desc(), Book.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return books, total
