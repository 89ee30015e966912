"""
Shared read helpers for the discovery services.

Everything here is read-only and returns plain dicts so the results can be
handed straight to the pydantic response models.
"""
from typing import Any, Dict, Iterable, List, Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookloop.models import Book, ReadingStatus, ReadingStatusValue, User


def book_to_dict(book: Book) -> Dict[str, Any]:
    return {
        "id": str(book.id),
        "google_books_id": book.google_books_id,
        "title": book.title,
        "author": book.author,
        "description": book.description,
        "cover_image_url": book.cover_image_url,
        "categories": list(book.categories or []),
        "average_rating": float(book.average_rating or 0.0),
        "review_count": int(book.review_count or 0),
        "created_at": book.created_at,
    }


def user_summary(user: User) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "name": user.name,
        "image": user.image,
    }


def book_categories(book: Book) -> Set[str]:
    """A book's category tags as a set; duplicates within one book collapse."""
    return {c for c in (book.categories or []) if c}


def shares_category(book: Book, genres: Iterable[str]) -> bool:
    return bool(book_categories(book) & set(genres))


def rating_sort_key(book: Book):
    """average_rating desc, review_count desc, id asc."""
    return (-(book.average_rating or 0.0), -(book.review_count or 0), str(book.id))


def popularity_sort_key(book: Book):
    """review_count desc, average_rating desc, id asc."""
    return (-(book.review_count or 0), -(book.average_rating or 0.0), str(book.id))


def get_completed_book_ids(db: Session, user_id: Optional[UUID]) -> Set[UUID]:
    """Ids of books the user has marked COMPLETED (empty for anonymous viewers)."""
    if user_id is None:
        return set()
    rows = db.execute(
        select(ReadingStatus.book_id).where(
            ReadingStatus.user_id == user_id,
            ReadingStatus.status == ReadingStatusValue.COMPLETED,
        )
    ).scalars()
    return set(rows)


def load_books_in_order(db: Session, book_ids: List[UUID]) -> List[Book]:
    """Fetch books by id, preserving the order of book_ids and skipping missing ones."""
    if not book_ids:
        return []
    books = db.execute(select(Book).where(Book.id.in_(book_ids))).scalars().all()
    by_id = {book.id: book for book in books}
    return [by_id[book_id] for book_id in book_ids if book_id in by_id]
