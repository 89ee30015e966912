"""
Denormalized rating aggregate on Book.

Book.average_rating / Book.review_count mirror the mean and count of the
book's existing reviews. Every review create/update/delete calls
recalculate_book_rating before committing.
"""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bookloop.models import Book, Review

logger = logging.getLogger(__name__)


def recalculate_book_rating(db: Session, book_id: UUID) -> Optional[Book]:
    """
    Recompute average_rating and review_count for one book from its reviews.

    Flushes pending review changes first so the aggregate sees them. Does not
    commit; the caller owns the transaction.
    """
    db.flush()

    avg_rating, review_count = db.execute(
        select(func.avg(Review.rating), func.count(Review.id)).where(Review.book_id == book_id)
    ).one()

    book = db.get(Book, book_id)
    if book is None:
        logger.warning("recalculate_book_rating: book %s not found", book_id)
        return None

    book.average_rating = float(avg_rating) if avg_rating is not None else 0.0
    book.review_count = int(review_count or 0)
    return book


def recalculate_all_book_ratings(db: Session) -> int:
    """Recompute the aggregate for every book. Returns the number of books touched."""
    book_ids = db.execute(select(Book.id)).scalars().all()
    for book_id in book_ids:
        recalculate_book_rating(db, book_id)
    db.commit()
    logger.info("Recalculated rating aggregates for %d books", len(book_ids))
    return len(book_ids)
