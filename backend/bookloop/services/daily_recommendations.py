"""
Daily recommendation selector.

Personalized picks that stay in the same order for a whole calendar day and
change order from one day to the next, without storing any shuffle state:

1. genre picks: books whose categories intersect the viewer's preferred genres
2. social picks: books a followed user rated 4 or higher
3. merge (first occurrence of a book wins) and shuffle with a date-seeded key
4. backfill with popular books when short of the requested count

Books the viewer marked COMPLETED never appear. Anonymous viewers get the
popular list only.
"""
from datetime import date
from math import ceil
from typing import Any, Dict, List, Optional, Sequence, Set
from uuid import UUID
import logging
import re

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookloop.models import Book, Review, User, utcnow
from bookloop.services.common import (
    book_to_dict,
    get_completed_book_ids,
    rating_sort_key,
    shares_category,
)
from bookloop.services.social_graph import get_following_ids

logger = logging.getLogger(__name__)

DEFAULT_DAILY_LIMIT = 5
SHUFFLE_BUCKETS = 1000
ID_PREFIX_LENGTH = 8
FOLLOWING_MIN_RATING = 4

_HEX_PREFIX = re.compile(r"[0-9a-fA-F]+")


def daily_seed(day: date) -> int:
    """YYYYMMDD as an integer, modulo SHUFFLE_BUCKETS."""
    return int(day.strftime("%Y%m%d")) % SHUFFLE_BUCKETS


def id_prefix_value(entity_id: Any) -> int:
    """Leading hex digits of the first ID_PREFIX_LENGTH characters of the id; 0 if none."""
    match = _HEX_PREFIX.match(str(entity_id)[:ID_PREFIX_LENGTH])
    return int(match.group(0), 16) if match else 0


def shuffle_key(day: date, entity_id: Any) -> int:
    return (daily_seed(day) + id_prefix_value(entity_id)) % SHUFFLE_BUCKETS


def daily_shuffle(books: Sequence[Book], day: date) -> List[Book]:
    """Order books by their shuffle key for day; equal keys fall back to id order."""
    return sorted(books, key=lambda book: (shuffle_key(day, book.id), str(book.id)))


def _recommendable_query(excluded_ids: Set[UUID]):
    """Books with at least one review that are not in excluded_ids."""
    query = select(Book).where(Book.review_count > 0)
    if excluded_ids:
        query = query.where(Book.id.not_in(excluded_ids))
    return query


def get_popular_books(
    db: Session,
    limit: int,
    excluded_ids: Optional[Set[UUID]] = None,
) -> List[Book]:
    """Reviewed books by review count, then rating."""
    if limit <= 0:
        return []
    return list(
        db.execute(
            _recommendable_query(excluded_ids or set())
            .order_by(Book.review_count.desc(), Book.average_rating.desc(), Book.id.asc())
            .limit(limit)
        ).scalars()
    )


def _genre_candidates(
    db: Session,
    genres: Sequence[str],
    completed_ids: Set[UUID],
    quota: int,
) -> List[Book]:
    if not genres:
        return []
    books = [
        b for b in db.execute(_recommendable_query(completed_ids)).scalars()
        if shares_category(b, genres)
    ]
    books.sort(key=rating_sort_key)
    return books[:quota]


def _following_candidates(
    db: Session,
    following_ids: Sequence[UUID],
    completed_ids: Set[UUID],
    quota: int,
) -> List[Book]:
    if not following_ids:
        return []
    liked_ids = set(
        db.execute(
            select(Review.book_id).where(
                Review.user_id.in_(following_ids),
                Review.rating >= FOLLOWING_MIN_RATING,
            )
        ).scalars()
    )
    liked_ids -= completed_ids
    if not liked_ids:
        return []

    books = db.execute(select(Book).where(Book.id.in_(liked_ids))).scalars().all()
    return sorted(books, key=rating_sort_key)[:quota]


def select_daily_books(
    db: Session,
    viewer: Optional[User],
    limit: int = DEFAULT_DAILY_LIMIT,
    today: Optional[date] = None,
) -> List[Book]:
    """Ordered daily picks for viewer (None = anonymous)."""
    if viewer is None:
        return get_popular_books(db, limit)

    today = today or utcnow().date()
    quota = ceil(limit / 2)
    completed_ids = get_completed_book_ids(db, viewer.id)

    candidates = _genre_candidates(db, viewer.preferred_genres or [], completed_ids, quota)
    candidates += _following_candidates(db, get_following_ids(db, viewer.id), completed_ids, quota)

    unique: Dict[UUID, Book] = {}
    for book in candidates:
        unique.setdefault(book.id, book)

    selected = daily_shuffle(list(unique.values()), today)

    if len(selected) < limit:
        excluded = completed_ids | set(unique)
        selected += get_popular_books(db, limit - len(selected), excluded_ids=excluded)

    logger.debug(
        "daily recommendations: viewer=%s day=%s candidates=%d returned=%d",
        viewer.id,
        today.isoformat(),
        len(unique),
        min(len(selected), limit),
    )
    return selected[:limit]


def get_daily_recommendations(
    db: Session,
    viewer: Optional[User],
    limit: int = DEFAULT_DAILY_LIMIT,
    today: Optional[date] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """{"books": [...]} payload for the daily recommendations endpoint."""
    books = select_daily_books(db, viewer, limit=limit, today=today)
    return {"books": [book_to_dict(book) for book in books]}
