"""
Catalog-wide discovery aggregations: trending, highest rated, categories,
and the review-history based recommendations.

Every function is a pure read over the current store and recomputes on each
call. Ties are broken by book id so results are deterministic.
"""
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookloop.models import Book, FavoriteBook, Review, utcnow
from bookloop.services.common import (
    book_categories,
    book_to_dict,
    load_books_in_order,
    rating_sort_key,
    popularity_sort_key,
    shares_category,
)

logger = logging.getLogger(__name__)

DEFAULT_DAYS_RANGE = 30
DEFAULT_LIMIT = 20

# getRecommendationsFromReviews thresholds
LIKED_RATING = 4
MIN_RECOMMENDED_AVERAGE = 3.5
MIN_RECOMMENDED_REVIEWS = 3
MAX_SIMILAR_READERS = 10

CATEGORY_SORTS = ("popular", "rating", "recent", "trending")


def window_start(days_range: int, now: Optional[datetime] = None) -> datetime:
    """Start of the trailing window [now - days_range, now]."""
    return (now or utcnow()) - timedelta(days=days_range)


def count_activity(book_ids: Iterable[UUID]) -> Counter:
    """One increment per activity row."""
    return Counter(book_ids)


def rank_activity(db: Session, activity: Counter, limit: int) -> List[Dict[str, Any]]:
    """Order books by activity count desc (id asc on ties) and attach activity_count."""
    if not activity:
        return []

    ranked = sorted(activity.items(), key=lambda item: (-item[1], str(item[0])))[:limit]
    books = load_books_in_order(db, [book_id for book_id, _ in ranked])

    results = []
    for book in books:
        item = book_to_dict(book)
        item["activity_count"] = activity[book.id]
        results.append(item)
    return results


def get_trending(
    db: Session,
    days_range: int = DEFAULT_DAYS_RANGE,
    limit: int = DEFAULT_LIMIT,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Books ranked by review + favorite events inside the trailing window."""
    threshold = window_start(days_range, now)

    review_book_ids = db.execute(
        select(Review.book_id).where(Review.created_at >= threshold)
    ).scalars().all()
    favorite_book_ids = db.execute(
        select(FavoriteBook.book_id).where(FavoriteBook.created_at >= threshold)
    ).scalars().all()

    activity = count_activity(review_book_ids)
    activity.update(favorite_book_ids)

    logger.debug(
        "trending: days_range=%s reviews=%d favorites=%d books=%d",
        days_range,
        len(review_book_ids),
        len(favorite_book_ids),
        len(activity),
    )
    return rank_activity(db, activity, limit)


def get_highest_rated(
    db: Session,
    min_review_count: int = 5,
    limit: int = DEFAULT_LIMIT,
) -> List[Dict[str, Any]]:
    """
    Books with at least min_review_count reviews, by rating then review count.

    Books under the threshold are excluded outright so a single 5-star review
    cannot top the list.
    """
    books = db.execute(
        select(Book)
        .where(Book.review_count >= min_review_count)
        .order_by(Book.average_rating.desc(), Book.review_count.desc(), Book.id.asc())
        .limit(limit)
    ).scalars().all()
    return [book_to_dict(book) for book in books]


def get_categories(db: Session) -> List[Dict[str, Any]]:
    """Frequency table of category tags, counted once per book."""
    counts: Counter = Counter()
    for categories in db.execute(select(Book.categories)).scalars():
        counts.update({c for c in (categories or []) if c})

    return [
        {"category": category, "book_count": count}
        for category, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def _category_books(db: Session, category: str) -> List[Book]:
    """Books tagged with category."""
    # Tag lists are JSON, so membership is checked here on (id, categories) only
    matching_ids = [
        book_id
        for book_id, categories in db.execute(select(Book.id, Book.categories))
        if category in (categories or [])
    ]
    if not matching_ids:
        return []
    return list(db.execute(select(Book).where(Book.id.in_(matching_ids))).scalars())


def get_books_by_category_page(
    db: Session,
    category: str,
    sort_by: str = "popular",
    limit: int = DEFAULT_LIMIT,
    cursor: Optional[UUID] = None,
) -> Dict[str, Any]:
    """
    Books tagged with category. "trending" currently sorts the same as "popular".

    cursor is the id of the book that opens the page; next_cursor is None on
    the last page. An unknown sort or a cursor outside the listing raises
    ValueError.
    """
    if sort_by not in CATEGORY_SORTS:
        raise ValueError(f"sort_by must be one of {', '.join(CATEGORY_SORTS)}")

    books = _category_books(db, category)
    if sort_by == "rating":
        books.sort(key=rating_sort_key)
    elif sort_by == "recent":
        books.sort(key=lambda b: str(b.id))
        books.sort(key=lambda b: b.created_at, reverse=True)
    else:
        books.sort(key=popularity_sort_key)

    start = 0
    if cursor:
        cursor_id = UUID(str(cursor))
        positions = [i for i, book in enumerate(books) if book.id == cursor_id]
        if not positions:
            raise ValueError(f"Unknown cursor: {cursor}")
        start = positions[0]

    page = books[start:start + limit]
    after = books[start + limit:start + limit + 1]
    return {
        "books": [book_to_dict(book) for book in page],
        "next_cursor": str(after[0].id) if after else None,
    }


def get_books_by_category(
    db: Session,
    category: str,
    sort_by: str = "popular",
    limit: int = DEFAULT_LIMIT,
) -> List[Dict[str, Any]]:
    """First page of get_books_by_category_page, as a plain list."""
    return get_books_by_category_page(db, category, sort_by=sort_by, limit=limit)["books"]


def get_recommendations_from_reviews(
    db: Session,
    viewer_id: Optional[UUID],
    limit: int = 10,
) -> List[Dict[str, Any]]:
    """
    Well-rated books sharing a category with the books the viewer rated 4+.

    Books the viewer already reviewed are skipped. Empty for anonymous viewers
    and for viewers without a 4+ review.
    """
    if viewer_id is None:
        return []

    user_reviews = db.execute(select(Review).where(Review.user_id == viewer_id)).scalars().all()
    if not user_reviews:
        return []

    liked_categories = set()
    for review in user_reviews:
        if review.rating >= LIKED_RATING:
            liked_categories |= book_categories(review.book)

    if not liked_categories:
        return []

    reviewed_ids = {review.book_id for review in user_reviews}
    candidates = db.execute(
        select(Book).where(
            Book.average_rating >= MIN_RECOMMENDED_AVERAGE,
            Book.review_count >= MIN_RECOMMENDED_REVIEWS,
            Book.id.not_in(reviewed_ids),
        )
    ).scalars().all()

    books = sorted(
        (b for b in candidates if shares_category(b, liked_categories)),
        key=rating_sort_key,
    )
    return [book_to_dict(book) for book in books[:limit]]


def get_similar_reader_recommendations(
    db: Session,
    viewer_id: Optional[UUID],
    limit: int = 10,
) -> List[Dict[str, Any]]:
    """
    Books rated 4+ by readers who reviewed any of the same books as the viewer.

    Takes at most MAX_SIMILAR_READERS other readers, skips books the viewer
    already reviewed and keeps one entry per book.
    """
    if viewer_id is None:
        return []

    viewer_book_ids = set(
        db.execute(select(Review.book_id).where(Review.user_id == viewer_id)).scalars().all()
    )
    if not viewer_book_ids:
        return []

    similar_user_ids = db.execute(
        select(Review.user_id)
        .where(Review.book_id.in_(viewer_book_ids), Review.user_id != viewer_id)
        .distinct()
        .order_by(Review.user_id)
        .limit(MAX_SIMILAR_READERS)
    ).scalars().all()
    if not similar_user_ids:
        return []

    reviews = db.execute(
        select(Review)
        .where(
            Review.user_id.in_(similar_user_ids),
            Review.rating >= LIKED_RATING,
            Review.book_id.not_in(viewer_book_ids),
        )
        .order_by(Review.rating.desc(), Review.created_at.desc(), Review.id.asc())
    ).scalars().all()

    seen = set()
    results = []
    for review in reviews:
        if review.book_id in seen:
            continue
        seen.add(review.book_id)
        results.append(book_to_dict(review.book))
        if len(results) >= limit:
            break
    return results
