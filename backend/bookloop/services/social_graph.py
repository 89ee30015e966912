"""
Following-scoped discovery: the same aggregations restricted to the users the
viewer follows.

A viewer who follows nobody (or an anonymous viewer) gets an empty result
straight away; that is the defined behaviour, not an error.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from bookloop.models import FavoriteBook, Follow, Review
from bookloop.services.common import book_to_dict, user_summary
from bookloop.services.discovery import (
    DEFAULT_DAYS_RANGE,
    DEFAULT_LIMIT,
    count_activity,
    rank_activity,
    window_start,
)

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_LIMIT = 50


def get_following_ids(db: Session, viewer_id: Optional[UUID]) -> List[UUID]:
    """Ids of the users viewer_id follows."""
    if viewer_id is None:
        return []
    return list(
        db.execute(select(Follow.following_id).where(Follow.follower_id == viewer_id)).scalars()
    )


def get_following_trending(
    db: Session,
    viewer_id: Optional[UUID],
    days_range: int = DEFAULT_DAYS_RANGE,
    limit: int = DEFAULT_LIMIT,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Trending among followed users: their public reviews and favorites in the window."""
    following_ids = get_following_ids(db, viewer_id)
    if not following_ids:
        return []

    threshold = window_start(days_range, now)
    review_book_ids = db.execute(
        select(Review.book_id).where(
            Review.user_id.in_(following_ids),
            Review.is_public.is_(True),
            Review.created_at >= threshold,
        )
    ).scalars().all()
    favorite_book_ids = db.execute(
        select(FavoriteBook.book_id).where(
            FavoriteBook.user_id.in_(following_ids),
            FavoriteBook.created_at >= threshold,
        )
    ).scalars().all()

    activity = count_activity(review_book_ids)
    activity.update(favorite_book_ids)
    return rank_activity(db, activity, limit)


def get_following_activity(
    db: Session,
    viewer_id: Optional[UUID],
    limit: int = DEFAULT_ACTIVITY_LIMIT,
) -> List[Dict[str, Any]]:
    """
    Newest-first feed of review and favorite events by followed users.

    Each source is capped at limit before merging, which is enough to fill
    the merged top-limit.
    """
    following_ids = get_following_ids(db, viewer_id)
    if not following_ids:
        return []

    reviews = db.execute(
        select(Review)
        .options(selectinload(Review.user), selectinload(Review.book))
        .where(Review.user_id.in_(following_ids), Review.is_public.is_(True))
        .order_by(Review.created_at.desc(), Review.id.asc())
        .limit(limit)
    ).scalars().all()
    favorites = db.execute(
        select(FavoriteBook)
        .options(selectinload(FavoriteBook.user), selectinload(FavoriteBook.book))
        .where(FavoriteBook.user_id.in_(following_ids))
        .order_by(FavoriteBook.created_at.desc(), FavoriteBook.id.asc())
        .limit(limit)
    ).scalars().all()

    activities = [
        {
            "id": f"review-{review.id}",
            "type": "review",
            "user": user_summary(review.user),
            "book": book_to_dict(review.book),
            "rating": review.rating,
            "content": review.content,
            "created_at": review.created_at,
        }
        for review in reviews
    ]
    activities.extend(
        {
            "id": f"favorite-{favorite.id}",
            "type": "favorite",
            "user": user_summary(favorite.user),
            "book": book_to_dict(favorite.book),
            "rating": None,
            "content": None,
            "created_at": favorite.created_at,
        }
        for favorite in favorites
    )

    activities.sort(key=lambda a: a["id"])
    activities.sort(key=lambda a: a["created_at"], reverse=True)
    return activities[:limit]


def get_following_books_page(
    db: Session,
    viewer_id: Optional[UUID],
    limit: int = DEFAULT_LIMIT,
    cursor: Optional[UUID] = None,
) -> Dict[str, Any]:
    """
    Books publicly reviewed by followed users, one entry per book.

    The most recent review of each book wins and supplies reviewed_by,
    rating and reviewed_at. Pages split the deduplicated stream: cursor is
    the id of the review that opens the page, and next_cursor is None on the
    last page. A cursor outside the stream raises ValueError.
    """
    following_ids = get_following_ids(db, viewer_id)
    if not following_ids:
        return {"books": [], "next_cursor": None}

    cursor_id = UUID(str(cursor)) if cursor else None
    rows = db.execute(
        select(Review.id, Review.book_id)
        .where(Review.user_id.in_(following_ids), Review.is_public.is_(True))
        .order_by(Review.created_at.desc(), Review.id.asc())
    ).all()

    started = cursor_id is None
    seen = set()
    page_ids: List[UUID] = []
    next_cursor = None
    for review_id, book_id in rows:
        if review_id == cursor_id:
            started = True
        if book_id in seen:
            continue
        seen.add(book_id)
        if not started:
            continue
        if len(page_ids) >= limit:
            next_cursor = str(review_id)
            break
        page_ids.append(review_id)

    if not started:
        raise ValueError(f"Unknown cursor: {cursor}")

    reviews = {}
    if page_ids:
        reviews = {
            review.id: review
            for review in db.execute(
                select(Review)
                .options(selectinload(Review.user), selectinload(Review.book))
                .where(Review.id.in_(page_ids))
            ).scalars()
        }

    books = []
    for review_id in page_ids:
        review = reviews[review_id]
        item = book_to_dict(review.book)
        item["reviewed_by"] = user_summary(review.user)
        item["rating"] = review.rating
        item["reviewed_at"] = review.created_at
        books.append(item)
    return {"books": books, "next_cursor": next_cursor}


def get_following_books(
    db: Session,
    viewer_id: Optional[UUID],
    limit: int = DEFAULT_LIMIT,
) -> List[Dict[str, Any]]:
    """First page of get_following_books_page, as a plain list."""
    return get_following_books_page(db, viewer_id, limit=limit)["books"]
