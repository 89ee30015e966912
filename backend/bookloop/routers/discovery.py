"""
Discovery endpoints: trending, rankings, categories, following feeds and
daily recommendations.

All handlers are read-only. Personalized endpoints accept an optional bearer
token; anonymous callers get the non-personalized behaviour.
"""
from typing import List, Literal, Optional
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from bookloop.core.auth import get_optional_user
from bookloop.core.config import settings
from bookloop.database import get_db
from bookloop.models import User
from bookloop.schemas.book import BookResponse
from bookloop.schemas.discovery import (
    ActivityEvent,
    BookWithActivity,
    CategoryBooksPage,
    CategoryCount,
    DailyRecommendationsResponse,
    FollowingBooksPage,
    RankedUser,
)
from bookloop.services import daily_recommendations, discovery, rankings, social_graph
from bookloop.utils.timing import log_elapsed, now_ms, time_operation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/discovery", tags=["discovery"])


def _viewer_id(user: Optional[User]):
    return user.id if user is not None else None


# ----------------------------
# Catalog-wide
# ----------------------------
@router.get("/trending", response_model=List[BookWithActivity])
def get_trending(
    days_range: int = Query(30, ge=0, le=365),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    with time_operation("discovery.trending", logger.warning, min_ms=settings.SLOW_QUERY_THRESHOLD_MS):
        return discovery.get_trending(db, days_range=days_range, limit=limit)


@router.get("/highest-rated", response_model=List[BookResponse])
def get_highest_rated(
    min_review_count: int = Query(5, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return discovery.get_highest_rated(db, min_review_count=min_review_count, limit=limit)


@router.get("/categories", response_model=List[CategoryCount])
def get_categories(db: Session = Depends(get_db)):
    return discovery.get_categories(db)


@router.get("/categories/{category}", response_model=CategoryBooksPage)
def get_books_by_category(
    category: str,
    sort_by: Literal["popular", "rating", "recent", "trending"] = Query("popular"),
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[UUID] = Query(None, description="Book id that opens the page"),
    db: Session = Depends(get_db),
):
    try:
        return discovery.get_books_by_category_page(
            db, category, sort_by=sort_by, limit=limit, cursor=cursor
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ----------------------------
# Following-scoped
# ----------------------------
@router.get("/following/trending", response_model=List[BookWithActivity])
def get_following_trending(
    days_range: int = Query(30, ge=0, le=365),
    limit: int = Query(20, ge=1, le=100),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return social_graph.get_following_trending(
        db, _viewer_id(user), days_range=days_range, limit=limit
    )


@router.get("/following/books", response_model=FollowingBooksPage)
def get_following_books(
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[UUID] = Query(None, description="Review id that opens the page"),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    try:
        return social_graph.get_following_books_page(
            db, _viewer_id(user), limit=limit, cursor=cursor
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/following/activity", response_model=List[ActivityEvent])
def get_following_activity(
    limit: int = Query(50, ge=1, le=200),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    with time_operation("discovery.following_activity", logger.warning, min_ms=settings.SLOW_QUERY_THRESHOLD_MS):
        return social_graph.get_following_activity(db, _viewer_id(user), limit=limit)


# ----------------------------
# Personalized recommendations
# ----------------------------
@router.get("/recommendations/daily", response_model=DailyRecommendationsResponse)
def get_daily_recommendations(
    limit: int = Query(5, ge=1, le=50),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    t0 = now_ms()
    result = daily_recommendations.get_daily_recommendations(db, user, limit=limit)

    if settings.DEBUG:
        log_elapsed(
            t0,
            f"user={_viewer_id(user)} daily_recommendations limit={limit} count={len(result['books'])}",
            logger.debug,
        )
    logger.info(
        "Daily recommendations for %s: %d books",
        _viewer_id(user) or "anonymous",
        len(result["books"]),
    )
    return result


@router.get("/recommendations/from-reviews", response_model=List[BookResponse])
def get_recommendations_from_reviews(
    limit: int = Query(10, ge=1, le=50),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return discovery.get_recommendations_from_reviews(db, _viewer_id(user), limit=limit)


@router.get("/recommendations/similar-readers", response_model=List[BookResponse])
def get_similar_reader_recommendations(
    limit: int = Query(10, ge=1, le=50),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return discovery.get_similar_reader_recommendations(db, _viewer_id(user), limit=limit)


# ----------------------------
# User rankings
# ----------------------------
@router.get("/rankings/reviewers", response_model=List[RankedUser])
def get_top_reviewers(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return rankings.get_top_reviewers(db, limit=limit)


@router.get("/rankings/followed", response_model=List[RankedUser])
def get_top_followed(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return rankings.get_top_followed(db, limit=limit)
