"""
Review endpoints.

Every create/update/delete recomputes the book's rating aggregate in the same
transaction, so Book.average_rating and Book.review_count never drift from
the reviews table.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from bookloop.core.auth import get_current_user
from bookloop.database import get_db
from bookloop.models import Book, ReadingStatus, ReadingStatusValue, Review, User, utcnow
from bookloop.schemas.review import ReviewCreate, ReviewResponse, ReviewUpdate
from bookloop.services.ratings import recalculate_book_rating
from bookloop.utils.instrumentation import log_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _get_owned_review(db: Session, review_id: UUID, user: User, action: str) -> Review:
    review = db.get(Review, review_id)
    if not review:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Review not found",
        )
    if review.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not allowed to {action} this review",
        )
    return review


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a review. One review per user per book."""
    book = db.get(Book, payload.book_id)
    if not book:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found",
        )

    existing = db.query(Review).filter(
        Review.user_id == user.id,
        Review.book_id == book.id,
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You have already reviewed this book. Edit the existing review instead.",
        )

    try:
        review = Review(
            user_id=user.id,
            book_id=book.id,
            rating=payload.rating,
            content=payload.content,
            is_public=payload.is_public,
            read_completed_date=payload.read_completed_date,
        )
        db.add(review)
        recalculate_book_rating(db, book.id)

        # Finishing a review completes an in-progress read
        reading_status = db.query(ReadingStatus).filter(
            ReadingStatus.user_id == user.id,
            ReadingStatus.book_id == book.id,
        ).first()
        if reading_status and reading_status.status == ReadingStatusValue.READING:
            reading_status.status = ReadingStatusValue.COMPLETED
            reading_status.completed_at = payload.read_completed_date or utcnow()

        log_event(
            db=db,
            event_name="review_created",
            user_id=user.id,
            properties={"book_id": book.id, "rating": payload.rating},
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to create review: book_id=%s, user_id=%s", book.id, user.id)
        raise

    db.refresh(review)
    return review


@router.patch("/{review_id}", response_model=ReviewResponse)
def update_review(
    review_id: UUID,
    payload: ReviewUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    review = _get_owned_review(db, review_id, user, "edit")

    try:
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(review, field, value)
        recalculate_book_rating(db, review.book_id)
        log_event(
            db=db,
            event_name="review_updated",
            user_id=user.id,
            properties={"review_id": review.id, "book_id": review.book_id},
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to update review %s", review_id)
        raise

    db.refresh(review)
    return review


@router.delete("/{review_id}")
def delete_review(
    review_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    review = _get_owned_review(db, review_id, user, "delete")
    book_id = review.book_id

    try:
        db.delete(review)
        recalculate_book_rating(db, book_id)
        log_event(
            db=db,
            event_name="review_deleted",
            user_id=user.id,
            properties={"review_id": review_id, "book_id": book_id},
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to delete review %s", review_id)
        raise

    return {"success": True}


@router.get("/book/{book_id}", response_model=List[ReviewResponse])
def get_reviews_for_book(book_id: UUID, db: Session = Depends(get_db)):
    """Public reviews of a book, newest first."""
    return (
        db.query(Review)
        .filter(Review.book_id == book_id, Review.is_public.is_(True))
        .order_by(Review.created_at.desc())
        .all()
    )


@router.get("/{review_id}", response_model=ReviewResponse)
def get_review(review_id: UUID, db: Session = Depends(get_db)):
    review = db.get(Review, review_id)
    if not review:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Review not found",
        )
    return review
