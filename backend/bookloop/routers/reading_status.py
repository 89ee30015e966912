"""
Reading status endpoints (WANT_TO_READ / READING / COMPLETED per user-book pair).

COMPLETED statuses feed the daily recommendations, which never return a book
the viewer has finished.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging

from bookloop.core.auth import get_current_user
from bookloop.database import get_db
from bookloop.models import Book, ReadingStatus, ReadingStatusValue, User, utcnow
from bookloop.schemas.user_book import ReadingStatusResponse, ReadingStatusSet
from bookloop.utils.instrumentation import log_event

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reading-status", tags=["reading-status"])


def apply_status_transition(reading_status: ReadingStatus, new_status: ReadingStatusValue, now=None) -> None:
    """Set the status, stamping started_at/completed_at when entering READING/COMPLETED."""
    now = now or utcnow()
    if new_status == ReadingStatusValue.READING and reading_status.status != ReadingStatusValue.READING:
        reading_status.started_at = now
    if new_status == ReadingStatusValue.COMPLETED and reading_status.status != ReadingStatusValue.COMPLETED:
        reading_status.completed_at = now
    reading_status.status = new_status


@router.put("", response_model=ReadingStatusResponse)
def set_reading_status(
    payload: ReadingStatusSet,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create or update the current user's status for a book."""
    if not db.get(Book, payload.book_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found",
        )

    try:
        existing = db.query(ReadingStatus).filter(
            ReadingStatus.user_id == user.id,
            ReadingStatus.book_id == payload.book_id,
        ).first()

        if existing is None:
            existing = ReadingStatus(user_id=user.id, book_id=payload.book_id, status=None)
            db.add(existing)
        apply_status_transition(existing, payload.status)

        log_event(
            db=db,
            event_name="reading_status_changed",
            user_id=user.id,
            properties={"book_id": payload.book_id, "status": payload.status.value},
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.error(
            "Failed to set reading status: book_id=%s, user_id=%s",
            payload.book_id,
            user.id,
            exc_info=True,
        )
        raise

    db.refresh(existing)
    return existing


@router.delete("/{book_id}")
def remove_reading_status(
    book_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    reading_status = db.query(ReadingStatus).filter(
        ReadingStatus.user_id == user.id,
        ReadingStatus.book_id == book_id,
    ).first()
    if not reading_status:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Reading status not found",
        )
    db.delete(reading_status)
    db.commit()
    return {"success": True}


@router.get("/{book_id}")
def get_reading_status(
    book_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    reading_status = db.query(ReadingStatus).filter(
        ReadingStatus.user_id == user.id,
        ReadingStatus.book_id == book_id,
    ).first()
    return {"status": reading_status.status.value if reading_status else None}


@router.get("", response_model=List[ReadingStatusResponse])
def list_reading_statuses(
    status_filter: Optional[ReadingStatusValue] = None,
    limit: int = 20,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Current user's statuses, most recently updated first."""
    query = db.query(ReadingStatus).filter(ReadingStatus.user_id == user.id)
    if status_filter:
        query = query.filter(ReadingStatus.status == status_filter)
    return query.order_by(ReadingStatus.updated_at.desc()).limit(limit).all()
