from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from bookloop.core.auth import get_current_user
from bookloop.database import get_db
from bookloop.models import Book, FavoriteBook, User
from bookloop.schemas.user_book import FavoriteCreate, FavoriteResponse
from bookloop.utils.instrumentation import log_event

router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.post("", response_model=FavoriteResponse, status_code=status.HTTP_201_CREATED)
def add_favorite(
    payload: FavoriteCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Add a book to the current user's favorites."""
    if not db.get(Book, payload.book_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found",
        )

    existing = db.query(FavoriteBook).filter(
        FavoriteBook.user_id == user.id,
        FavoriteBook.book_id == payload.book_id,
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Book is already in favorites",
        )

    favorite = FavoriteBook(user_id=user.id, book_id=payload.book_id)
    db.add(favorite)
    log_event(db=db, event_name="favorite_added", user_id=user.id, properties={"book_id": payload.book_id})
    db.commit()
    db.refresh(favorite)
    return favorite


@router.delete("/{book_id}")
def remove_favorite(
    book_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    favorite = db.query(FavoriteBook).filter(
        FavoriteBook.user_id == user.id,
        FavoriteBook.book_id == book_id,
    ).first()
    if not favorite:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Favorite not found",
        )

    db.delete(favorite)
    log_event(db=db, event_name="favorite_removed", user_id=user.id, properties={"book_id": book_id})
    db.commit()
    return {"success": True}


@router.get("", response_model=List[FavoriteResponse])
def get_my_favorites(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Current user's favorites, newest first."""
    return (
        db.query(FavoriteBook)
        .filter(FavoriteBook.user_id == user.id)
        .order_by(FavoriteBook.created_at.desc())
        .all()
    )


@router.get("/{book_id}/check")
def check_favorite(
    book_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    exists = db.query(FavoriteBook).filter(
        FavoriteBook.user_id == user.id,
        FavoriteBook.book_id == book_id,
    ).first() is not None
    return {"is_favorite": exists}
