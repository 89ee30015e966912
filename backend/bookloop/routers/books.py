from fastapi import APIRouter, Depends, Query, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import or_, asc, desc
from typing import Optional, List
from uuid import UUID
import logging

from bookloop.core.auth import get_current_user
from bookloop.database import get_db
from bookloop.models import Book, User
from bookloop.schemas.book import BookResponse, BookCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


@router.get("", response_model=List[BookResponse])
def get_books(
    q: Optional[str] = Query(None, description="Search in title or author"),
    sort: str = Query("title", description="Sort field: title, author, average_rating, review_count"),
    order: str = Query("asc", description="Sort order: asc or desc"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Paginated list of books in the local catalog."""
    query = db.query(Book)

    if q:
        qq = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Book.title.ilike(qq),
                Book.author.ilike(qq),
            )
        )

    # Sort with allowlist
    sort_map = {
        "title": Book.title,
        "author": Book.author,
        "average_rating": Book.average_rating,
        "review_count": Book.review_count,
    }
    sort_col = sort_map.get(sort, Book.title)
    sort_fn = desc if order.lower() == "desc" else asc
    books = query.order_by(sort_fn(sort_col), Book.id.asc()).offset(offset).limit(limit).all()

    logger.info("Fetched %d books (q=%s, sort=%s, order=%s)", len(books), q, sort, order)
    return books


@router.get("/{book_id}", response_model=BookResponse)
def get_book(book_id: UUID, db: Session = Depends(get_db)):
    """Get full details of a specific book."""
    book = db.get(Book, book_id)
    if not book:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found",
        )
    return book


@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
def create_book(
    payload: BookCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Register a catalog book locally. Returns the existing row for a known catalog id."""
    if payload.google_books_id:
        existing = db.query(Book).filter(Book.google_books_id == payload.google_books_id).first()
        if existing:
            return existing

    book = Book(**payload.model_dump())
    db.add(book)
    db.commit()
    db.refresh(book)
    logger.info("User %s added book %s (%s)", user.id, book.id, book.title)
    return book
