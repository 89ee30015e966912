"""Pytest configuration for backend tests."""
import sys
import os
from datetime import datetime
from pathlib import Path
from typing import Optional
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are read at import time; never point tests at a real database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from bookloop.database import Base, get_db  # noqa: E402

# Import the entire models module so every table is registered with Base.metadata
import bookloop.models  # noqa: E402,F401
from bookloop.core.security import create_access_token  # noqa: E402
from bookloop.models import (  # noqa: E402
    Book,
    FavoriteBook,
    Follow,
    ReadingStatus,
    ReadingStatusValue,
    Review,
    User,
)
from bookloop.services.ratings import recalculate_book_rating  # noqa: E402

# Defaults to in-memory SQLite; set TEST_DATABASE_URL to run against Postgres
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")

REVIEW_TEXT = "A thoughtful review that is comfortably longer than thirty characters."


@pytest.fixture(scope="function")
def engine():
    """Fresh schema per test."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        test_engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        test_engine = create_engine(TEST_DATABASE_URL, pool_pre_ping=True)

    if not Base.metadata.tables:
        raise RuntimeError("No tables registered in Base.metadata. Did you import bookloop.models?")

    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Session:
    """Database session for one test, using the same flags as production."""
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def client(db: Session):
    """TestClient whose requests share the test session."""
    from bookloop.main import app

    def _get_test_db():
        yield db

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build a valid bearer header for a user."""

    def _auth_headers(user: User) -> dict:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


# ----------------------------
# Factories
# ----------------------------
@pytest.fixture
def make_user(db: Session):
    counter = {"n": 0}

    def _make_user(name: Optional[str] = None, preferred_genres=None, **kwargs) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"Reader {n}",
            email=kwargs.pop("email", f"reader{n}@example.com"),
            preferred_genres=list(preferred_genres or []),
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_book(db: Session):
    counter = {"n": 0}

    def _make_book(title: Optional[str] = None, categories=None, **kwargs) -> Book:
        counter["n"] += 1
        book = Book(
            title=title or f"Book {counter['n']}",
            author=kwargs.pop("author", "Some Author"),
            categories=list(categories or []),
            **kwargs,
        )
        db.add(book)
        db.commit()
        db.refresh(book)
        return book

    return _make_book


@pytest.fixture
def make_review(db: Session):
    def _make_review(
        user: User,
        book: Book,
        rating: int = 4,
        created_at: Optional[datetime] = None,
        is_public: bool = True,
        content: str = REVIEW_TEXT,
    ) -> Review:
        review = Review(
            user_id=user.id,
            book_id=book.id,
            rating=rating,
            content=content,
            is_public=is_public,
        )
        if created_at is not None:
            review.created_at = created_at
        db.add(review)
        recalculate_book_rating(db, book.id)
        db.commit()
        db.refresh(review)
        return review

    return _make_review


@pytest.fixture
def make_favorite(db: Session):
    def _make_favorite(user: User, book: Book, created_at: Optional[datetime] = None) -> FavoriteBook:
        favorite = FavoriteBook(user_id=user.id, book_id=book.id)
        if created_at is not None:
            favorite.created_at = created_at
        db.add(favorite)
        db.commit()
        db.refresh(favorite)
        return favorite

    return _make_favorite


@pytest.fixture
def make_follow(db: Session):
    def _make_follow(follower: User, following: User) -> Follow:
        follow = Follow(follower_id=follower.id, following_id=following.id)
        db.add(follow)
        db.commit()
        return follow

    return _make_follow


@pytest.fixture
def set_status(db: Session):
    def _set_status(user: User, book: Book, status: ReadingStatusValue) -> ReadingStatus:
        reading_status = ReadingStatus(user_id=user.id, book_id=book.id, status=status)
        db.add(reading_status)
        db.commit()
        return reading_status

    return _set_status
