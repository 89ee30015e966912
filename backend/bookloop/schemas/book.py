from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID


class BookResponse(BaseModel):
    id: str
    google_books_id: Optional[str] = None
    title: str
    author: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    categories: List[str] = []
    average_rating: float = 0.0
    review_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value) if isinstance(value, UUID) else value

    @field_validator("categories", mode="before")
    @classmethod
    def _default_categories(cls, value):
        return value or []


class BookCreate(BaseModel):
    google_books_id: Optional[str] = None
    title: str
    author: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    categories: List[str] = []
