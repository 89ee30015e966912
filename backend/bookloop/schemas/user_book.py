from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID
from bookloop.models import ReadingStatusValue
from bookloop.schemas.book import BookResponse


class ReadingStatusSet(BaseModel):
    book_id: UUID
    status: ReadingStatusValue


class ReadingStatusResponse(BaseModel):
    id: str
    book_id: str
    status: ReadingStatusValue
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: datetime
    book: Optional[BookResponse] = None

    class Config:
        from_attributes = True

    @field_validator("id", "book_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return str(value) if isinstance(value, UUID) else value


class FavoriteCreate(BaseModel):
    book_id: UUID


class FavoriteResponse(BaseModel):
    id: str
    book_id: str
    created_at: datetime
    book: Optional[BookResponse] = None

    class Config:
        from_attributes = True

    @field_validator("id", "book_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return str(value) if isinstance(value, UUID) else value
