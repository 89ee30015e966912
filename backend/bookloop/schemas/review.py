from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID
from bookloop.schemas.user import UserSummary

MIN_REVIEW_LENGTH = 30


class ReviewCreate(BaseModel):
    book_id: UUID
    rating: int = Field(..., ge=1, le=5)
    content: str = Field(..., min_length=MIN_REVIEW_LENGTH)
    is_public: bool = True
    read_completed_date: Optional[datetime] = None


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    content: Optional[str] = Field(None, min_length=MIN_REVIEW_LENGTH)
    is_public: Optional[bool] = None
    read_completed_date: Optional[datetime] = None


class ReviewResponse(BaseModel):
    id: str
    user_id: str
    book_id: str
    rating: int
    content: str
    is_public: bool
    read_completed_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True

    @field_validator("id", "user_id", "book_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return str(value) if isinstance(value, UUID) else value
