from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime
from bookloop.schemas.book import BookResponse
from bookloop.schemas.user import UserSummary


class BookWithActivity(BookResponse):
    activity_count: int


class FollowingBook(BookResponse):
    reviewed_by: UserSummary
    rating: int
    reviewed_at: datetime


class ActivityEvent(BaseModel):
    id: str
    type: Literal["review", "favorite"]
    user: UserSummary
    book: BookResponse
    rating: Optional[int] = None  # reviews only
    content: Optional[str] = None  # reviews only
    created_at: datetime


class CategoryCount(BaseModel):
    category: str
    book_count: int


class DailyRecommendationsResponse(BaseModel):
    books: List[BookResponse]


class RankedUser(UserSummary):
    bio: Optional[str] = None
    review_count: int
    follower_count: int
    following_count: int


class FollowingBooksPage(BaseModel):
    books: List[FollowingBook]
    next_cursor: Optional[str] = None  # review id that opens the next page


class CategoryBooksPage(BaseModel):
    books: List[BookResponse]
    next_cursor: Optional[str] = None  # book id that opens the next page
