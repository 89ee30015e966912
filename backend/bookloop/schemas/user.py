from pydantic import BaseModel, field_validator
from typing import Optional, List
from uuid import UUID


class UserSummary(BaseModel):
    id: str
    name: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value) if isinstance(value, UUID) else value


class PreferredGenresUpdate(BaseModel):
    preferred_genres: List[str]


class MeResponse(UserSummary):
    email: Optional[str] = None
    bio: Optional[str] = None
    preferred_genres: List[str] = []


class FollowCounts(BaseModel):
    user_id: str
    follower_count: int
    following_count: int
