"""
Follow graph mutations and counts.

Follow edges are directed (follower -> following). Following the same user
twice is a no-op; following yourself is rejected.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging

from bookloop.core.auth import get_current_user, get_optional_user
from bookloop.database import get_db
from bookloop.models import Follow, User
from bookloop.schemas.user import FollowCounts, UserSummary
from bookloop.utils.instrumentation import log_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["follows"])


@router.post("/{user_id}/follow")
def follow_user(
    user_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if user_id == user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot follow yourself",
        )
    if not db.get(User, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    existing = db.query(Follow).filter(
        Follow.follower_id == user.id,
        Follow.following_id == user_id,
    ).first()
    if existing:
        return {"success": True, "created": False}

    db.add(Follow(follower_id=user.id, following_id=user_id))
    log_event(db=db, event_name="follow_created", user_id=user.id, properties={"following_id": user_id})
    db.commit()
    logger.info("User %s followed %s", user.id, user_id)
    return {"success": True, "created": True}


@router.delete("/{user_id}/follow")
def unfollow_user(
    user_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    deleted = db.query(Follow).filter(
        Follow.follower_id == user.id,
        Follow.following_id == user_id,
    ).delete(synchronize_session=False)
    if deleted:
        log_event(db=db, event_name="follow_deleted", user_id=user.id, properties={"following_id": user_id})
    db.commit()
    return {"success": True}


@router.get("/{user_id}/is-following")
def is_following(
    user_id: UUID,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Whether the caller follows user_id. Always false for anonymous callers."""
    if user is None:
        return {"is_following": False}
    exists = db.query(Follow).filter(
        Follow.follower_id == user.id,
        Follow.following_id == user_id,
    ).first() is not None
    return {"is_following": exists}


@router.get("/{user_id}/follow-counts", response_model=FollowCounts)
def get_follow_counts(user_id: UUID, db: Session = Depends(get_db)):
    return FollowCounts(
        user_id=str(user_id),
        follower_count=db.query(Follow).filter(Follow.following_id == user_id).count(),
        following_count=db.query(Follow).filter(Follow.follower_id == user_id).count(),
    )


@router.get("/{user_id}/followers", response_model=List[UserSummary])
def get_followers(user_id: UUID, db: Session = Depends(get_db)):
    follows = (
        db.query(Follow)
        .filter(Follow.following_id == user_id)
        .order_by(Follow.created_at.desc())
        .all()
    )
    return [f.follower for f in follows]


@router.get("/{user_id}/following", response_model=List[UserSummary])
def get_following(user_id: UUID, db: Session = Depends(get_db)):
    follows = (
        db.query(Follow)
        .filter(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc())
        .all()
    )
    return [f.following for f in follows]
