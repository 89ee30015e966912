"""User leaderboards: most reviews and most followers."""
from typing import Any, Dict, List
from uuid import UUID
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bookloop.models import Follow, Review, User

logger = logging.getLogger(__name__)

DEFAULT_RANKING_LIMIT = 10


def _counts_by(db: Session, column, count_column) -> Dict[UUID, int]:
    rows = db.execute(select(column, func.count(count_column)).group_by(column)).all()
    return {user_id: int(count) for user_id, count in rows}


def _user_counts(db: Session) -> Dict[str, Dict[UUID, int]]:
    """Per-user review, follower and following counts, one GROUP BY each."""
    return {
        "review_count": _counts_by(db, Review.user_id, Review.id),
        "follower_count": _counts_by(db, Follow.following_id, Follow.id),
        "following_count": _counts_by(db, Follow.follower_id, Follow.id),
    }


def _leaderboard(
    db: Session,
    counts: Dict[str, Dict[UUID, int]],
    ranked_by: str,
    limit: int,
) -> List[Dict[str, Any]]:
    """Users with a non-zero counts[ranked_by], highest first, id asc on ties."""
    top = sorted(
        ((user_id, count) for user_id, count in counts[ranked_by].items() if count > 0),
        key=lambda item: (-item[1], str(item[0])),
    )[:limit]
    if not top:
        return []

    users = {
        user.id: user
        for user in db.execute(select(User).where(User.id.in_([user_id for user_id, _ in top]))).scalars()
    }

    entries = []
    for user_id, _ in top:
        user = users.get(user_id)
        if user is None:
            continue
        entries.append({
            "id": str(user.id),
            "name": user.name,
            "image": user.image,
            "bio": user.bio,
            "review_count": counts["review_count"].get(user_id, 0),
            "follower_count": counts["follower_count"].get(user_id, 0),
            "following_count": counts["following_count"].get(user_id, 0),
        })
    return entries


def get_top_reviewers(db: Session, limit: int = DEFAULT_RANKING_LIMIT) -> List[Dict[str, Any]]:
    """Users ordered by review count. Users without reviews are never listed."""
    return _leaderboard(db, _user_counts(db), "review_count", limit)


def get_top_followed(db: Session, limit: int = DEFAULT_RANKING_LIMIT) -> List[Dict[str, Any]]:
    """Users ordered by follower count. Users without followers are never listed."""
    return _leaderboard(db, _user_counts(db), "follower_count", limit)
