from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bookloop.core.auth import get_current_user
from bookloop.database import get_db
from bookloop.models import User
from bookloop.schemas.user import MeResponse, PreferredGenresUpdate

router = APIRouter(tags=["me"])


@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)):
    return user


@router.put("/me/preferred-genres", response_model=MeResponse)
def set_preferred_genres(
    payload: PreferredGenresUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Store the genres picked during onboarding (deduplicated, order kept)."""
    user.preferred_genres = list(dict.fromkeys(g.strip() for g in payload.preferred_genres if g.strip()))
    db.commit()
    db.refresh(user)
    return user
