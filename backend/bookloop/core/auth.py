"""
Authentication helpers for verifying bearer JWTs and resolving the current User.

Discovery endpoints are public: they use get_optional_user and fall back to
anonymous behaviour when no Authorization header is sent. Mutations use
get_current_user and reject anonymous callers.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from bookloop.core.security import decode_access_token
from bookloop.database import get_db
from bookloop.models import User

logger = logging.getLogger(__name__)


def _unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_bearer_token(request: Request) -> Optional[str]:
    """
    Extract 'Bearer <token>' from the Authorization header.

    Returns None when the header is absent; raises 401 when it is malformed.
    """
    auth = request.headers.get("Authorization")
    if not auth:
        return None

    parts = auth.split()
    if len(parts) != 2:
        raise _unauthorized("Invalid Authorization header format. Expected 'Bearer <token>'")

    scheme, token = parts
    if scheme.lower() != "bearer":
        raise _unauthorized("Invalid auth scheme. Expected 'Bearer'")

    if not token.strip():
        raise _unauthorized("Empty bearer token")

    return token


def _resolve_user(token: str, db: Session) -> User:
    payload = decode_access_token(token)
    if payload is None:
        logger.warning("JWT validation failed")
        raise _unauthorized("Token validation failed")

    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("Token missing subject (sub)")

    try:
        user_id = UUID(str(subject))
    except ValueError:
        raise _unauthorized("Token subject is not a valid user id")

    user = db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
) -> Optional[User]:
    """FastAPI dependency: the authenticated User, or None for anonymous callers."""
    token = _extract_bearer_token(request)
    if token is None:
        return None
    return _resolve_user(token, db)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """FastAPI dependency: the authenticated User; 401 when missing or invalid."""
    token = _extract_bearer_token(request)
    if token is None:
        raise _unauthorized("Missing Authorization header")
    return _resolve_user(token, db)
