"""
Server-side event logging helper.

Mutations (reviews, favorites, follows, reading status) record an EventLog row
and a structured log line. Discovery reads never log events.
"""
import logging
from typing import Optional, Dict, Any
from uuid import UUID
from sqlalchemy.orm import Session
from bookloop.models import EventLog

logger = logging.getLogger(__name__)


def _json_safe(properties: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if properties is None:
        return None
    return {key: str(value) if isinstance(value, UUID) else value for key, value in properties.items()}


def log_event(
    db: Session,
    event_name: str,
    user_id: Optional[UUID] = None,
    properties: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> None:
    """
    Add an event to the caller's transaction and emit a structured log.

    Args:
        db: Database session
        event_name: Name of the event (e.g., "review_created", "follow_created")
        user_id: Optional user ID (UUID)
        properties: Optional dict of event properties; UUID values are stringified
        request_id: Optional request ID for correlating events

    Note: This function does NOT commit. The caller commits together with the
    mutation it is recording.
    """
    safe_properties = _json_safe(properties)
    try:
        db.add(
            EventLog(
                event_name=event_name,
                user_id=user_id,
                properties=safe_properties,
                request_id=request_id,
            )
        )
    except Exception as e:
        # Never break the request path
        logger.warning(
            "Failed to log event: event_name=%s, user_id=%s, error=%s",
            event_name,
            user_id,
            str(e),
            exc_info=True,
        )
        return

    logger.info(
        "event_logged",
        extra={
            "event_name": event_name,
            "user_id": str(user_id) if user_id else None,
            "request_id": request_id,
            "properties": safe_properties,
        },
    )
