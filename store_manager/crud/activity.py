"""Append-only staff activity log."""

from __future__ import annotations

import logging

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.user import ActionType, User, UserActivityLog
from ..time_utils import utcnow_iso

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    user_id: int | None,
    action_type: ActionType | str,
    action_details: str | None = None,
    ip_address: str | None = None,
) -> UserActivityLog | None:
    """Record an activity row, best-effort.

    Call this only after the primary operation has committed: a failure here
    rolls back the session, logs the error and returns ``None``.
    """

    if user_id is None:
        return None
    action = action_type.value if isinstance(action_type, ActionType) else str(action_type)
    entry = UserActivityLog(
        user_id=user_id,
        action_type=action,
        action_details=action_details,
        ip_address=ip_address,
        created_at=utcnow_iso(),
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "activity.log_failed",
            extra={"extra_data": {"user_id": user_id, "action_type": action}},
        )
        return None
    return entry


def list_user_activity(db: Session, user_id: int, limit: int = 100, offset: int = 0) -> list[UserActivityLog]:
    stmt = (
        select(UserActivityLog)
        .where(UserActivityLog.user_id == user_id)
        .order_by(desc(UserActivityLog.created_at), desc(UserActivityLog.id))
        .limit(limit)
        .offset(offset)
    )
    return list(db.execute(stmt).scalars().all())


def list_all_activity(db: Session, limit: int = 100, offset: int = 0) -> list[dict]:
    stmt = (
        select(UserActivityLog, User.username)
        .join(User, UserActivityLog.user_id == User.id)
        .order_by(desc(UserActivityLog.created_at), desc(UserActivityLog.id))
        .limit(limit)
        .offset(offset)
    )
    return [
        {
            "id": entry.id,
            "user_id": entry.user_id,
            "username": username,
            "action_type": entry.action_type,
            "action_details": entry.action_details,
            "ip_address": entry.ip_address,
            "created_at": entry.created_at,
        }
        for entry, username in db.execute(stmt).all()
    ]
