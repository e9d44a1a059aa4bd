"""In-app notifications (polled by the browser)."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from .models import Notification


def notify(db: Session, *, user_id: int, type_: str, message: str, related_id: int | None = None) -> Notification:
    """Queue a notification in the caller's transaction; the caller commits."""
    n = Notification(user_id=user_id, type=type_, message=message, related_id=related_id, read=False)
    db.add(n)
    return n


def serialize_notification(n: Notification) -> dict[str, Any]:
    return {
        "id": n.id,
        "type": n.type,
        "message": n.message,
        "related_id": n.related_id,
        "read": bool(n.read),
        "created_at": n.created_at.isoformat() if n.created_at else None,
    }


def unread_for(db: Session, user_id: int) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )


def mark_read(db: Session, user_id: int, notification_ids: list[int] | None = None) -> int:
    """Mark the user's notifications read; ``None`` means all of them. Returns rows changed."""
    q = db.query(Notification).filter(Notification.user_id == user_id, Notification.read.is_(False))
    if notification_ids is not None:
        q = q.filter(Notification.id.in_(notification_ids))
    updated = q.update(
        {Notification.read: True, Notification.updated_at: datetime.now(UTC)},
        synchronize_session=False,
    )
    db.commit()
    return int(updated or 0)


__all__ = ["notify", "serialize_notification", "unread_for", "mark_read"]
