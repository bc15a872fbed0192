import uuid
from typing import Any

from fastapi import APIRouter, HTTPException
from sqlalchemy import or_
from sqlmodel import col, func, select

from app.api.deps import CurrentUser, SessionDep
from app.models import Message, Notification, NotificationPublic, NotificationsPublic

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _mine(user: Any) -> Any:
    return or_(Notification.user_id == user.id, Notification.user_email == user.email)


@router.get("/", response_model=NotificationsPublic)
def read_notifications(
    session: SessionDep,
    current_user: CurrentUser,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 50,
) -> Any:
    statement = select(Notification).where(_mine(current_user))
    if unread_only:
        statement = statement.where(Notification.is_read == False)  # noqa: E712
    rows = session.exec(
        statement.order_by(col(Notification.created_at).desc()).offset(skip).limit(limit)
    ).all()

    count = session.exec(
        select(func.count()).select_from(Notification).where(_mine(current_user))
    ).one()
    unread = session.exec(
        select(func.count())
        .select_from(Notification)
        .where(_mine(current_user), Notification.is_read == False)  # noqa: E712
    ).one()
    return NotificationsPublic(data=rows, count=count, unread=unread)


@router.post("/{id}/read", response_model=NotificationPublic)
def mark_notification_read(session: SessionDep, current_user: CurrentUser, id: uuid.UUID) -> Any:
    notification = session.get(Notification, id)
    if not notification or (
        notification.user_id != current_user.id and notification.user_email != current_user.email
    ):
        raise HTTPException(status_code=404, detail="Notification not found")
    notification.is_read = True
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


@router.post("/read-all")
def mark_all_notifications_read(session: SessionDep, current_user: CurrentUser) -> Message:
    unread = session.exec(
        select(Notification).where(_mine(current_user), Notification.is_read == False)  # noqa: E712
    ).all()
    for notification in unread:
        notification.is_read = True
        session.add(notification)
    session.commit()
    return Message(message=f"Marked {len(unread)} notifications as read")
