from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.exceptions import NotFound
from core.permissions import Capability, require_capabilities
from models.notification import Notification
from models.user import User
from schemas.common import ApiResponse
from schemas.notification import NotificationRead

router = APIRouter(prefix="/notifications", tags=["Notifications"])

notification_reader = require_capabilities(Capability.READ_NOTIFICATIONS)


@router.get(
    "/",
    response_model=ApiResponse[List[NotificationRead]],
    summary="My notifications, newest first",
)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(notification_reader),
) -> ApiResponse[List[NotificationRead]]:
    stmt = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    res = await db.execute(stmt)
    return ApiResponse[List[NotificationRead]](
        data=[NotificationRead.model_validate(n) for n in res.scalars().all()]
    )


@router.patch(
    "/{notification_id}/read",
    response_model=ApiResponse[NotificationRead],
    summary="Mark a notification as read",
)
async def mark_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(notification_reader),
) -> ApiResponse[NotificationRead]:
    notification = await db.get(Notification, notification_id)
    if not notification or notification.user_id != current_user.id:
        raise NotFound("Notification not found")

    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return ApiResponse[NotificationRead](data=NotificationRead.model_validate(notification))
