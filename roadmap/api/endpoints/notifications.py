from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.endpoints.auth import get_current_user
from roadmap.db.session import get_db
from roadmap.models.user import User as UserModel
from roadmap.schemas.common import ApiResponse, ok, paginate
from roadmap.schemas.notification import Notification, NotificationList
from roadmap.services import notification as notification_service

router = APIRouter()


@router.get("", response_model=ApiResponse[NotificationList])
async def read_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """Уведомления текущего пользователя, новые первыми"""
    notifications, total, unread = await notification_service.get_notifications(
        db, user=current_user, page=page, limit=limit, unread_only=unread_only
    )
    return ok(
        {"notifications": notifications, "unread_count": unread, "pagination": paginate(page, limit, total)}
    )


@router.put("/read-all", response_model=ApiResponse[dict])
async def read_all_notifications(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    updated = await notification_service.mark_all_as_read(db, user=current_user)
    return ok({"updated": updated}, "All notifications marked as read")


@router.put("/{notification_id}/read", response_model=ApiResponse[Notification])
async def read_notification(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    notification = await notification_service.mark_as_read(db, id=notification_id, user=current_user)
    return ok(notification, "Notification marked as read")


@router.delete("/{notification_id}", response_model=ApiResponse[None])
async def delete_notification(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    await notification_service.delete(db, id=notification_id, user=current_user)
    return ok(message="Notification deleted")
