"""
app/api/notifications.py

Purpose: In-app notification endpoints
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_user, require_admin
from app.schemas.content import NotificationCreate, SystemNotificationCreate
from app.services import notification_service
from utils.format_utils import serialize_doc

router = APIRouter()


@router.get("/notifications")
async def list_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=notification_service.MAX_LIST_LIMIT),
    user: Dict[str, Any] = Depends(get_current_user)
):
    items = await notification_service.list_notifications(user["_id"], unread_only, limit)
    unread = await notification_service.unread_count(user["_id"])
    return {"items": serialize_doc(items), "unread_count": unread}


@router.get("/notifications/unread-count")
async def unread_count(user: Dict[str, Any] = Depends(get_current_user)):
    return {"count": await notification_service.unread_count(user["_id"])}


@router.post("/notifications/read-all")
async def mark_all_read(user: Dict[str, Any] = Depends(get_current_user)):
    updated = await notification_service.mark_all_read(user["_id"])
    return {"success": True, "updated": updated}


@router.post("/notifications/create", status_code=201)
async def create_notification(body: NotificationCreate, admin: Dict[str, Any] = Depends(require_admin)):
    notification = await notification_service.create_notification(
        type=body.type,
        title=body.title,
        message=body.message,
        user_id=body.user_id,
        user_email=body.user_email,
        link=body.link,
        image=body.image,
        priority=body.priority,
        metadata=body.metadata,
    )
    return {"success": True, "notification": serialize_doc(notification)}


@router.post("/notifications/system")
async def create_system_notification(body: SystemNotificationCreate, admin: Dict[str, Any] = Depends(require_admin)):
    summary = await notification_service.create_notification_for_users(
        body.target,
        body.type,
        body.title,
        body.message,
        user_ids=body.user_ids,
        link=body.link,
        image=body.image,
        priority=body.priority,
        metadata=body.metadata,
    )
    return {"success": True, **summary}


@router.post("/notifications/{notification_id}/read")
async def mark_read(notification_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await notification_service.mark_read(user["_id"], notification_id)
    return {"success": True}
