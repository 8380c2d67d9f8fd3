"""
app/services/notification_service.py

Purpose: In-app notifications

- Create for one user (by id or email) or broadcast to many
- List / unread count / mark read
- Callers in other services treat notification failures as non-fatal
"""

from typing import Optional, Dict, Any, List

from bson import ObjectId
from pymongo.errors import PyMongoError

from app.db.mongo import get_notifications_collection, get_users_collection
from app.core.exceptions import ResourceNotFoundError, ValidationError, SecondHomeError
from app.core.logging import get_logger, LogContext
from app.models.enums import NotificationType, NotificationPriority
from utils.time_utils import utc_now
from utils.validation_utils import normalize_email, parse_object_id

logger = get_logger(__name__)

MAX_LIST_LIMIT = 100


def _new_notification(
    user_id: ObjectId,
    type: NotificationType,
    title: str,
    message: str,
    link: Optional[str],
    image: Optional[str],
    priority: NotificationPriority,
    metadata: Optional[Dict[str, Any]]
) -> Dict[str, Any]:
    return {
        "user": user_id,
        "type": type.value,
        "title": title,
        "message": message,
        "link": link,
        "image": image,
        "priority": priority.value,
        "metadata": metadata or {},
        "read": False,
        "created_at": utc_now(),
    }


async def create_notification(
    type: NotificationType,
    title: str,
    message: str,
    user_id=None,
    user_email: Optional[str] = None,
    link: Optional[str] = None,
    image: Optional[str] = None,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Creates a notification for a user identified by id or email.

    Raises:
        ValidationError: If neither user_id nor user_email is given
        ResourceNotFoundError: If the user does not exist
    """
    users = get_users_collection()

    if user_id is not None:
        oid = user_id if isinstance(user_id, ObjectId) else parse_object_id(user_id)
        user = await users.find_one({"_id": oid}) if oid else None
    elif user_email:
        user = await users.find_one({"email": normalize_email(user_email)})
    else:
        raise ValidationError("user_id or user_email is required")

    if not user:
        raise ResourceNotFoundError("User not found for notification")

    notification = _new_notification(user["_id"], type, title, message, link, image, priority, metadata)
    result = await get_notifications_collection().insert_one(notification)
    notification["_id"] = result.inserted_id

    with LogContext(user_id=str(user["_id"])):
        logger.debug(f"Notification created: {type.value} - {title}")

    return notification


async def notify_safely(**kwargs) -> bool:
    """
    Side-effect notification from another workflow (booking, payment, moderation).
    A failure is logged and reported as False instead of failing the caller.
    """
    try:
        await create_notification(**kwargs)
        return True
    except SecondHomeError as e:
        logger.warning(f"Notification skipped: {e.message}")
        return False


async def create_notification_for_users(
    target: str,
    type: NotificationType,
    title: str,
    message: str,
    user_ids: Optional[List[str]] = None,
    link: Optional[str] = None,
    image: Optional[str] = None,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, int]:
    """
    Sends the same notification to every user ("all") or to a list ("specific").

    Returns:
        {"total_users": n, "successful": n, "failed": n}
    """
    users = get_users_collection()

    if target == "all":
        docs = await users.find({}, {"_id": 1}).to_list(length=None)
        recipient_ids = [doc["_id"] for doc in docs]
    elif target == "specific":
        if not user_ids:
            raise ValidationError("user_ids are required when target is 'specific'")
        recipient_ids = [parse_object_id(uid) for uid in user_ids]
    else:
        raise ValidationError("target must be 'all' or 'specific'")

    notifications = get_notifications_collection()
    successful = 0
    failed = 0

    for oid in recipient_ids:
        if oid is None or (target == "specific" and not await users.find_one({"_id": oid})):
            failed += 1
            continue
        try:
            await notifications.insert_one(
                _new_notification(oid, type, title, message, link, image, priority, metadata)
            )
        except PyMongoError as e:
            with LogContext(user_id=str(oid)):
                logger.warning(f"Broadcast notification insert failed: {e}")
            failed += 1
            continue
        successful += 1

    logger.info(
        f"Broadcast notification '{title}'",
        extra={"target": target, "successful": successful, "failed": failed}
    )

    return {"total_users": len(recipient_ids), "successful": successful, "failed": failed}


async def list_notifications(user_id: ObjectId, unread_only: bool = False, limit: int = 50) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"user": user_id}
    if unread_only:
        query["read"] = False
    limit = max(1, min(limit, MAX_LIST_LIMIT))
    cursor = get_notifications_collection().find(query).sort("created_at", -1).limit(limit)
    return await cursor.to_list(length=limit)


async def unread_count(user_id: ObjectId) -> int:
    return await get_notifications_collection().count_documents({"user": user_id, "read": False})


async def mark_read(user_id: ObjectId, notification_id: str) -> None:
    oid = parse_object_id(notification_id)
    if oid is None:
        raise ValidationError("Invalid notification ID")

    result = await get_notifications_collection().update_one(
        {"_id": oid, "user": user_id},
        {"$set": {"read": True, "read_at": utc_now()}}
    )
    if result.matched_count == 0:
        raise ResourceNotFoundError("Notification not found")


async def mark_all_read(user_id: ObjectId) -> int:
    result = await get_notifications_collection().update_many(
        {"user": user_id, "read": False},
        {"$set": {"read": True, "read_at": utc_now()}}
    )
    return result.modified_count
