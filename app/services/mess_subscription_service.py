"""
app/services/mess_subscription_service.py

Purpose: Monthly mess subscription requests

- Subscriber picks a start date; the period runs one calendar month
- Subscriber and owner get in-app notifications
- Subscriber, listing contact and the official inbox get emails (best effort)
"""

from typing import Optional, Dict, Any, List

from app.db.mongo import get_messes_collection, get_mess_subscriptions_collection, get_users_collection
from app.core.config import settings
from app.core.exceptions import ValidationError, ResourceNotFoundError, PermissionDeniedError
from app.core.logging import get_logger, LogContext
from app.models.enums import SubscriptionStatus, NotificationType, NotificationPriority
from app.services.email_service import email_service
from app.services.notification_service import notify_safely
from utils.constants import (
    SUBSCRIPTION_USER_SUBJECT,
    SUBSCRIPTION_OWNER_SUBJECT,
    SUBSCRIPTION_USER_TEXT,
    SUBSCRIPTION_OWNER_TEXT,
)
from utils.format_utils import format_inr
from utils.time_utils import utc_now, parse_iso_date, add_months, format_timestamp
from utils.validation_utils import parse_object_id, normalize_indian_phone

logger = get_logger(__name__)


async def _send_subscription_emails(
    subscription: Dict[str, Any],
    mess: Dict[str, Any],
    owner: Optional[Dict[str, Any]]
) -> int:
    """Returns the number of emails delivered."""
    values = {
        "name": subscription.get("subscriber_name") or "there",
        "mess_name": mess.get("name"),
        "start_date": format_timestamp(subscription["start_date"], "%Y-%m-%d"),
        "end_date": format_timestamp(subscription["end_date"], "%Y-%m-%d"),
        "price": format_inr(subscription["monthly_price"]),
        "email": subscription.get("subscriber_email") or "Not provided",
        "phone": subscription.get("subscriber_phone") or "Not provided",
    }

    messages = []
    if subscription.get("subscriber_email"):
        messages.append((
            subscription["subscriber_email"],
            SUBSCRIPTION_USER_SUBJECT.format(**values),
            SUBSCRIPTION_USER_TEXT.format(**values),
        ))

    owner_text = SUBSCRIPTION_OWNER_TEXT.format(**values)
    owner_subject = SUBSCRIPTION_OWNER_SUBJECT.format(**values)
    contact_email = mess.get("contact_email") or (owner or {}).get("email")
    for recipient in {contact_email, settings.OFFICIAL_EMAIL}:
        if recipient:
            messages.append((recipient, owner_subject, owner_text))

    sent = 0
    for to, subject, text in messages:
        result = await email_service.send(to, subject, text=text)
        if result.get("success"):
            sent += 1
    return sent


async def create_subscription(
    user: Dict[str, Any],
    mess_id: str,
    start_date: str,
    phone: Optional[str] = None
) -> Dict[str, Any]:
    """
    Creates a pending monthly subscription.

    Raises:
        ValidationError: Bad mess id or start date, or no monthly price
        ResourceNotFoundError: Mess does not exist
        PermissionDeniedError: Mess is not approved
    """
    oid = parse_object_id(mess_id)
    if oid is None:
        raise ValidationError("Invalid mess_id")

    start = parse_iso_date(start_date)
    if start is None:
        raise ValidationError("Invalid start_date")

    mess = await get_messes_collection().find_one({"_id": oid})
    if not mess:
        raise ResourceNotFoundError("Mess not found")

    if not mess.get("is_approved") or mess.get("is_rejected"):
        raise PermissionDeniedError("Mess is not available for subscription")

    monthly_price = float(mess.get("monthly_price") or 0)
    if monthly_price <= 0:
        raise ValidationError("Monthly subscription is not available for this mess")

    owner = await get_users_collection().find_one({"_id": mess.get("owner")}) if mess.get("owner") else None

    now = utc_now()
    subscription = {
        "user": user["_id"],
        "mess": mess["_id"],
        "owner": mess.get("owner"),
        "subscriber_name": user.get("name"),
        "subscriber_email": user.get("email"),
        "subscriber_phone": normalize_indian_phone(phone) or normalize_indian_phone(user.get("phone")),
        "start_date": start,
        "end_date": add_months(start, 1),
        "monthly_price": monthly_price,
        "status": SubscriptionStatus.PENDING.value,
        "created_at": now,
        "updated_at": now,
    }
    result = await get_mess_subscriptions_collection().insert_one(subscription)
    subscription["_id"] = result.inserted_id

    with LogContext(user_id=str(user["_id"]), listing_id=str(mess["_id"])):
        logger.info(f"Mess subscription requested for {mess.get('name')}")

    metadata = {
        "subscription_id": str(subscription["_id"]),
        "mess_id": str(mess["_id"]),
        "start_date": subscription["start_date"].isoformat(),
        "end_date": subscription["end_date"].isoformat(),
    }
    await notify_safely(
        user_id=user["_id"],
        type=NotificationType.BOOKING,
        title="Mess subscription created",
        message=f"Your monthly subscription request for {mess.get('name')} has been created (start: {start_date[:10]}).",
        link=f"/messes/{mess['_id']}",
        priority=NotificationPriority.HIGH,
        metadata=metadata,
    )
    if mess.get("owner"):
        await notify_safely(
            user_id=mess["owner"],
            type=NotificationType.BOOKING,
            title="New mess subscription request",
            message=f"{user.get('name') or 'A user'} requested a monthly subscription for {mess.get('name')} (start: {start_date[:10]}).",
            link=f"/messes/{mess['_id']}",
            priority=NotificationPriority.HIGH,
            metadata=metadata,
        )

    await _send_subscription_emails(subscription, mess, owner)
    return subscription


async def list_user_subscriptions(user_id) -> List[Dict[str, Any]]:
    cursor = get_mess_subscriptions_collection().find({"user": user_id}).sort("created_at", -1)
    return await cursor.to_list(length=None)
