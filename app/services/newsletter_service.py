"""
app/services/newsletter_service.py

Purpose: Newsletter subscriptions and instant listing alerts

- Subscribe (re-activates a previous subscriber) / unsubscribe by token
- Instant alert mail for a new listing, copy written by the AI service
  with a plain template when the AI is unavailable
"""

import html
import secrets
from typing import Optional, Dict, Any

from pymongo import ReturnDocument

from app.db.mongo import get_newsletters_collection
from app.core.config import settings
from app.core.exceptions import ValidationError, ResourceNotFoundError, SecondHomeError
from app.core.logging import get_logger
from app.services.ai_service import ai_service
from app.services.email_service import email_service
from utils.constants import (
    NEWSLETTER_INSTANT_SUBJECT,
    NEWSLETTER_FALLBACK_TEXT,
    NEWSLETTER_FOOTER_HTML,
)
from utils.format_utils import format_inr
from utils.time_utils import utc_now
from utils.validation_utils import normalize_email, validate_email

logger = get_logger(__name__)

DEFAULT_PREFERENCES = {"instant_updates": True, "weekly_digest": True}

INSTANT_ALERT_PROMPT = """Create an exciting instant alert email for "SecondHome" about a new listing.

Listing details:
Title: {title}
Location: {location}
Price: {price}/month
Type: {type}
Description: {description}

Requirements:
- Urgent, upbeat tone with a clear call to action ("View Now")
- Highlight what makes the listing stand out
- 150-200 words, a few emojis
- Return only the email body as mobile-friendly HTML with inline CSS"""


def _new_token() -> str:
    return secrets.token_urlsafe(24)


def unsubscribe_url(token: str) -> str:
    return f"{settings.SITE_URL.rstrip('/')}{settings.API_PREFIX}/newsletter/unsubscribe?token={token}"


async def subscribe(email: str, preferences: Optional[Dict[str, bool]] = None) -> Dict[str, Any]:
    """
    Adds a subscriber, or re-activates and updates an existing one.

    Returns:
        {"subscriber": doc, "created": bool}
    """
    email = normalize_email(email)
    if not validate_email(email):
        raise ValidationError("Please provide a valid email address")

    prefs = {**DEFAULT_PREFERENCES, **(preferences or {})}
    collection = get_newsletters_collection()

    existing = await collection.find_one({"email": email})
    if existing:
        subscriber = await collection.find_one_and_update(
            {"_id": existing["_id"]},
            {"$set": {
                "is_active": True,
                "preferences": prefs,
                "unsubscribe_token": existing.get("unsubscribe_token") or _new_token(),
                "updated_at": utc_now(),
            }},
            return_document=ReturnDocument.AFTER
        )
        logger.info("Newsletter subscriber re-activated")
        return {"subscriber": subscriber, "created": False}

    subscriber = {
        "email": email,
        "is_active": True,
        "preferences": prefs,
        "unsubscribe_token": _new_token(),
        "subscribed_at": utc_now(),
    }
    result = await collection.insert_one(subscriber)
    subscriber["_id"] = result.inserted_id

    logger.info("Newsletter subscriber added")
    return {"subscriber": subscriber, "created": True}


async def unsubscribe(token: str) -> None:
    if not token:
        raise ValidationError("Unsubscribe token is required")

    result = await get_newsletters_collection().update_one(
        {"unsubscribe_token": token},
        {"$set": {"is_active": False, "unsubscribed_at": utc_now()}}
    )
    if result.matched_count == 0:
        raise ResourceNotFoundError("Subscription not found")


def _fallback_body(listing: Dict[str, Any], link: str) -> str:
    text = NEWSLETTER_FALLBACK_TEXT.format(
        title=listing.get("title", ""),
        location=listing.get("location", ""),
        price=format_inr(float(listing.get("price") or 0)),
        description=listing.get("description") or "",
        link=link,
    )
    return "<p>" + html.escape(text).replace("\n", "<br>") + "</p>"


async def _alert_body(listing: Dict[str, Any], link: str) -> str:
    if not ai_service.is_configured():
        return _fallback_body(listing, link)

    prompt = INSTANT_ALERT_PROMPT.format(
        title=listing.get("title", ""),
        location=listing.get("location", ""),
        price=format_inr(float(listing.get("price") or 0)),
        type=listing.get("type", ""),
        description=listing.get("description") or "Not provided",
    )
    try:
        content = await ai_service.complete(prompt, temperature=0.7)
    except SecondHomeError as e:
        logger.warning(f"AI newsletter copy unavailable, using template: {e.message}")
        return _fallback_body(listing, link)

    return content.strip() or _fallback_body(listing, link)


async def send_instant_update(listing: Dict[str, Any]) -> Dict[str, Any]:
    """
    Mails a new-listing alert to active subscribers who want instant updates.

    Returns:
        {"total": n, "success": n, "failed": n}
    """
    if not listing or not listing.get("title"):
        raise ValidationError("Property data required")

    cursor = get_newsletters_collection().find({"is_active": True, "preferences.instant_updates": True})
    subscribers = await cursor.to_list(length=None)
    if not subscribers:
        return {"total": 0, "success": 0, "failed": 0}

    listing_id = listing.get("id") or listing.get("_id") or ""
    link = f"{settings.SITE_URL.rstrip('/')}/listings/{listing_id}"
    body = await _alert_body(listing, link)
    subject = NEWSLETTER_INSTANT_SUBJECT.format(
        title=listing.get("title", ""),
        location=listing.get("location", ""),
    )
    button = f'<p style="text-align: center;"><a href="{link}">View Property Now</a></p>'

    success = 0
    failed = 0
    for subscriber in subscribers:
        footer = NEWSLETTER_FOOTER_HTML.format(unsubscribe_url=unsubscribe_url(subscriber.get("unsubscribe_token", "")))
        result = await email_service.send(subscriber["email"], subject, html=body + button + footer)
        if result.get("success"):
            success += 1
        else:
            failed += 1

    logger.info(
        "Instant newsletter sent",
        extra={"total": len(subscribers), "success": success, "failed": failed}
    )
    return {"total": len(subscribers), "success": success, "failed": failed}
