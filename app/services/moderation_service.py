"""
app/services/moderation_service.py

Purpose: Admin moderation of property and mess listings

- Approve / reject with audit fields, owner notified
- AI-assisted review (suggestion only, never changes approval state)
- Review queue listing
- Admin account bootstrap
- New-listing alert email to the admin inbox
"""

import html
import json
import re
from typing import Any, Dict, Optional

from pymongo import ReturnDocument

from app.core.config import settings
from app.core.exceptions import AuthenticationError, ServiceNotConfiguredError, ValidationError
from app.core.logging import get_logger, LogContext
from app.core.security import hash_password
from app.db.mongo import get_users_collection
from app.models.enums import (
    ListingKind,
    ModerationStatus,
    AIRecommendation,
    NotificationType,
    NotificationPriority,
    UserRole,
)
from app.services import listing_service
from app.services.ai_service import ai_service
from app.services.email_service import email_service
from app.services.notification_service import notify_safely
from utils.constants import ADMIN_NEW_LISTING_SUBJECT, ADMIN_NEW_LISTING_HTML, AI_REVIEW_BLOCK_HTML, MAX_PASSWORD_BYTES
from utils.format_utils import format_inr
from utils.time_utils import utc_now
from utils.validation_utils import normalize_email

logger = get_logger(__name__)

AI_REVIEW_TEMPERATURE = 0.3

ANALYSIS_KEYS = {
    ListingKind.PROPERTY: ["legitimacy", "pricing", "completeness", "safety", "location"],
    ListingKind.MESS: ["legitimacy", "pricing", "completeness", "safety", "delivery_packaging"],
}

REVIEW_FOCUS = {
    ListingKind.PROPERTY: (
        "1) Realness/Legitimacy: does it look genuine?\n"
        "2) Pricing reasonableness: rent and deposit vs details and city.\n"
        "3) Completeness: required fields, contact clarity, amenities, photos count.\n"
        "4) Safety & compliance: suspicious claims, spam/scam indicators.\n"
        "5) Location: are address, city and nearby places consistent?"
    ),
    ListingKind.MESS: (
        "1) Realness/Legitimacy: does it look genuine?\n"
        "2) Pricing reasonableness: price vs details and location fields.\n"
        "3) Completeness: required fields, contact clarity, menu/timings, photos count.\n"
        "4) Safety & compliance: suspicious claims, spam/scam indicators.\n"
        "5) Delivery/Packaging: are charges reasonable and consistent?"
    ),
}

PLATFORM_NAMES = {
    ListingKind.PROPERTY: "student accommodation (PG / hostel / flat) platform",
    ListingKind.MESS: "student mess/food subscription platform",
}

PROPERTY_REVIEW_FIELDS = [
    "title", "description", "type", "gender", "address", "city", "state", "pincode",
    "price", "security_deposit", "amenities", "rules", "nearby_colleges",
    "contact_name", "contact_phone",
]

MESS_REVIEW_FIELDS = [
    "name", "description", "address", "location", "city", "state", "pincode",
    "monthly_price", "daily_price", "trial_days", "home_delivery_available",
    "delivery_radius", "delivery_charges", "packaging_available", "packaging_price",
    "meal_types", "cuisine_types", "diet_types", "opening_hours", "amenities",
    "capacity", "contact_name", "contact_phone", "contact_email",
]


# ==============================================
# APPROVE / REJECT
# ==============================================

async def approve_listing(kind: ListingKind, listing_id: str, admin: Dict[str, Any]) -> Dict[str, Any]:
    listing = await listing_service.get_listing_or_404(kind, listing_id)

    updated = await listing_service.get_listing_collection(kind).find_one_and_update(
        {"_id": listing["_id"]},
        {"$set": {
            "is_approved": True,
            "is_rejected": False,
            "approved_at": utc_now(),
            "approved_by": admin["_id"],
            "rejection_reason": None,
            "updated_at": utc_now(),
        }},
        return_document=ReturnDocument.AFTER
    )

    title = listing_service.listing_title(kind, listing)
    with LogContext(user_id=str(admin["_id"]), listing_id=listing_id):
        logger.info(f"{kind.value} approved: {title}")

    if listing.get("owner"):
        await notify_safely(
            user_id=listing["owner"],
            type=NotificationType.LISTING,
            title=f"{listing_service.LISTING_LABELS[kind]} Approved",
            message=f"Your listing '{title}' is now live on SecondHome.",
            link=f"/{'properties' if kind == ListingKind.PROPERTY else 'messes'}/{listing['_id']}",
            priority=NotificationPriority.HIGH,
            metadata={"listing_id": listing_id, "kind": kind.value},
        )

    return updated


async def reject_listing(kind: ListingKind, listing_id: str, admin: Dict[str, Any], reason: Optional[str] = None) -> Dict[str, Any]:
    listing = await listing_service.get_listing_or_404(kind, listing_id)
    reason = (reason or "").strip() or "Listing does not meet our guidelines"

    updated = await listing_service.get_listing_collection(kind).find_one_and_update(
        {"_id": listing["_id"]},
        {"$set": {
            "is_approved": False,
            "is_rejected": True,
            "rejected_at": utc_now(),
            "rejected_by": admin["_id"],
            "rejection_reason": reason,
            "updated_at": utc_now(),
        }},
        return_document=ReturnDocument.AFTER
    )

    title = listing_service.listing_title(kind, listing)
    with LogContext(user_id=str(admin["_id"]), listing_id=listing_id):
        logger.info(f"{kind.value} rejected: {title}", extra={"reason": reason})

    if listing.get("owner"):
        await notify_safely(
            user_id=listing["owner"],
            type=NotificationType.LISTING,
            title=f"{listing_service.LISTING_LABELS[kind]} Rejected",
            message=f"Your listing '{title}' was not approved. Reason: {reason}",
            priority=NotificationPriority.HIGH,
            metadata={"listing_id": listing_id, "kind": kind.value},
        )

    return updated


async def list_listings_for_review(kind: ListingKind, status: ModerationStatus, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
    query = listing_service.moderation_status_query(status)
    return await listing_service.find_listings(kind, query, page, page_size)


# ==============================================
# AI REVIEW
# ==============================================

def _review_snapshot(kind: ListingKind, listing: Dict[str, Any]) -> Dict[str, Any]:
    fields = PROPERTY_REVIEW_FIELDS if kind == ListingKind.PROPERTY else MESS_REVIEW_FIELDS
    snapshot = {field: listing.get(field) for field in fields if listing.get(field) is not None}
    snapshot["images_count"] = len(listing.get("images") or [])
    return snapshot


def build_review_prompt(kind: ListingKind, listing: Dict[str, Any]) -> str:
    label = listing_service.LISTING_LABELS[kind]
    analysis_shape = ",\n    ".join(f'"{key}": "..."' for key in ANALYSIS_KEYS[kind])
    details = json.dumps(_review_snapshot(kind, listing), indent=2, default=str)

    return f"""You are an AI moderation assistant for a {PLATFORM_NAMES[kind]}.
Review the following {label.lower()} listing and provide a suggestion-only assessment (DO NOT auto-approve or auto-reject).

{label} Details:
{details}

Analyze the listing for:
{REVIEW_FOCUS[kind]}

Return ONLY valid JSON (no markdown) in this exact shape:
{{
  "confidence": 0-100,
  "score": 0-100,
  "recommendation": "APPROVE" | "REJECT" | "MANUAL_REVIEW",
  "summary": "short human summary",
  "analysis": {{
    {analysis_shape}
  }},
  "red_flags": ["..."],
  "reason": "one-liner why this recommendation"
}}

Important: This is only a suggestion to help the admin. Never state that you approved/rejected it."""


def _fallback_review(kind: ListingKind) -> Dict[str, Any]:
    note = "AI returned invalid JSON"
    return {
        "confidence": 0,
        "score": 0,
        "recommendation": AIRecommendation.MANUAL_REVIEW.value,
        "summary": "AI response was invalid; please review manually.",
        "analysis": {key: note for key in ANALYSIS_KEYS[kind]},
        "red_flags": [note],
        "reason": "AI response parsing failed",
    }


def _clamp_percent(value: Any) -> int:
    try:
        return max(0, min(100, int(round(float(value)))))
    except (TypeError, ValueError):
        return 0


def parse_ai_review(text: str, kind: ListingKind = ListingKind.MESS) -> Dict[str, Any]:
    """
    Parses the model's reply.

    Tries strict JSON, then the first {...} block in the text, then falls
    back to a MANUAL_REVIEW placeholder with zero scores.
    """
    parsed: Optional[Dict[str, Any]] = None

    try:
        parsed = json.loads(text)
    except (TypeError, ValueError):
        match = re.search(r"\{[\s\S]*\}", text or "")
        if match:
            try:
                parsed = json.loads(match.group(0))
            except ValueError:
                parsed = None

    if not isinstance(parsed, dict):
        logger.warning("AI review reply was not valid JSON")
        return _fallback_review(kind)

    recommendation = str(parsed.get("recommendation", "")).upper()
    if recommendation not in AIRecommendation.__members__:
        recommendation = AIRecommendation.MANUAL_REVIEW.value

    red_flags = parsed.get("red_flags", parsed.get("redFlags", []))
    if not isinstance(red_flags, list):
        red_flags = [str(red_flags)]

    analysis = parsed.get("analysis")
    if not isinstance(analysis, dict):
        analysis = {}

    return {
        "confidence": _clamp_percent(parsed.get("confidence")),
        "score": _clamp_percent(parsed.get("score")),
        "recommendation": recommendation,
        "summary": str(parsed.get("summary", "")),
        "analysis": analysis,
        "red_flags": [str(flag) for flag in red_flags],
        "reason": str(parsed.get("reason", "")),
    }


async def ai_review_listing(kind: ListingKind, listing_id: str) -> Dict[str, Any]:
    """
    Runs the AI review and stores it on the listing as ai_review.
    """
    if not ai_service.is_configured():
        raise ServiceNotConfiguredError("AI service not configured")

    listing = await listing_service.get_listing_or_404(kind, listing_id)

    reply = await ai_service.complete(build_review_prompt(kind, listing), temperature=AI_REVIEW_TEMPERATURE)
    result = parse_ai_review(reply, kind)

    ai_review = {"reviewed": True, "reviewed_at": utc_now(), **result}
    updated = await listing_service.get_listing_collection(kind).find_one_and_update(
        {"_id": listing["_id"]},
        {"$set": {"ai_review": ai_review}},
        return_document=ReturnDocument.AFTER
    )

    with LogContext(listing_id=listing_id):
        logger.info(
            f"AI review stored for {kind.value}",
            extra={"recommendation": result["recommendation"], "score": result["score"]}
        )

    return {"result": result, "listing": updated}


# ==============================================
# ADMIN ALERTS / BOOTSTRAP
# ==============================================

def _score_color(score: int) -> str:
    if score >= 70:
        return "#16a34a"
    if score >= 50:
        return "#f59e0b"
    return "#dc2626"


async def notify_admin_new_listing(kind: ListingKind, listing: Dict[str, Any], owner: Dict[str, Any]) -> bool:
    """
    Emails the admin inbox about a new listing. Best effort.
    """
    if not settings.ADMIN_EMAIL:
        logger.debug("ADMIN_EMAIL not set, skipping new listing alert")
        return False

    ai_review = listing.get("ai_review")
    badge = ""
    ai_block = ""
    if ai_review:
        score = _clamp_percent(ai_review.get("score"))
        badge = "✅ " if score >= 70 else "⚠️ "
        ai_block = AI_REVIEW_BLOCK_HTML.format(
            color=_score_color(score),
            recommendation=ai_review.get("recommendation"),
            score=score,
            confidence=_clamp_percent(ai_review.get("confidence")),
            summary=html.escape(str(ai_review.get("summary", ""))),
        )

    label = listing_service.LISTING_LABELS[kind]
    title = listing_service.listing_title(kind, listing)
    price = listing.get("price") if kind == ListingKind.PROPERTY else listing.get("monthly_price")

    result = await email_service.send(
        to=settings.ADMIN_EMAIL,
        subject=ADMIN_NEW_LISTING_SUBJECT.format(badge=badge, kind=label, title=title),
        html=ADMIN_NEW_LISTING_HTML.format(
            kind=label,
            title=html.escape(title),
            city=html.escape(listing.get("city", "")),
            price=format_inr(price or 0),
            owner_name=html.escape(owner.get("name", "")),
            owner_email=html.escape(owner.get("email", "")),
            ai_block=ai_block,
            admin_url=f"{settings.SITE_URL}/admin",
        ),
    )
    return result["success"]


async def bootstrap_admin(seed_token: Optional[str]) -> Dict[str, Any]:
    """
    Creates or refreshes the admin account from ADMIN_EMAIL / ADMIN_PASSWORD.

    When ADMIN_SEED_TOKEN is set, the caller must present it.
    """
    if settings.ADMIN_SEED_TOKEN and seed_token != settings.ADMIN_SEED_TOKEN:
        raise AuthenticationError("Invalid admin seed token")

    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        raise ServiceNotConfiguredError("ADMIN_EMAIL and ADMIN_PASSWORD must be set")

    if len(settings.ADMIN_PASSWORD) < 8:
        raise ValidationError("ADMIN_PASSWORD must be at least 8 characters")
    if len(settings.ADMIN_PASSWORD.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"ADMIN_PASSWORD must be at most {MAX_PASSWORD_BYTES} bytes")

    email = normalize_email(settings.ADMIN_EMAIL)
    now = utc_now()

    await get_users_collection().update_one(
        {"email": email},
        {
            "$set": {
                "name": settings.ADMIN_NAME,
                "password": hash_password(settings.ADMIN_PASSWORD),
                "role": UserRole.ADMIN.value,
                "email_verified": True,
                "updated_at": now,
            },
            "$setOnInsert": {"email": email, "created_at": now, "phone_verified": False},
        },
        upsert=True
    )

    logger.info(f"Admin account ensured for {email}")
    return {"success": True, "email": email, "role": UserRole.ADMIN.value}
