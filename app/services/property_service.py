"""
app/services/property_service.py

Purpose: PG / hostel / flat listings

- Public search (filters, pagination, near me)
- Detail view with nearest-place distance summary
- Owner create / update / delete (new and edited listings await moderation)
- View tracking with per-hour notification de-duplication
"""

import re
from datetime import timedelta
from typing import Optional, Dict, Any, List

from pymongo import ReturnDocument

from app.db.mongo import get_properties_collection, get_notifications_collection
from app.core.exceptions import ValidationError, PermissionDeniedError
from app.core.logging import get_logger, LogContext
from app.models.enums import ListingKind, NotificationType, NotificationPriority
from app.models.user import is_owner_or_admin, is_admin
from app.services import listing_service, moderation_service
from app.services.notification_service import notify_safely
from utils.constants import VIEW_NOTIFICATION_WINDOW_MINUTES, DEFAULT_PAGE_SIZE
from utils.geo_utils import (
    haversine_km,
    round_km,
    make_point,
    point_lat_lng,
    compute_distance_summary,
    needs_distance_summary,
)
from utils.time_utils import utc_now

logger = get_logger(__name__)

KIND = ListingKind.PROPERTY

# Fields an owner may set; moderation fields are admin-only
EDITABLE_FIELDS = {
    "title", "description", "type", "gender", "address", "location", "city", "state",
    "pincode", "price", "security_deposit", "amenities", "images", "rules",
    "nearby_colleges", "nearby_places", "contact_name", "contact_phone", "available",
}


def _clean_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}

    lat, lng = data.get("latitude"), data.get("longitude")
    if lat is not None and lng is not None:
        fields["coordinates"] = make_point(lat, lng)

    if "price" in fields and fields["price"] <= 0:
        raise ValidationError("Price must be greater than 0")

    return fields


async def list_properties(
    city: Optional[str] = None,
    property_type: Optional[str] = None,
    gender: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE
) -> Dict[str, Any]:
    """
    Public listing search over approved properties, newest first.
    """
    query = listing_service.public_listing_query()

    if city:
        query["city"] = {"$regex": f"^{re.escape(city.strip())}$", "$options": "i"}
    if property_type:
        query["type"] = property_type
    if gender:
        query["gender"] = gender

    price: Dict[str, float] = {}
    if min_price is not None:
        price["$gte"] = min_price
    if max_price is not None:
        price["$lte"] = max_price
    if price:
        query["price"] = price

    if search:
        pattern = re.escape(search.strip())
        query["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"city": {"$regex": pattern, "$options": "i"}},
            {"address": {"$regex": pattern, "$options": "i"}},
        ]

    return await listing_service.find_listings(KIND, query, page, page_size)


async def list_nearby_properties(lat: float, lng: float, radius_km: float = 5.0, limit: int = 20) -> List[Dict[str, Any]]:
    """
    Approved properties within radius_km, nearest first, each with distance_km.
    """
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValidationError("Invalid coordinates")

    query = listing_service.public_listing_query()
    query["coordinates"] = {
        "$nearSphere": {
            "$geometry": make_point(lat, lng),
            "$maxDistance": radius_km * 1000,
        }
    }

    items = await get_properties_collection().find(query).limit(limit).to_list(length=limit)
    for item in items:
        position = point_lat_lng(item.get("coordinates"))
        if position:
            item["distance_km"] = round_km(haversine_km(lat, lng, position[0], position[1]))
    return items


async def get_property(property_id: str, viewer: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Property detail. Unapproved listings are visible only to their owner and admins.
    """
    listing = await listing_service.get_listing_or_404(KIND, property_id)

    if not listing.get("is_approved"):
        if not viewer or (listing.get("owner") != viewer["_id"] and not is_admin(viewer)):
            raise PermissionDeniedError("This property is awaiting approval")

    if needs_distance_summary(listing):
        listing["distance"] = compute_distance_summary(listing)

    return listing


async def create_property(owner: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    if not is_owner_or_admin(owner):
        raise PermissionDeniedError("Only property owners can list properties")

    fields = _clean_payload(data)
    for required in ("title", "city", "price", "type"):
        if not fields.get(required):
            raise ValidationError(f"{required} is required")

    now = utc_now()
    listing = {
        **fields,
        **listing_service.moderation_defaults(),
        "owner": owner["_id"],
        "rating": 0,
        "reviews": 0,
        "views": 0,
        "created_at": now,
        "updated_at": now,
    }
    listing.setdefault("security_deposit", 0)
    listing.setdefault("amenities", [])
    listing.setdefault("images", [])
    listing["distance"] = compute_distance_summary(listing)

    result = await get_properties_collection().insert_one(listing)
    listing["_id"] = result.inserted_id

    with LogContext(user_id=str(owner["_id"]), listing_id=str(result.inserted_id)):
        logger.info(f"Property listed: {listing['title']}")

    await moderation_service.notify_admin_new_listing(KIND, listing, owner)
    return listing


async def update_property(property_id: str, user: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    listing = await listing_service.get_listing_or_404(KIND, property_id)
    listing_service.ensure_can_manage(listing, user)

    fields = _clean_payload(data)
    if not fields:
        raise ValidationError("No updatable fields provided")

    fields["updated_at"] = utc_now()
    if "nearby_colleges" in fields or "nearby_places" in fields:
        fields["distance"] = compute_distance_summary({**listing, **fields})

    # An owner's edit of a rejected listing sends it back to the queue
    if listing.get("is_rejected") and not is_admin(user):
        fields.update({"is_rejected": False, "rejection_reason": None, "rejected_at": None, "rejected_by": None})

    updated = await get_properties_collection().find_one_and_update(
        {"_id": listing["_id"]},
        {"$set": fields},
        return_document=ReturnDocument.AFTER
    )

    with LogContext(listing_id=property_id):
        logger.info("Property updated")

    return updated


async def delete_property(property_id: str, user: Dict[str, Any]) -> None:
    listing = await listing_service.get_listing_or_404(KIND, property_id)
    listing_service.ensure_can_manage(listing, user)

    await get_properties_collection().delete_one({"_id": listing["_id"]})

    with LogContext(user_id=str(user["_id"]), listing_id=property_id):
        logger.info("Property deleted")


async def list_owner_properties(owner: Dict[str, Any]) -> List[Dict[str, Any]]:
    return await listing_service.list_owner_listings(KIND, owner["_id"])


async def record_view(property_id: str, viewer: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Counts a view. Signed-in viewers also get one "Property Viewed" notification
    per property per hour, so the recently-viewed list stays short.
    """
    listing = await listing_service.get_listing_or_404(KIND, property_id)
    await get_properties_collection().update_one({"_id": listing["_id"]}, {"$inc": {"views": 1}})

    if not viewer:
        return {"success": True, "notified": False}

    since = utc_now() - timedelta(minutes=VIEW_NOTIFICATION_WINDOW_MINUTES)
    recent = await get_notifications_collection().find_one({
        "user": viewer["_id"],
        "type": NotificationType.PROPERTY.value,
        "metadata.property_id": str(listing["_id"]),
        "created_at": {"$gte": since},
    })
    if recent:
        return {"success": True, "notified": False}

    images = listing.get("images") or []
    notified = await notify_safely(
        user_id=viewer["_id"],
        type=NotificationType.PROPERTY,
        title="Property Viewed",
        message=f"You viewed {listing.get('title')} in {listing.get('city', '')}",
        link=f"/properties/{listing['_id']}",
        image=images[0] if images else None,
        priority=NotificationPriority.LOW,
        metadata={"property_id": str(listing["_id"])},
    )
    return {"success": True, "notified": notified}
