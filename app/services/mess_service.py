"""
app/services/mess_service.py

Purpose: Mess / tiffin listings

- Public search with meal, diet and delivery filters
- Owner create / update (new and edited listings await moderation)
"""

import re
from typing import Optional, Dict, Any, List

from pymongo import ReturnDocument

from app.db.mongo import get_messes_collection
from app.core.exceptions import ValidationError, PermissionDeniedError
from app.core.logging import get_logger, LogContext
from app.models.enums import ListingKind
from app.models.user import is_owner_or_admin, is_admin
from app.services import listing_service, moderation_service
from utils.constants import DEFAULT_PAGE_SIZE
from utils.geo_utils import make_point
from utils.time_utils import utc_now
from utils.validation_utils import normalize_indian_phone, normalize_email

logger = get_logger(__name__)

KIND = ListingKind.MESS

EDITABLE_FIELDS = {
    "name", "description", "address", "location", "city", "state", "pincode",
    "monthly_price", "daily_price", "trial_days", "home_delivery_available",
    "delivery_radius", "delivery_charges", "packaging_available", "packaging_price",
    "images", "meal_types", "cuisine_types", "diet_types", "menu", "opening_hours",
    "amenities", "capacity", "contact_name", "contact_phone", "contact_email",
}


def _clean_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}

    lat, lng = data.get("latitude"), data.get("longitude")
    if lat is not None and lng is not None:
        fields["coordinates"] = make_point(lat, lng)

    if "monthly_price" in fields and fields["monthly_price"] <= 0:
        raise ValidationError("Monthly price must be greater than 0")

    if fields.get("contact_phone"):
        phone = normalize_indian_phone(fields["contact_phone"])
        if not phone:
            raise ValidationError("Contact phone must be a valid 10-digit Indian number")
        fields["contact_phone"] = phone

    if fields.get("contact_email"):
        fields["contact_email"] = normalize_email(fields["contact_email"])

    if not fields.get("home_delivery_available", True):
        fields["delivery_radius"] = 0
        fields["delivery_charges"] = 0

    return fields


async def list_messes(
    city: Optional[str] = None,
    diet_type: Optional[str] = None,
    meal_type: Optional[str] = None,
    home_delivery: Optional[bool] = None,
    max_price: Optional[float] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE
) -> Dict[str, Any]:
    query = listing_service.public_listing_query()

    if city:
        query["city"] = {"$regex": f"^{re.escape(city.strip())}$", "$options": "i"}
    if diet_type:
        query["diet_types"] = diet_type
    if meal_type:
        query["meal_types"] = meal_type
    if home_delivery is not None:
        query["home_delivery_available"] = home_delivery
    if max_price is not None:
        query["monthly_price"] = {"$lte": max_price}
    if search:
        pattern = re.escape(search.strip())
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"city": {"$regex": pattern, "$options": "i"}},
            {"location": {"$regex": pattern, "$options": "i"}},
        ]

    return await listing_service.find_listings(KIND, query, page, page_size)


async def get_mess(mess_id: str, viewer: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    mess = await listing_service.get_listing_or_404(KIND, mess_id)

    if not mess.get("is_approved"):
        if not viewer or (mess.get("owner") != viewer["_id"] and not is_admin(viewer)):
            raise PermissionDeniedError("This mess is awaiting approval")

    return mess


async def create_mess(owner: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    if not is_owner_or_admin(owner):
        raise PermissionDeniedError("Only property owners can list a mess")

    fields = _clean_payload(data)
    for required in ("name", "city", "monthly_price", "contact_phone"):
        if not fields.get(required):
            raise ValidationError(f"{required} is required")

    now = utc_now()
    mess = {
        "daily_price": 0,
        "trial_days": 0,
        "home_delivery_available": False,
        "delivery_radius": 0,
        "delivery_charges": 0,
        "packaging_available": False,
        "packaging_price": 0,
        "images": [],
        "meal_types": [],
        "cuisine_types": [],
        "diet_types": [],
        "menu": [],
        "amenities": [],
        **fields,
        **listing_service.moderation_defaults(),
        "owner": owner["_id"],
        "rating": 0,
        "reviews": 0,
        "created_at": now,
        "updated_at": now,
    }

    result = await get_messes_collection().insert_one(mess)
    mess["_id"] = result.inserted_id

    with LogContext(user_id=str(owner["_id"]), listing_id=str(result.inserted_id)):
        logger.info(f"Mess listed: {mess['name']}")

    await moderation_service.notify_admin_new_listing(KIND, mess, owner)
    return mess


async def update_mess(mess_id: str, user: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    mess = await listing_service.get_listing_or_404(KIND, mess_id)
    listing_service.ensure_can_manage(mess, user)

    fields = _clean_payload(data)
    if not fields:
        raise ValidationError("No updatable fields provided")

    fields["updated_at"] = utc_now()
    if mess.get("is_rejected") and not is_admin(user):
        fields.update({"is_rejected": False, "rejection_reason": None, "rejected_at": None, "rejected_by": None})

    updated = await get_messes_collection().find_one_and_update(
        {"_id": mess["_id"]},
        {"$set": fields},
        return_document=ReturnDocument.AFTER
    )

    with LogContext(listing_id=mess_id):
        logger.info("Mess updated")

    return updated


async def list_owner_messes(owner: Dict[str, Any]) -> List[Dict[str, Any]]:
    return await listing_service.list_owner_listings(KIND, owner["_id"])
