"""
app/services/listing_service.py

Purpose: Helpers shared by property and mess listings

- Collection per listing kind
- Moderation field defaults and status filters
- Ownership checks and pagination
"""

from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId

from app.db.mongo import get_properties_collection, get_messes_collection
from app.core.exceptions import ValidationError, ResourceNotFoundError, PermissionDeniedError
from app.models.enums import ListingKind, ModerationStatus
from app.models.user import is_admin
from utils.constants import MAX_PAGE_SIZE, DEFAULT_PAGE_SIZE
from utils.validation_utils import parse_object_id

LISTING_LABELS = {
    ListingKind.PROPERTY: "Property",
    ListingKind.MESS: "Mess",
}


def get_listing_collection(kind: ListingKind):
    if kind == ListingKind.PROPERTY:
        return get_properties_collection()
    return get_messes_collection()


def listing_title(kind: ListingKind, listing: Dict[str, Any]) -> str:
    return listing.get("title") if kind == ListingKind.PROPERTY else listing.get("name")


def moderation_defaults() -> Dict[str, Any]:
    return {
        "is_approved": False,
        "is_rejected": False,
        "approved_at": None,
        "approved_by": None,
        "rejected_at": None,
        "rejected_by": None,
        "rejection_reason": None,
        "ai_review": None,
    }


def public_listing_query() -> Dict[str, Any]:
    """Only approved, non-rejected listings are visible to tenants."""
    return {"is_approved": True, "is_rejected": {"$ne": True}}


def moderation_status_query(status: ModerationStatus) -> Dict[str, Any]:
    if status == ModerationStatus.PENDING:
        return {"is_approved": {"$ne": True}, "is_rejected": {"$ne": True}}
    if status == ModerationStatus.APPROVED:
        return {"is_approved": True}
    if status == ModerationStatus.REJECTED:
        return {"is_rejected": True}
    return {}


def paginate(page: int, page_size: int) -> Tuple[int, int]:
    """Returns (skip, limit) with page >= 1 and 1 <= page_size <= MAX_PAGE_SIZE."""
    page = max(1, page or 1)
    page_size = max(1, min(page_size or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))
    return (page - 1) * page_size, page_size


async def get_listing_or_404(kind: ListingKind, listing_id: str) -> Dict[str, Any]:
    """
    Raises:
        ValidationError: If the id is malformed
        ResourceNotFoundError: If no listing has that id
    """
    oid = parse_object_id(listing_id)
    if oid is None:
        raise ValidationError(f"Invalid {kind.value} ID")

    listing = await get_listing_collection(kind).find_one({"_id": oid})
    if not listing:
        raise ResourceNotFoundError(f"{LISTING_LABELS[kind]} not found")
    return listing


def ensure_can_manage(listing: Dict[str, Any], user: Dict[str, Any]) -> None:
    """Listing owner or admin only."""
    if is_admin(user):
        return
    if listing.get("owner") != user["_id"]:
        raise PermissionDeniedError("You can only manage your own listings")


async def find_listings(
    kind: ListingKind,
    query: Dict[str, Any],
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    sort: Optional[List[Tuple[str, int]]] = None
) -> Dict[str, Any]:
    collection = get_listing_collection(kind)
    skip, limit = paginate(page, page_size)

    total = await collection.count_documents(query)
    cursor = collection.find(query).sort(sort or [("created_at", -1)]).skip(skip).limit(limit)
    items = await cursor.to_list(length=limit)

    return {
        "items": items,
        "total": total,
        "page": (skip // limit) + 1,
        "page_size": limit,
    }


async def list_owner_listings(kind: ListingKind, owner_id: ObjectId) -> List[Dict[str, Any]]:
    cursor = get_listing_collection(kind).find({"owner": owner_id}).sort("created_at", -1)
    return await cursor.to_list(length=None)
