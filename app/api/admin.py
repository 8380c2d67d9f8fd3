"""
app/api/admin.py

Purpose: Admin moderation endpoints

- Review queues for properties and messes
- Approve / reject / AI-assisted review (suggestion only)
- One-off admin account bootstrap
"""

from enum import Enum
from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Header, Query

from app.api.deps import require_admin
from app.core.logging import get_logger
from app.models.enums import ListingKind, ModerationStatus
from app.schemas.listing import RejectRequest
from app.services import moderation_service
from utils.constants import MAX_PAGE_SIZE
from utils.format_utils import serialize_doc

logger = get_logger(__name__)
router = APIRouter()


class ListingCollection(str, Enum):
    PROPERTIES = "properties"
    MESSES = "messes"


KINDS = {
    ListingCollection.PROPERTIES: ListingKind.PROPERTY,
    ListingCollection.MESSES: ListingKind.MESS,
}


@router.get("/admin/{collection}")
async def list_for_review(
    collection: ListingCollection,
    status: ModerationStatus = ModerationStatus.PENDING,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    admin: Dict[str, Any] = Depends(require_admin)
):
    result = await moderation_service.list_listings_for_review(KINDS[collection], status, page, page_size)
    return serialize_doc(result)


@router.post("/admin/{collection}/{listing_id}/approve")
async def approve(collection: ListingCollection, listing_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    listing = await moderation_service.approve_listing(KINDS[collection], listing_id, admin)
    return {"success": True, "message": "Listing approved", "listing": serialize_doc(listing)}


@router.post("/admin/{collection}/{listing_id}/reject")
async def reject(
    collection: ListingCollection,
    listing_id: str,
    body: Optional[RejectRequest] = None,
    admin: Dict[str, Any] = Depends(require_admin)
):
    reason = body.reason if body else None
    listing = await moderation_service.reject_listing(KINDS[collection], listing_id, admin, reason)
    return {"success": True, "message": "Listing rejected", "listing": serialize_doc(listing)}


@router.post("/admin/{collection}/{listing_id}/ai-review")
async def ai_review(collection: ListingCollection, listing_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    outcome = await moderation_service.ai_review_listing(KINDS[collection], listing_id)
    return {
        "success": True,
        "ai_review": serialize_doc(outcome["result"]),
        "listing": serialize_doc(outcome["listing"]),
    }


@router.post("/admin/bootstrap")
async def bootstrap_admin(x_admin_seed_token: Optional[str] = Header(None)):
    return await moderation_service.bootstrap_admin(x_admin_seed_token)
