"""
app/api/properties.py

Purpose: Property listing endpoints

- Public search, near-me search and detail
- Owner create / update / delete and "my listings"
- View tracking
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query, Response

from app.api.deps import get_current_user, get_optional_user, require_owner
from app.schemas.listing import PropertyPayload
from app.services import property_service
from utils.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from utils.format_utils import serialize_doc

router = APIRouter()


@router.get("/properties")
async def list_properties(
    city: Optional[str] = None,
    type: Optional[str] = None,
    gender: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
):
    result = await property_service.list_properties(
        city=city,
        property_type=type,
        gender=gender,
        min_price=min_price,
        max_price=max_price,
        search=search,
        page=page,
        page_size=page_size,
    )
    return serialize_doc(result)


@router.get("/properties/nearby")
async def nearby_properties(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(5.0, gt=0, le=50),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE)
):
    items = await property_service.list_nearby_properties(lat, lng, radius_km, limit)
    return {"items": serialize_doc(items)}


@router.get("/properties/mine")
async def my_properties(user: Dict[str, Any] = Depends(require_owner)):
    items = await property_service.list_owner_properties(user)
    return {"items": serialize_doc(items)}


@router.post("/properties", status_code=201)
async def create_property(body: PropertyPayload, user: Dict[str, Any] = Depends(require_owner)):
    listing = await property_service.create_property(user, body.model_dump(exclude_none=True))
    return {
        "success": True,
        "message": "Property submitted for review",
        "property": serialize_doc(listing),
    }


@router.get("/properties/{property_id}")
async def get_property(property_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    listing = await property_service.get_property(property_id, user)
    return {"property": serialize_doc(listing)}


@router.put("/properties/{property_id}")
async def update_property(
    property_id: str,
    body: PropertyPayload,
    user: Dict[str, Any] = Depends(get_current_user)
):
    listing = await property_service.update_property(property_id, user, body.model_dump(exclude_none=True))
    return {"success": True, "property": serialize_doc(listing)}


@router.delete("/properties/{property_id}", status_code=204)
async def delete_property(property_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await property_service.delete_property(property_id, user)
    return Response(status_code=204)


@router.post("/properties/{property_id}/view")
async def record_view(property_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    return await property_service.record_view(property_id, user)
