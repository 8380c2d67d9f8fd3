"""
app/api/messes.py

Purpose: Mess / tiffin listing endpoints
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_user, get_optional_user, require_owner
from app.schemas.listing import MessPayload
from app.services import mess_service
from utils.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from utils.format_utils import serialize_doc

router = APIRouter()


@router.get("/messes")
async def list_messes(
    city: Optional[str] = None,
    diet_type: Optional[str] = None,
    meal_type: Optional[str] = None,
    home_delivery: Optional[bool] = None,
    max_price: Optional[float] = Query(None, ge=0),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
):
    result = await mess_service.list_messes(
        city=city,
        diet_type=diet_type,
        meal_type=meal_type,
        home_delivery=home_delivery,
        max_price=max_price,
        search=search,
        page=page,
        page_size=page_size,
    )
    return serialize_doc(result)


@router.get("/messes/mine")
async def my_messes(user: Dict[str, Any] = Depends(require_owner)):
    items = await mess_service.list_owner_messes(user)
    return {"items": serialize_doc(items)}


@router.post("/messes", status_code=201)
async def create_mess(body: MessPayload, user: Dict[str, Any] = Depends(require_owner)):
    mess = await mess_service.create_mess(user, body.model_dump(exclude_none=True))
    return {"success": True, "message": "Mess submitted for review", "mess": serialize_doc(mess)}


@router.get("/messes/{mess_id}")
async def get_mess(mess_id: str, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    mess = await mess_service.get_mess(mess_id, user)
    return {"mess": serialize_doc(mess)}


@router.put("/messes/{mess_id}")
async def update_mess(mess_id: str, body: MessPayload, user: Dict[str, Any] = Depends(get_current_user)):
    mess = await mess_service.update_mess(mess_id, user, body.model_dump(exclude_none=True))
    return {"success": True, "mess": serialize_doc(mess)}
