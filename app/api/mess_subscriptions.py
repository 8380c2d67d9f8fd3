"""
app/api/mess_subscriptions.py

Purpose: Monthly mess subscription requests
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.schemas.booking import MessSubscriptionCreate
from app.services import mess_subscription_service
from utils.format_utils import serialize_doc

router = APIRouter()


@router.post("/mess-subscriptions", status_code=201)
async def create_subscription(body: MessSubscriptionCreate, user: Dict[str, Any] = Depends(get_current_user)):
    subscription = await mess_subscription_service.create_subscription(
        user, body.mess_id, body.start_date, body.phone
    )
    return {
        "success": True,
        "subscription_id": str(subscription["_id"]),
        "start_date": subscription["start_date"].isoformat(),
        "end_date": subscription["end_date"].isoformat(),
        "monthly_price": subscription["monthly_price"],
        "status": subscription["status"],
    }


@router.get("/mess-subscriptions")
async def my_subscriptions(user: Dict[str, Any] = Depends(get_current_user)):
    items = await mess_subscription_service.list_user_subscriptions(user["_id"])
    return {"items": serialize_doc(items)}
