"""
app/api/newsletter.py

Purpose: Newsletter subscription and instant listing alerts
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.api.deps import require_admin
from app.schemas.content import NewsletterSubscribe, InstantUpdateRequest
from app.services import newsletter_service

router = APIRouter()


@router.post("/newsletter/subscribe")
async def subscribe(body: NewsletterSubscribe):
    preferences = body.preferences.model_dump() if body.preferences else None
    result = await newsletter_service.subscribe(body.email, preferences)
    created = result["created"]
    return JSONResponse(
        status_code=201 if created else 200,
        content={
            "success": True,
            "message": "Subscribed successfully" if created else "Subscription re-activated",
        },
    )


@router.get("/newsletter/unsubscribe")
async def unsubscribe(token: str = Query(...)):
    await newsletter_service.unsubscribe(token)
    return {"success": True, "message": "You have been unsubscribed"}


@router.post("/newsletter/send-instant")
async def send_instant(body: InstantUpdateRequest, admin: Dict[str, Any] = Depends(require_admin)):
    stats = await newsletter_service.send_instant_update(body.property_data)
    return {
        "success": True,
        "message": f"Instant alert sent to {stats['success']} subscribers",
        "stats": stats,
    }
