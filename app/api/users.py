"""
app/api/users.py

Purpose: Signed-in user's profile and payout account
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_user
from app.models.user import public_user
from app.schemas.content import BankAccountRequest
from app.services import user_service

router = APIRouter()


@router.get("/users/me")
async def get_me(user: Dict[str, Any] = Depends(get_current_user)):
    return {"user": public_user(user)}


@router.get("/users/bank-account")
async def get_bank_account(
    user_id: Optional[str] = Query(None, description="Another user's id (owners and admins)"),
    user: Dict[str, Any] = Depends(get_current_user)
):
    return await user_service.get_bank_account(user, user_id)


@router.post("/users/bank-account")
async def save_bank_account(body: BankAccountRequest, user: Dict[str, Any] = Depends(get_current_user)):
    account = await user_service.save_bank_account(user, body.model_dump())
    return {"success": True, "message": "Bank account saved successfully", "bank_account": account}
