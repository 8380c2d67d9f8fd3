"""
app/api/blog.py

Purpose: Blog endpoints (public reads, admin writes)
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query, Response

from app.api.deps import require_admin
from app.schemas.content import BlogPostPayload
from app.services import blog_service
from utils.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from utils.format_utils import serialize_doc

router = APIRouter()


@router.get("/blog-posts")
async def list_posts(
    category: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
):
    return serialize_doc(await blog_service.list_posts(category, page, page_size))


@router.get("/blog-posts/{post_id}")
async def get_post(post_id: str):
    return {"post": serialize_doc(await blog_service.get_post(post_id))}


@router.post("/blog-posts", status_code=201)
async def create_post(body: BlogPostPayload, admin: Dict[str, Any] = Depends(require_admin)):
    post = await blog_service.create_post(body.model_dump(exclude_none=True))
    return {"success": True, "post": serialize_doc(post)}


@router.put("/blog-posts/{post_id}")
async def update_post(post_id: str, body: BlogPostPayload, admin: Dict[str, Any] = Depends(require_admin)):
    post = await blog_service.update_post(post_id, body.model_dump(exclude_none=True))
    return {"success": True, "post": serialize_doc(post)}


@router.delete("/blog-posts/{post_id}", status_code=204)
async def delete_post(post_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    await blog_service.delete_post(post_id)
    return Response(status_code=204)
