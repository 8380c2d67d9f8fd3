"""
app/services/blog_service.py

Purpose: Curated blog posts

- Public list (published only, trending first) and detail with view counting
- Admin create / update / delete
- Publishing a post sends an article notification to every user
"""

from typing import Optional, Dict, Any

from pymongo import ReturnDocument

from app.db.mongo import get_blog_posts_collection
from app.core.exceptions import ValidationError, ResourceNotFoundError
from app.core.logging import get_logger
from app.models.enums import NotificationType, NotificationPriority
from app.services.listing_service import paginate
from app.services.notification_service import create_notification_for_users
from utils.constants import (
    BLOG_CATEGORIES,
    DEFAULT_BLOG_AUTHOR,
    DEFAULT_BLOG_CATEGORY,
    EXCERPT_FALLBACK_LENGTH,
    DEFAULT_PAGE_SIZE,
)
from utils.time_utils import utc_now
from utils.validation_utils import parse_object_id

logger = get_logger(__name__)

EDITABLE_FIELDS = {
    "title", "excerpt", "content", "image", "author", "category",
    "tags", "is_published", "is_trending",
}


def with_excerpt(post: Dict[str, Any]) -> Dict[str, Any]:
    """Posts without an excerpt show the start of their content."""
    if not post.get("excerpt"):
        post["excerpt"] = (post.get("content") or "")[:EXCERPT_FALLBACK_LENGTH]
    return post


def _clean_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}

    for key in ("title", "content"):
        if key in fields:
            fields[key] = fields[key].strip()
            if not fields[key]:
                raise ValidationError(f"{key} cannot be empty")

    if "category" in fields and fields["category"] not in BLOG_CATEGORIES:
        raise ValidationError(
            "Invalid category",
            details={"allowed": BLOG_CATEGORIES}
        )

    return fields


async def _announce(post: Dict[str, Any]) -> None:
    summary = await create_notification_for_users(
        "all",
        NotificationType.ARTICLE,
        "New Article Published",
        post["title"],
        link=f"/blog/{post['_id']}",
        image=post.get("image"),
        priority=NotificationPriority.LOW,
        metadata={"post_id": str(post["_id"])},
    )
    logger.info(f"Article announced to {summary['successful']} users")


async def list_posts(category: Optional[str] = None, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
    query: Dict[str, Any] = {"is_published": True}
    if category and category != "all":
        query["category"] = category

    collection = get_blog_posts_collection()
    skip, limit = paginate(page, page_size)

    total = await collection.count_documents(query)
    cursor = collection.find(query).sort([("is_trending", -1), ("created_at", -1)]).skip(skip).limit(limit)
    posts = await cursor.to_list(length=limit)

    return {
        "items": [with_excerpt(post) for post in posts],
        "total": total,
        "page": (skip // limit) + 1,
        "page_size": limit,
    }


async def get_post(post_id: str) -> Dict[str, Any]:
    """
    Published post by id; each read counts as a view.

    Raises:
        ResourceNotFoundError: Unknown, malformed or unpublished id
    """
    oid = parse_object_id(post_id)
    post = await get_blog_posts_collection().find_one({"_id": oid}) if oid else None
    if not post or not post.get("is_published"):
        raise ResourceNotFoundError("Blog post not found")

    await get_blog_posts_collection().update_one({"_id": oid}, {"$inc": {"views": 1}})
    post["views"] = post.get("views", 0) + 1
    return with_excerpt(post)


async def create_post(data: Dict[str, Any]) -> Dict[str, Any]:
    fields = _clean_payload(data)
    for required in ("title", "content"):
        if not fields.get(required):
            raise ValidationError(f"{required} is required")

    now = utc_now()
    post = {
        "excerpt": None,
        "image": None,
        "author": DEFAULT_BLOG_AUTHOR,
        "category": DEFAULT_BLOG_CATEGORY,
        "tags": [],
        "is_published": False,
        "is_trending": False,
        **fields,
        "views": 0,
        "created_at": now,
        "updated_at": now,
    }
    result = await get_blog_posts_collection().insert_one(post)
    post["_id"] = result.inserted_id

    logger.info(f"Blog post created: {post['title']}")

    if post["is_published"]:
        await _announce(post)
    return post


async def update_post(post_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    oid = parse_object_id(post_id)
    if oid is None:
        raise ValidationError("Invalid blog post ID")

    existing = await get_blog_posts_collection().find_one({"_id": oid})
    if not existing:
        raise ResourceNotFoundError("Blog post not found")

    fields = _clean_payload(data)
    if not fields:
        raise ValidationError("No updatable fields provided")
    fields["updated_at"] = utc_now()

    post = await get_blog_posts_collection().find_one_and_update(
        {"_id": oid},
        {"$set": fields},
        return_document=ReturnDocument.AFTER
    )

    if post.get("is_published") and not existing.get("is_published"):
        await _announce(post)
    return post


async def delete_post(post_id: str) -> None:
    oid = parse_object_id(post_id)
    if oid is None:
        raise ValidationError("Invalid blog post ID")

    result = await get_blog_posts_collection().delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise ResourceNotFoundError("Blog post not found")

    logger.info(f"Blog post deleted: {post_id}")
