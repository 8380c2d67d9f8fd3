"""
app/api/uploads.py

Purpose: Image uploads (profile pictures, listing photos)

- Single "file" returns {"url"}
- Multiple "images" return {"image_urls"}
"""

from typing import Optional, List, Dict, Any

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.api.deps import get_current_user
from app.core.exceptions import ValidationError, ServiceNotConfiguredError
from app.core.logging import get_logger, LogContext
from app.models.enums import UploadType
from app.services.storage_service import storage_service

logger = get_logger(__name__)
router = APIRouter()

MAX_IMAGE_BYTES = 10 * 1024 * 1024


async def _read_image(upload: UploadFile) -> bytes:
    if upload.content_type and not upload.content_type.startswith("image/"):
        raise ValidationError(f"{upload.filename} is not an image")
    content = await upload.read()
    if not content:
        raise ValidationError(f"{upload.filename} is empty")
    if len(content) > MAX_IMAGE_BYTES:
        raise ValidationError(f"{upload.filename} is larger than 10 MB")
    return content


@router.post("/upload")
async def upload_images(
    file: Optional[UploadFile] = File(None),
    images: Optional[List[UploadFile]] = File(None),
    type: UploadType = Form(UploadType.PROPERTY),
    user: Dict[str, Any] = Depends(get_current_user)
):
    if not storage_service.is_configured():
        raise ServiceNotConfiguredError("Image upload not configured")

    if file is None and not images:
        raise ValidationError("No files provided")

    with LogContext(user_id=str(user["_id"])):
        if file is not None:
            uploaded = await storage_service.upload_image(await _read_image(file), file.filename, type.value)
            return {"success": True, "url": uploaded["url"]}

        urls = []
        for image in images:
            uploaded = await storage_service.upload_image(await _read_image(image), image.filename, type.value)
            urls.append(uploaded["url"])

        logger.info(f"Uploaded {len(urls)} images")
        return {"success": True, "image_urls": urls}
