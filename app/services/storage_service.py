"""
app/services/storage_service.py

Purpose: Image uploads to Cloudinary

- Signed uploads through the Cloudinary REST API
- Profile pictures and listing photos in separate folders
"""

import hashlib
import time
import httpx
from typing import Dict, Any

from app.core.config import settings
from app.core.exceptions import ExternalServiceError, ServiceNotConfiguredError
from app.core.logging import get_logger

logger = get_logger(__name__)

UPLOAD_FOLDERS = {
    "profile": "secondhome/profiles",
    "property": "secondhome/properties",
}


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """
    Cloudinary signature: SHA-1 of the sorted "key=value" pairs joined by "&",
    followed by the API secret.
    """
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class StorageService:

    def __init__(self):
        self.cloud_name = settings.CLOUDINARY_CLOUD_NAME
        self.api_key = settings.CLOUDINARY_API_KEY
        self.api_secret = settings.CLOUDINARY_API_SECRET
        self._timeout = 60.0

    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    async def upload_image(self, content: bytes, filename: str, upload_type: str) -> Dict[str, Any]:
        """
        Uploads one image.

        Returns:
            {"url": secure_url, "public_id": ...}

        Raises:
            ServiceNotConfiguredError: If Cloudinary credentials are missing
            ExternalServiceError: If the upload fails
        """
        if not self.is_configured():
            raise ServiceNotConfiguredError("Image upload not configured. Set CLOUDINARY_* variables")

        params = {
            "folder": UPLOAD_FOLDERS.get(upload_type, UPLOAD_FOLDERS["property"]),
            "timestamp": int(time.time()),
        }
        data = dict(params)
        data["api_key"] = self.api_key
        data["signature"] = sign_params(params, self.api_secret)

        url = f"https://api.cloudinary.com/v1_1/{self.cloud_name}/image/upload"

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, data=data, files={"file": (filename, content)})
        except httpx.RequestError as e:
            logger.error(f"Cloudinary upload request failed: {e}")
            raise ExternalServiceError("Image upload failed")

        if response.status_code != 200:
            logger.error(f"Cloudinary upload error: {response.status_code} - {response.text[:200]}")
            raise ExternalServiceError("Image upload failed")

        result = response.json()
        logger.info(f"Uploaded image to {params['folder']}: {result.get('public_id')}")
        return {"url": result.get("secure_url"), "public_id": result.get("public_id")}


# Singleton instance
storage_service = StorageService()
