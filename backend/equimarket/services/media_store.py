"""Cloudinary-backed image storage for listing photos."""

import logging
from typing import Any, Protocol

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from equimarket.config import settings
from equimarket.errors import MediaStoreError

logger = logging.getLogger(__name__)


class MediaStore(Protocol):
    def upload(self, content: bytes) -> dict[str, Any]: ...

    def delete(self, public_id: str) -> None: ...


class CloudinaryMediaStore:
    """Uploads images into one Cloudinary folder and returns their metadata."""

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str) -> None:
        self.folder = folder
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    def upload(self, content: bytes) -> dict[str, Any]:
        """Upload raw image bytes and return url/public_id/size/format."""
        try:
            result = cloudinary.uploader.upload(
                content,
                folder=self.folder,
                resource_type="image",
            )
        except CloudinaryError as e:
            logger.error("Cloudinary upload failed: %s", e)
            raise MediaStoreError("Image upload failed") from e

        url = result.get("secure_url") or result.get("url")
        return {
            "url": url,
            "public_id": result.get("public_id"),
            "thumbnail_url": url.replace("/upload/", "/upload/w_200,h_200,c_fill/") if url else None,
            "width": result.get("width"),
            "height": result.get("height"),
            "format": result.get("format"),
        }

    def delete(self, public_id: str) -> None:
        try:
            cloudinary.uploader.destroy(public_id, resource_type="image")
        except CloudinaryError as e:
            logger.error("Cloudinary delete of %s failed: %s", public_id, e)
            raise MediaStoreError("Image delete failed") from e


def get_cloudinary_store() -> CloudinaryMediaStore:
    return CloudinaryMediaStore(
        settings.cloudinary.cloud_name,
        settings.cloudinary.api_key,
        settings.cloudinary.api_secret,
        settings.cloudinary.folder,
    )
