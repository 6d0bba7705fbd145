# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Image storage on Cloudinary with a local-disk fallback."""

import logging
import re
import secrets
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import UploadFile

from rentaly.config import get_settings

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
LOCAL_PREFIX = "local_"


class UploadError(ValueError):
    """Raised when an upload is rejected."""


class ImageStorage:
    """Stores listing images on Cloudinary when configured, else on disk."""

    def __init__(self):
        self.settings = get_settings()
        self._cloudinary = None

    @property
    def upload_root(self) -> Path:
        return Path(self.settings.uploads.directory)

    @property
    def cars_dir(self) -> Path:
        return self.upload_root / "cars"

    @property
    def use_cloudinary(self) -> bool:
        return self.settings.cloudinary.is_configured

    @property
    def cloudinary(self):
        """Lazy-load and configure the Cloudinary SDK."""
        if self._cloudinary is None and self.use_cloudinary:
            import cloudinary
            import cloudinary.uploader

            config = self.settings.cloudinary
            cloudinary.config(
                cloud_name=config.cloud_name,
                api_key=config.api_key,
                api_secret=config.api_secret,
                secure=True,
            )
            self._cloudinary = cloudinary
        return self._cloudinary

    def validate(self, filename: Optional[str], content_type: Optional[str], size: int) -> str:
        """Check type and size; returns the lowercase extension."""
        uploads = self.settings.uploads
        ext = Path(filename or "").suffix.lower().lstrip(".")

        if ext not in uploads.allowed_extensions or (
            content_type and content_type.lower() not in ALLOWED_MIME_TYPES
        ):
            raise UploadError("Only image files (jpeg, jpg, png, webp) are allowed")

        if size == 0:
            raise UploadError(f"File '{filename}' is empty")

        if size > uploads.max_file_size_mb * 1024 * 1024:
            raise UploadError(f"File '{filename}' exceeds {uploads.max_file_size_mb}MB limit")

        return ext

    def _save_local(self, data: bytes, filename: str, ext: str) -> Dict[str, Any]:
        stem = re.sub(r"[^a-zA-Z0-9_-]", "-", Path(filename).stem).strip("-")[:50] or "image"
        stored_name = f"{stem}-{int(time.time() * 1000)}-{secrets.token_hex(8)}.{ext}"

        self.cars_dir.mkdir(parents=True, exist_ok=True)
        (self.cars_dir / stored_name).write_bytes(data)

        base_url = self.settings.app.base_url.rstrip("/")
        return {
            "url": f"{base_url}/uploads/cars/{stored_name}",
            "publicId": f"{LOCAL_PREFIX}{stored_name}",
            "originalName": filename,
            "format": ext,
            "size": len(data),
            "storage": "local",
        }

    def _save_cloudinary(self, data: bytes, filename: str, ext: str) -> Dict[str, Any]:
        result = self.cloudinary.uploader.upload(
            data,
            folder=self.settings.cloudinary.folder,
            resource_type="image",
        )
        return {
            "url": result.get("secure_url") or result.get("url"),
            "publicId": result.get("public_id"),
            "originalName": filename,
            "format": result.get("format", ext),
            "size": result.get("bytes", len(data)),
            "storage": "cloudinary",
        }

    def save_bytes(self, data: bytes, filename: str, content_type: Optional[str] = None) -> Dict[str, Any]:
        ext = self.validate(filename, content_type, len(data))

        if self.use_cloudinary:
            try:
                return self._save_cloudinary(data, filename, ext)
            except Exception as e:
                logger.error("Cloudinary upload failed, storing locally: %s", e)

        return self._save_local(data, filename, ext)

    async def save_upload(self, upload: UploadFile) -> Dict[str, Any]:
        # One byte past the limit is enough for validate() to reject oversized files
        data = await upload.read(self.settings.uploads.max_file_size_mb * 1024 * 1024 + 1)
        return self.save_bytes(data, upload.filename or "image", upload.content_type)

    async def save_many(self, uploads: List[UploadFile], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        limit = limit or self.settings.uploads.max_files
        if len(uploads) > limit:
            raise UploadError(f"Too many files. Maximum is {limit}")

        saved = []
        for upload in uploads:
            saved.append(await self.save_upload(upload))
        return saved

    def resolve_local_path(self, public_id: Optional[str] = None, image_path: Optional[str] = None) -> Path:
        """Map a local publicId or ``/uploads/...`` path to a file inside the upload root."""
        if public_id:
            relative = Path("cars") / public_id[len(LOCAL_PREFIX):]
        else:
            marker = "/uploads/"
            if marker not in image_path:
                raise UploadError("Image path must point into /uploads/")
            relative = Path(image_path.split(marker, 1)[1])

        root = self.upload_root.resolve()
        target = (root / relative).resolve()
        if root not in target.parents:
            raise UploadError("Invalid image path")
        return target

    def delete(self, public_id: Optional[str] = None, image_path: Optional[str] = None) -> bool:
        """Delete a stored image. Returns False when nothing was removed."""
        if not public_id and not image_path:
            raise UploadError("publicId or imagePath is required")

        if image_path or public_id.startswith(LOCAL_PREFIX):
            target = self.resolve_local_path(public_id, image_path)
            if target.exists():
                target.unlink()
                return True
            return False

        if not self.use_cloudinary:
            logger.warning("Cannot delete Cloudinary image %s: Cloudinary not configured", public_id)
            return False

        result = self.cloudinary.uploader.destroy(public_id)
        return result.get("result") == "ok"

    def delete_quietly(self, image: Optional[dict]) -> None:
        """Best-effort removal of an image dict, used when listings go away."""
        if not image or not image.get("publicId"):
            return
        try:
            self.delete(public_id=image["publicId"])
        except Exception as e:
            logger.warning("Failed to delete image %s: %s", image.get("publicId"), e)


def get_image_storage() -> ImageStorage:
    return ImageStorage()
