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

"""Image upload routes (admin only)."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field

from rentaly.middleware.auth import get_current_admin
from rentaly.models.admin import Admin
from rentaly.services.listings import gallery_limit
from rentaly.services.uploads import UploadError, get_image_storage

router = APIRouter(prefix="/api/images")


class ImageDelete(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    public_id: Optional[str] = Field(None, alias="publicId")
    image_path: Optional[str] = Field(None, alias="imagePath")


def upload_error(error: UploadError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=str(error),
    )


@router.post("/upload")
async def upload_image(
    image: UploadFile = File(...),
    current_admin: Admin = Depends(get_current_admin),
):
    """Upload a single image."""
    try:
        saved = await get_image_storage().save_upload(image)
    except UploadError as e:
        raise upload_error(e)

    return {
        "success": True,
        "message": "Image uploaded successfully",
        "imageUrl": saved["url"],
        "data": saved,
    }


@router.post("/upload-multiple")
async def upload_images(
    images: List[UploadFile] = File(...),
    current_admin: Admin = Depends(get_current_admin),
):
    """Upload several images at once."""
    try:
        saved = await get_image_storage().save_many(images)
    except UploadError as e:
        raise upload_error(e)

    return {
        "success": True,
        "message": f"{len(saved)} images uploaded successfully",
        "imageUrls": [item["url"] for item in saved],
        "data": saved,
    }


@router.post("/car-listing")
async def upload_listing_images(
    main_image: Optional[UploadFile] = File(None, alias="mainImage"),
    gallery_images: Optional[List[UploadFile]] = File(None, alias="galleryImages"),
    current_admin: Admin = Depends(get_current_admin),
):
    """Upload a main image and gallery images for a listing form."""
    gallery_uploads = [f for f in gallery_images or [] if f is not None and f.filename]
    has_main = main_image is not None and bool(main_image.filename)

    if not has_main and not gallery_uploads:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No images provided",
        )

    storage = get_image_storage()
    stored = []
    try:
        result = {"mainImage": None, "gallery": []}
        if has_main:
            result["mainImage"] = await storage.save_upload(main_image)
            stored.append(result["mainImage"])
        if gallery_uploads:
            result["gallery"] = await storage.save_many(gallery_uploads, limit=gallery_limit())
            stored.extend(result["gallery"])
    except UploadError as e:
        for item in stored:
            storage.delete_quietly(item)
        raise upload_error(e)

    return {"success": True, "message": "Images uploaded successfully", "data": result}


@router.delete("/delete")
async def delete_image(
    data: ImageDelete,
    current_admin: Admin = Depends(get_current_admin),
):
    """Delete an image by publicId or by its /uploads/ path."""
    try:
        deleted = get_image_storage().delete(public_id=data.public_id, image_path=data.image_path)
    except UploadError as e:
        raise upload_error(e)

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found",
        )

    return {"success": True, "message": "Image deleted successfully"}
