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

"""Public listing routes and multipart admin listing management."""

import json
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from rentaly.database import get_db
from rentaly.middleware.auth import require_permission
from rentaly.models.admin import Admin
from rentaly.models.listing import Listing
from rentaly.services.audit import log_audit_event
from rentaly.services.availability import check_availability
from rentaly.services.listings import (
    ListingCreate,
    ListingError,
    ListingInUseError,
    ListingUpdate,
    apply_sort,
    build_listing_query,
    can_manage,
    create_listing,
    delete_listing,
    filter_options,
    find_listing,
    gallery_limit,
    update_listing,
)
from rentaly.services.uploads import UploadError, get_image_storage
from rentaly.utils.helpers import listing_page_meta, to_naive_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/listings")

JSON_FORM_FIELDS = ("pricing", "features", "seasonalPricing", "gallery", "mainImage")


def validation_message(error: ValidationError) -> str:
    """Flatten pydantic errors into one readable line."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}" if location else item.get("msg"))
    return "; ".join(parts)


async def read_listing_form(request: Request) -> Tuple[dict, Optional[UploadFile], List[UploadFile]]:
    """Split a multipart listing form into decoded text fields and image files.

    ``mainImage`` may be either a file or a URL/JSON string.
    """
    form = await request.form()
    data = {}
    main_file = None
    gallery_files = []
    for key, value in form.multi_items():
        if not isinstance(value, str):
            if key == "mainImage":
                main_file = value
            elif key == "galleryImages":
                gallery_files.append(value)
            continue
        value = value.strip()
        if value == "":
            continue
        if key == "mainImage" and not value.startswith("{"):
            value = {"url": value}
        elif key in JSON_FORM_FIELDS:
            try:
                value = json.loads(value)
            except ValueError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Field '{key}' must be valid JSON",
                )
        data[key] = value
    return data, main_file, gallery_files


async def store_form_images(
    data: dict,
    main_image: Optional[UploadFile],
    gallery_images: Optional[List[UploadFile]],
    title: Optional[str],
) -> List[dict]:
    """Upload files from the form and merge them into ``data``; returns what was stored."""
    storage = get_image_storage()
    uploads = [f for f in gallery_images or [] if f is not None and f.filename]
    stored = []

    existing_gallery = data.get("gallery") or []
    limit = gallery_limit()
    if len(existing_gallery) + len(uploads) > limit:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Gallery can hold at most {limit} images",
        )

    try:
        if main_image is not None and main_image.filename:
            saved = await storage.save_upload(main_image)
            stored.append(saved)
            data["mainImage"] = {"url": saved["url"], "publicId": saved["publicId"], "alt": title or ""}

        if uploads:
            saved_gallery = await storage.save_many(uploads, limit=limit)
            stored.extend(saved_gallery)
            data["gallery"] = list(existing_gallery) + [
                {"url": saved["url"], "publicId": saved["publicId"], "alt": title or ""}
                for saved in saved_gallery
            ]
    except UploadError as e:
        for saved in stored:
            storage.delete_quietly(saved)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return stored


def get_listing_or_404(db: Session, listing_id: int) -> Listing:
    listing = db.query(Listing).filter(Listing.id == listing_id).first()
    if not listing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Listing not found",
        )
    return listing


@router.get("")
async def list_listings(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    category: Optional[str] = None,
    brand: Optional[str] = None,
    model: Optional[str] = None,
    transmission: Optional[str] = None,
    fuel_type: Optional[str] = Query(None, alias="fuelType"),
    body_type: Optional[str] = Query(None, alias="bodyType"),
    year: Optional[int] = None,
    featured: Optional[bool] = None,
    listing_status: str = Query("active", alias="status"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("DESC", alias="sortOrder"),
    db: Session = Depends(get_db),
):
    """Search listings with filters, sorting and pagination."""
    query = build_listing_query(
        db,
        category=category,
        brand=brand,
        model=model,
        transmission=transmission,
        fuel_type=fuel_type,
        body_type=body_type,
        year=year,
        featured=featured,
        status=listing_status,
        min_price=min_price,
        max_price=max_price,
        search=search,
    )

    total = query.count()
    listings = apply_sort(query, sort_by, sort_order).offset((page - 1) * limit).limit(limit).all()

    return {
        "success": True,
        "data": [listing.to_dict() for listing in listings],
        "pagination": listing_page_meta(page, limit, total),
    }


@router.get("/filters")
async def get_filter_options(db: Session = Depends(get_db)):
    """Facet values for the listing search form."""
    return {"success": True, "data": filter_options(db)}


@router.get("/{id_or_slug}")
async def get_listing(
    id_or_slug: str,
    db: Session = Depends(get_db),
):
    """Get a listing by id or slug and count the view."""
    listing = find_listing(db, id_or_slug)
    if not listing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Listing not found",
        )

    listing.view_count = (listing.view_count or 0) + 1
    db.commit()
    db.refresh(listing)

    return {"success": True, "data": listing.to_dict(include_owner=True)}


@router.get("/{listing_id}/availability")
async def get_availability(
    listing_id: int,
    pickup: datetime,
    dropoff: datetime,
    db: Session = Depends(get_db),
):
    """Check whether the listing can be rented for the given period."""
    listing = get_listing_or_404(db, listing_id)

    try:
        result = check_availability(db, listing, to_naive_utc(pickup), to_naive_utc(dropoff))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    # Booking references are not exposed publicly
    result["conflicts"] = [
        {key: value for key, value in conflict.items() if key != "bookingReference"}
        for conflict in result["conflicts"]
    ]
    return {"success": True, "data": result}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_listing_form(
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "create")),
):
    """Create a listing from a multipart form with image files."""
    data, main_image, gallery_images = await read_listing_form(request)
    stored = await store_form_images(data, main_image, gallery_images, data.get("title"))

    try:
        payload = ListingCreate.model_validate(data)
        listing = create_listing(db, payload, current_admin)
    except (ValidationError, ListingError) as e:
        storage = get_image_storage()
        for saved in stored:
            storage.delete_quietly(saved)
        detail = validation_message(e) if isinstance(e, ValidationError) else str(e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    log_audit_event(db, current_admin, "create", "listing", listing.id, listing.title, request=request)

    return {
        "success": True,
        "message": "Listing created successfully",
        "data": listing.to_dict(),
    }


@router.put("/{listing_id}")
async def update_listing_form(
    listing_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "update")),
):
    """Update a listing from a multipart form. New images replace or extend the stored ones."""
    listing = get_listing_or_404(db, listing_id)

    if not can_manage(listing, current_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only edit your own listings",
        )

    data, main_image, gallery_images = await read_listing_form(request)
    if gallery_images and "gallery" not in data:
        data["gallery"] = list(listing.gallery or [])

    previous_main = listing.main_image
    stored = await store_form_images(data, main_image, gallery_images, data.get("title") or listing.title)

    try:
        payload = ListingUpdate.model_validate(data)
        listing = update_listing(db, listing, payload)
    except (ValidationError, ListingError) as e:
        storage = get_image_storage()
        for saved in stored:
            storage.delete_quietly(saved)
        detail = validation_message(e) if isinstance(e, ValidationError) else str(e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    if previous_main and listing.main_image and previous_main.get("publicId") != listing.main_image.get("publicId"):
        get_image_storage().delete_quietly(previous_main)

    log_audit_event(db, current_admin, "update", "listing", listing.id, listing.title, request=request)

    return {
        "success": True,
        "message": "Listing updated successfully",
        "data": listing.to_dict(),
    }


@router.delete("/{listing_id}")
async def delete_listing_route(
    listing_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "delete")),
):
    """Delete a listing and its stored images."""
    listing = get_listing_or_404(db, listing_id)

    if not can_manage(listing, current_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete your own listings",
        )

    title = listing.title
    try:
        images = delete_listing(db, listing)
    except ListingInUseError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )

    storage = get_image_storage()
    for image in images:
        storage.delete_quietly(image)

    log_audit_event(db, current_admin, "delete", "listing", listing_id, title, request=request)

    return {
        "success": True,
        "message": "Listing deleted successfully",
        "data": {"id": listing_id},
    }
