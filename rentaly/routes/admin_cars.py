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

"""Admin JSON API for listings."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from rentaly.database import get_db
from rentaly.middleware.auth import require_permission
from rentaly.models.admin import Admin
from rentaly.models.listing import Listing
from rentaly.routes.listings import get_listing_or_404
from rentaly.services.audit import log_audit_event
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
    update_listing,
)
from rentaly.services.pricing import PricingError, normalize_season
from rentaly.services.uploads import get_image_storage
from rentaly.utils.helpers import listing_page_meta

router = APIRouter(prefix="/api/admin/cars")


class StatusUpdate(BaseModel):
    status: Literal["active", "inactive", "maintenance"]


class InventoryUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_units: int = Field(..., alias="totalUnits", ge=1)
    maintenance_units: int = Field(0, alias="maintenanceUnits", ge=0)


def require_manageable(listing: Listing, admin: Admin) -> None:
    if not can_manage(listing, admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own listings",
        )


@router.get("")
async def admin_list_cars(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    brand: Optional[str] = None,
    transmission: Optional[str] = None,
    fuel_type: Optional[str] = Query(None, alias="fuelType"),
    featured: Optional[bool] = None,
    listing_status: str = Query("all", alias="status"),
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("DESC", alias="sortOrder"),
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "read")),
):
    """List listings in any status."""
    query = build_listing_query(
        db,
        category=category,
        brand=brand,
        transmission=transmission,
        fuel_type=fuel_type,
        featured=featured,
        status=listing_status,
        search=search,
    )
    total = query.count()
    listings = apply_sort(query, sort_by, sort_order).offset((page - 1) * limit).limit(limit).all()

    return {
        "success": True,
        "data": [listing.to_dict(include_owner=True) for listing in listings],
        "pagination": listing_page_meta(page, limit, total),
    }


@router.get("/{listing_id}")
async def admin_get_car(
    listing_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "read")),
):
    listing = get_listing_or_404(db, listing_id)
    return {"success": True, "data": listing.to_dict(include_owner=True)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def admin_create_car(
    data: ListingCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "create")),
):
    """Create a listing from JSON; images must already be uploaded."""
    try:
        listing = create_listing(db, data, current_admin)
    except ListingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    log_audit_event(db, current_admin, "create", "listing", listing.id, listing.title, request=request)
    return {"success": True, "message": "Listing created successfully", "data": listing.to_dict()}


@router.put("/{listing_id}")
async def admin_update_car(
    listing_id: int,
    data: ListingUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "update")),
):
    listing = get_listing_or_404(db, listing_id)
    require_manageable(listing, current_admin)

    try:
        listing = update_listing(db, listing, data)
    except ListingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    log_audit_event(db, current_admin, "update", "listing", listing.id, listing.title,
                    details=data.model_dump(exclude_unset=True, by_alias=True), request=request)
    return {"success": True, "message": "Listing updated successfully", "data": listing.to_dict()}


@router.delete("/{listing_id}")
async def admin_delete_car(
    listing_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "delete")),
):
    listing = get_listing_or_404(db, listing_id)
    require_manageable(listing, current_admin)

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
    return {"success": True, "message": "Listing deleted successfully", "data": {"id": listing_id}}


@router.patch("/{listing_id}/status")
async def admin_update_car_status(
    listing_id: int,
    data: StatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "update")),
):
    """Switch a listing between active, inactive and maintenance."""
    listing = get_listing_or_404(db, listing_id)
    require_manageable(listing, current_admin)

    previous = listing.status
    listing.status = data.status
    db.commit()
    db.refresh(listing)

    log_audit_event(db, current_admin, "status_change", "listing", listing.id, listing.title,
                    details={"from": previous, "to": data.status}, request=request)
    return {
        "success": True,
        "message": f"Listing status updated to {data.status}",
        "data": listing.to_dict(),
    }


@router.get("/{listing_id}/scheduled-pricing")
async def get_scheduled_pricing(
    listing_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "read")),
):
    listing = get_listing_or_404(db, listing_id)
    return {
        "success": True,
        "data": {
            "basePricing": listing.pricing,
            "seasonalPricing": listing.seasonal_pricing or [],
        },
    }


@router.post("/{listing_id}/scheduled-pricing", status_code=status.HTTP_201_CREATED)
async def add_scheduled_pricing(
    listing_id: int,
    season: dict,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "update")),
):
    """Append a seasonal price window."""
    listing = get_listing_or_404(db, listing_id)
    require_manageable(listing, current_admin)

    season = {key: value for key, value in season.items() if key != "id"}
    try:
        entry = normalize_season(season)
    except PricingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    # Reassign so the JSON column is flagged dirty
    listing.seasonal_pricing = list(listing.seasonal_pricing or []) + [entry]
    db.commit()
    db.refresh(listing)

    log_audit_event(db, current_admin, "update", "listing", listing.id, listing.title,
                    details={"seasonAdded": entry}, request=request)
    return {
        "success": True,
        "message": "Seasonal pricing added",
        "data": entry,
        "seasonalPricing": listing.seasonal_pricing,
    }


@router.delete("/{listing_id}/scheduled-pricing/{pricing_id}")
async def delete_scheduled_pricing(
    listing_id: int,
    pricing_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "update")),
):
    listing = get_listing_or_404(db, listing_id)
    require_manageable(listing, current_admin)

    seasons = list(listing.seasonal_pricing or [])
    remaining = [season for season in seasons if str(season.get("id")) != pricing_id]
    if len(remaining) == len(seasons):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Seasonal pricing not found",
        )

    listing.seasonal_pricing = remaining
    db.commit()
    db.refresh(listing)

    log_audit_event(db, current_admin, "update", "listing", listing.id, listing.title,
                    details={"seasonRemoved": pricing_id}, request=request)
    return {
        "success": True,
        "message": "Seasonal pricing removed",
        "seasonalPricing": listing.seasonal_pricing,
    }


@router.patch("/{listing_id}/inventory")
async def update_inventory(
    listing_id: int,
    data: InventoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("cars", "update")),
):
    """Set fleet size and how many units are in maintenance."""
    listing = get_listing_or_404(db, listing_id)
    require_manageable(listing, current_admin)

    if data.maintenance_units > data.total_units:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Maintenance units cannot exceed total units",
        )

    listing.total_units = data.total_units
    listing.maintenance_units = data.maintenance_units
    db.commit()
    db.refresh(listing)

    log_audit_event(db, current_admin, "update", "listing", listing.id, listing.title,
                    details={"totalUnits": data.total_units, "maintenanceUnits": data.maintenance_units},
                    request=request)
    return {
        "success": True,
        "message": "Inventory updated",
        "data": listing.to_dict()["inventory"],
    }
