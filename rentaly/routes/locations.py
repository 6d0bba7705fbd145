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

"""Pickup and dropoff location routes."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from rentaly.database import get_db
from rentaly.middleware.auth import require_permission
from rentaly.models.admin import Admin
from rentaly.models.location import Location
from rentaly.services.audit import log_audit_event

router = APIRouter(prefix="/api/locations")
admin_router = APIRouter(prefix="/api/admin/locations")

LocationType = Literal["airport", "city_center", "hotel", "office", "other"]


class LocationUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=500)
    type: Optional[LocationType] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    delivery_fee: Optional[float] = Field(None, alias="deliveryFee", ge=0)
    status: Optional[Literal["active", "inactive"]] = None
    is_popular: Optional[bool] = Field(None, alias="isPopular")
    display_order: Optional[int] = Field(None, alias="displayOrder")


class LocationCreate(LocationUpdate):
    name: str = Field(..., min_length=2, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)


def get_location_or_404(db: Session, location_id: int) -> Location:
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Location not found",
        )
    return location


@router.get("")
async def list_locations(
    city: Optional[str] = None,
    type: Optional[LocationType] = None,
    db: Session = Depends(get_db),
):
    """Active locations, popular ones flagged."""
    query = db.query(Location).filter(Location.status == "active")
    if city:
        query = query.filter(Location.city.ilike(city.strip()))
    if type:
        query = query.filter(Location.type == type)

    locations = query.order_by(Location.display_order, Location.name).all()
    return {"success": True, "data": [loc.to_dict() for loc in locations]}


@admin_router.get("")
async def admin_list_locations(
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("locations", "read")),
):
    locations = db.query(Location).order_by(Location.display_order, Location.name).all()
    return {"success": True, "data": [loc.to_dict() for loc in locations]}


@admin_router.get("/{location_id}")
async def admin_get_location(
    location_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("locations", "read")),
):
    return {"success": True, "data": get_location_or_404(db, location_id).to_dict()}


@admin_router.post("", status_code=status.HTTP_201_CREATED)
async def admin_create_location(
    data: LocationCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("locations", "create")),
):
    location = Location(**data.model_dump(exclude_none=True))
    db.add(location)
    db.commit()
    db.refresh(location)

    log_audit_event(db, current_admin, "create", "location", location.id, location.name, request=request)
    return {"success": True, "message": "Location created", "data": location.to_dict()}


@admin_router.put("/{location_id}")
async def admin_update_location(
    location_id: int,
    data: LocationUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("locations", "update")),
):
    location = get_location_or_404(db, location_id)

    changes = data.model_dump(exclude_unset=True)
    for key, value in changes.items():
        # Coordinates may be cleared; other columns are required
        if value is None and key not in ("latitude", "longitude", "address"):
            continue
        setattr(location, key, value)

    db.commit()
    db.refresh(location)

    log_audit_event(db, current_admin, "update", "location", location.id, location.name,
                    details=changes, request=request)
    return {"success": True, "message": "Location updated", "data": location.to_dict()}


@admin_router.delete("/{location_id}")
async def admin_delete_location(
    location_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("locations", "delete")),
):
    location = get_location_or_404(db, location_id)
    name = location.name

    db.delete(location)
    db.commit()

    log_audit_event(db, current_admin, "delete", "location", location_id, name, request=request)
    return {"success": True, "message": "Location deleted", "data": {"id": location_id}}
