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

"""Transfer zone routes."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from rentaly.config import get_settings
from rentaly.database import get_db
from rentaly.middleware.auth import require_permission
from rentaly.models.admin import Admin
from rentaly.models.booking import BLOCKING_STATUSES, Booking
from rentaly.models.transfer import TransferZone
from rentaly.services.audit import log_audit_event
from rentaly.services.pricing import PricingError, quote_transfer
from rentaly.utils.helpers import sanitize_input

router = APIRouter(prefix="/api/transfers")
admin_router = APIRouter(prefix="/api/admin/transfers")


class TransferPricing(BaseModel):
    capacity_1_4: float = Field(..., ge=0)
    capacity_1_6: float = Field(..., ge=0)
    capacity_1_16: float = Field(..., ge=0)


class TransferPricingUpdate(BaseModel):
    capacity_1_4: Optional[float] = Field(None, ge=0)
    capacity_1_6: Optional[float] = Field(None, ge=0)
    capacity_1_16: Optional[float] = Field(None, ge=0)


class TransferZoneCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    zone_name: str = Field(..., alias="zoneName", min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    pricing: TransferPricing
    display_order: int = Field(0, alias="displayOrder")
    status: Literal["active", "inactive"] = "active"


class TransferZoneUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    zone_name: Optional[str] = Field(None, alias="zoneName", min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    pricing: Optional[TransferPricingUpdate] = None
    display_order: Optional[int] = Field(None, alias="displayOrder")
    status: Optional[Literal["active", "inactive"]] = None


def get_zone_or_404(db: Session, zone_id: int, active_only: bool = False) -> TransferZone:
    query = db.query(TransferZone).filter(TransferZone.id == zone_id)
    if active_only:
        query = query.filter(TransferZone.status == "active")
    zone = query.first()
    if not zone:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Transfer zone not found",
        )
    return zone


# Public routes
@router.get("")
async def list_transfer_zones(db: Session = Depends(get_db)):
    """Active transfer zones in display order."""
    zones = (
        db.query(TransferZone)
        .filter(TransferZone.status == "active")
        .order_by(TransferZone.display_order, TransferZone.zone_name)
        .all()
    )
    return {"success": True, "data": [z.to_dict() for z in zones]}


@router.get("/{zone_id}")
async def get_transfer_zone(zone_id: int, db: Session = Depends(get_db)):
    zone = get_zone_or_404(db, zone_id, active_only=True)
    return {"success": True, "data": zone.to_dict()}


@router.get("/{zone_id}/quote")
async def quote_transfer_zone(
    zone_id: int,
    passengers: int = Query(..., ge=1),
    db: Session = Depends(get_db),
):
    """Price a transfer for a passenger count."""
    zone = get_zone_or_404(db, zone_id, active_only=True)
    try:
        quote = quote_transfer(zone.pricing, passengers, tax_rate=get_settings().booking.tax_rate)
    except PricingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return {"success": True, "data": {"zone": zone.to_dict(), **quote}}


# Admin routes
@admin_router.get("")
async def admin_list_transfer_zones(
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("locations", "read")),
):
    zones = db.query(TransferZone).order_by(TransferZone.display_order, TransferZone.zone_name).all()
    return {"success": True, "data": [z.to_dict() for z in zones]}


@admin_router.post("", status_code=status.HTTP_201_CREATED)
async def admin_create_transfer_zone(
    data: TransferZoneCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("locations", "create")),
):
    """Create a transfer zone. Prices are always in EUR."""
    zone = TransferZone(
        zone_name=sanitize_input(data.zone_name, 100),
        description=sanitize_input(data.description, 1000) or None,
        pricing={**data.pricing.model_dump(), "currency": "EUR"},
        display_order=data.display_order,
        status=data.status,
        owner_id=current_admin.id,
    )
    db.add(zone)
    db.commit()
    db.refresh(zone)

    log_audit_event(db, current_admin, "create", "transfer_zone", zone.id, zone.zone_name, request=request)

    return {"success": True, "message": "Transfer zone created", "data": zone.to_dict()}


@admin_router.put("/{zone_id}")
async def admin_update_transfer_zone(
    zone_id: int,
    data: TransferZoneUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("locations", "update")),
):
    """Partial update; given tier prices are merged into the stored pricing."""
    zone = get_zone_or_404(db, zone_id)

    if data.zone_name is not None:
        zone.zone_name = sanitize_input(data.zone_name, 100)
    if data.description is not None:
        zone.description = sanitize_input(data.description, 1000) or None
    if data.pricing is not None:
        zone.pricing = {
            **(zone.pricing or {}),
            **data.pricing.model_dump(exclude_none=True),
            "currency": "EUR",
        }
    if data.display_order is not None:
        zone.display_order = data.display_order
    if data.status is not None:
        zone.status = data.status

    db.commit()
    db.refresh(zone)

    log_audit_event(db, current_admin, "update", "transfer_zone", zone.id, zone.zone_name,
                    details=data.model_dump(exclude_unset=True, by_alias=True), request=request)

    return {"success": True, "message": "Transfer zone updated", "data": zone.to_dict()}


@admin_router.delete("/{zone_id}")
async def admin_delete_transfer_zone(
    zone_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("locations", "delete")),
):
    zone = get_zone_or_404(db, zone_id)

    open_bookings = (
        db.query(Booking)
        .filter(Booking.transfer_zone_id == zone.id, Booking.status.in_(BLOCKING_STATUSES))
        .count()
    )
    if open_bookings:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Transfer zone has open bookings and cannot be deleted",
        )

    name = zone.zone_name
    db.delete(zone)
    db.commit()

    log_audit_event(db, current_admin, "delete", "transfer_zone", zone_id, name, request=request)

    return {"success": True, "message": "Transfer zone deleted", "data": {"id": zone_id}}
