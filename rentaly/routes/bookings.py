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

"""Booking routes: public requests, quotes and lookups, plus admin management."""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rentaly.config import get_settings
from rentaly.database import get_db
from rentaly.middleware.auth import require_permission, require_super_admin
from rentaly.models.admin import Admin
from rentaly.models.booking import Booking
from rentaly.services.audit import log_audit_event
from rentaly.services.bookings import (
    AdminBookingRequest,
    BookingConflictError,
    BookingError,
    BookingNotFoundError,
    BookingRequest,
    BookingUpdate,
    cancel_booking,
    change_status,
    count_recent_by_ip,
    create_booking,
    find_by_reference_and_phone,
    quote_request,
    search_bookings,
    update_booking,
)
from rentaly.services.exchange_rates import ConversionError, convert, get_current_rates
from rentaly.services.notifications import notify_new_booking
from rentaly.services.site_settings import maintenance_status
from rentaly.utils.helpers import get_client_ip, page_meta

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings")
admin_router = APIRouter(prefix="/api/admin/bookings")


class StatusChange(BaseModel):
    status: Literal["pending", "confirmed", "active", "completed", "cancelled"]
    reason: Optional[str] = Field(None, max_length=1000)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


def booking_http_error(error: Exception, public: bool = False) -> HTTPException:
    """Map booking service errors to HTTP errors."""
    if isinstance(error, BookingNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))

    if isinstance(error, BookingConflictError):
        conflicts = error.availability.get("conflicts", [])
        if public:
            conflicts = [
                {key: value for key, value in c.items() if key != "bookingReference"} for c in conflicts
            ]
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(error),
                "unitsAvailable": error.availability.get("unitsAvailable", 0),
                "conflicts": conflicts,
            },
        )

    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))


def get_booking_or_404(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return booking


# Public routes
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_public_booking(
    request: Request,
    data: BookingRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Create a booking request. It stays pending until an admin confirms it."""
    settings = get_settings()

    maintenance = maintenance_status(db)
    if maintenance["enabled"]:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=maintenance["message"],
        )

    client_ip = get_client_ip(request)
    limit = settings.rate_limit.max_public_bookings_per_ip_per_day
    if count_recent_by_ip(db, client_ip) >= limit:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Daily booking limit ({limit}) reached",
        )

    try:
        booking = create_booking(db, data, ip_address=client_ip)
    except (BookingError, BookingNotFoundError, BookingConflictError) as e:
        raise booking_http_error(e, public=True)

    background_tasks.add_task(notify_new_booking, booking.id)

    return {
        "success": True,
        "message": "Booking request received",
        "data": booking.to_dict(include_listing=True),
    }


@router.post("/quote")
async def quote_booking(
    data: BookingRequest,
    db: Session = Depends(get_db),
):
    """Price a booking request without storing it."""
    try:
        target, quote = quote_request(db, data)
    except (BookingError, BookingNotFoundError) as e:
        raise booking_http_error(e, public=True)

    if data.currency and data.currency != quote["currency"]:
        current = await get_current_rates(db)
        try:
            quote["converted"] = convert(quote["totalAmount"], quote["currency"], data.currency, current["rates"])
        except ConversionError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e),
            )

    return {"success": True, "data": quote}


@router.get("/lookup")
async def lookup_booking(
    reference: str = Query(..., min_length=3),
    phone: str = Query(..., min_length=6),
    db: Session = Depends(get_db),
):
    """Let a customer see their booking by reference and phone number."""
    booking = find_by_reference_and_phone(db, reference, phone)
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )

    data = booking.to_dict(include_listing=True)
    data.pop("adminNotes", None)
    data.pop("createdIp", None)
    return {"success": True, "data": data}


# Admin routes
@admin_router.get("")
async def admin_list_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    booking_status: Optional[str] = Query(None, alias="status"),
    listing_id: Optional[int] = Query(None, alias="listingId"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("bookings", "read")),
):
    """List bookings with filters and pagination."""
    query = search_bookings(
        db,
        status=booking_status,
        listing_id=listing_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    total = query.count()
    bookings = query.offset((page - 1) * limit).limit(limit).all()

    return {
        "success": True,
        "data": [b.to_dict(include_listing=True) for b in bookings],
        "pagination": page_meta(page, limit, total),
    }


@admin_router.get("/recent")
async def admin_recent_bookings(
    limit: int = Query(5, ge=1),
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("bookings", "read")),
):
    bookings = (
        db.query(Booking)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .limit(min(limit, 20))
        .all()
    )
    return {"success": True, "data": [b.to_dict(include_listing=True) for b in bookings]}


@admin_router.get("/{booking_id}")
async def admin_get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("bookings", "read")),
):
    booking = get_booking_or_404(db, booking_id)
    return {"success": True, "data": booking.to_dict(include_listing=True)}


@admin_router.post("", status_code=status.HTTP_201_CREATED)
async def admin_create_booking(
    request: Request,
    data: AdminBookingRequest,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("bookings", "create")),
):
    """Enter a booking on behalf of a customer."""
    try:
        booking = create_booking(db, data, created_by=current_admin, ip_address=get_client_ip(request))
    except (BookingError, BookingNotFoundError, BookingConflictError) as e:
        raise booking_http_error(e)

    log_audit_event(db, current_admin, "create", "booking", booking.id, booking.booking_reference,
                    request=request)

    return {
        "success": True,
        "message": "Booking created successfully",
        "data": booking.to_dict(include_listing=True),
    }


@admin_router.put("/{booking_id}")
async def admin_update_booking(
    booking_id: int,
    request: Request,
    data: BookingUpdate,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("bookings", "update")),
):
    """Edit a booking that has not started yet; it is re-checked and re-priced."""
    booking = get_booking_or_404(db, booking_id)

    try:
        booking = update_booking(db, booking, data, current_admin)
    except (BookingError, BookingConflictError) as e:
        db.rollback()
        raise booking_http_error(e)

    log_audit_event(db, current_admin, "update", "booking", booking.id, booking.booking_reference,
                    details=data.model_dump(exclude_unset=True, by_alias=True), request=request)

    return {
        "success": True,
        "message": "Booking updated successfully",
        "data": booking.to_dict(include_listing=True),
    }


@admin_router.patch("/{booking_id}/status")
async def admin_change_status(
    booking_id: int,
    request: Request,
    data: StatusChange,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("bookings", "update")),
):
    """Move a booking along its lifecycle."""
    booking = get_booking_or_404(db, booking_id)
    previous = booking.status

    try:
        booking = change_status(db, booking, data.status, current_admin, data.reason)
    except BookingError as e:
        raise booking_http_error(e)

    log_audit_event(db, current_admin, "status_change", "booking", booking.id, booking.booking_reference,
                    details={"from": previous, "to": booking.status}, request=request)

    return {
        "success": True,
        "message": f"Booking status updated to {booking.status}",
        "data": booking.to_dict(include_listing=True),
    }


@admin_router.post("/{booking_id}/cancel")
async def admin_cancel_booking(
    booking_id: int,
    request: Request,
    data: Optional[CancelRequest] = None,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("bookings", "update")),
):
    booking = get_booking_or_404(db, booking_id)
    reason = data.reason if data else None

    try:
        booking = cancel_booking(db, booking, current_admin, reason)
    except BookingError as e:
        raise booking_http_error(e)

    log_audit_event(db, current_admin, "cancel", "booking", booking.id, booking.booking_reference,
                    details={"reason": reason}, request=request)

    return {
        "success": True,
        "message": "Booking cancelled",
        "data": booking.to_dict(include_listing=True),
    }


@admin_router.delete("/{booking_id}")
async def admin_delete_booking(
    booking_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_super_admin),
):
    """Delete a booking permanently (super admin only)."""
    booking = get_booking_or_404(db, booking_id)
    reference = booking.booking_reference

    db.delete(booking)
    db.commit()

    log_audit_event(db, current_admin, "delete", "booking", booking_id, reference, request=request)

    return {
        "success": True,
        "message": f"Booking {reference} deleted",
        "data": {"id": booking_id},
    }
