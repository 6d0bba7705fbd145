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

"""Booking creation, pricing, status changes and reporting."""

import logging
import random
import re
import time
from datetime import datetime, timedelta
from typing import List, Literal, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Query, Session

from rentaly.config import get_settings
from rentaly.models.admin import Admin
from rentaly.models.booking import BOOKING_STATUSES, Booking
from rentaly.models.listing import Listing
from rentaly.models.transfer import TransferZone
from rentaly.services.availability import check_availability
from rentaly.services.pricing import PricingError, quote_listing, quote_transfer
from rentaly.utils.helpers import digits_only, sanitize_input, to_naive_utc

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^[+]?[(]?[\d\s\-()]{10,15}$")
REVENUE_STATUSES = ("confirmed", "active", "completed")


class BookingError(ValueError):
    """Raised for invalid booking input or a disallowed state change."""


class BookingNotFoundError(LookupError):
    """Raised when the booked listing or zone does not exist or is inactive."""


class BookingConflictError(Exception):
    """Raised when the requested period is not available."""

    def __init__(self, availability: dict):
        super().__init__(availability.get("reason") or "Listing is not available for the selected dates")
        self.availability = availability


class DriverInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=100)
    surname: str = Field(..., min_length=1, max_length=100)
    phone_number: str = Field(..., alias="phoneNumber")
    email: Optional[EmailStr] = None

    @field_validator("phone_number")
    @classmethod
    def valid_phone(cls, value):
        value = value.strip()
        if not PHONE_PATTERN.match(value):
            raise ValueError("Please provide a valid phone number")
        return value


def check_driver_count(drivers):
    limit = get_settings().booking.max_drivers
    if drivers is not None and len(drivers) > limit:
        raise ValueError(f"At most {limit} drivers are allowed")
    return drivers


class ServiceItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(0, ge=0)


class BookingRequest(BaseModel):
    """Booking request sent by customers."""

    model_config = ConfigDict(populate_by_name=True)

    booking_type: Literal["car", "transfer"] = Field("car", alias="bookingType")
    listing_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("listingId", "carId", "listing_id")
    )
    transfer_zone_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("transferZoneId", "transfer_zone_id")
    )
    drivers: List[DriverInfo] = Field(..., min_length=1)
    passengers: Optional[int] = Field(None, ge=1, le=16)
    pickup_location: str = Field(..., alias="pickupLocation", min_length=1, max_length=200)
    dropoff_location: str = Field(..., alias="dropoffLocation", min_length=1, max_length=200)
    pickup_time: datetime = Field(..., alias="pickupTime")
    dropoff_time: Optional[datetime] = Field(None, alias="dropoffTime")
    additional_services: List[ServiceItem] = Field(default_factory=list, alias="additionalServices")
    special_requests: Optional[str] = Field(None, alias="specialRequests", max_length=1000)
    currency: Optional[Literal["EUR", "TRY", "USD"]] = None

    @field_validator("drivers")
    @classmethod
    def drivers_within_limit(cls, value):
        return check_driver_count(value)


class AdminBookingRequest(BookingRequest):
    """Booking entered by staff."""

    admin_notes: Optional[str] = Field(None, alias="adminNotes", max_length=1000)
    taxes: Optional[float] = Field(None, ge=0)
    status: Literal["pending", "confirmed"] = "confirmed"


class BookingUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    drivers: Optional[List[DriverInfo]] = Field(None, min_length=1)
    passengers: Optional[int] = Field(None, ge=1, le=16)
    pickup_location: Optional[str] = Field(None, alias="pickupLocation", min_length=1, max_length=200)
    dropoff_location: Optional[str] = Field(None, alias="dropoffLocation", min_length=1, max_length=200)
    pickup_time: Optional[datetime] = Field(None, alias="pickupTime")
    dropoff_time: Optional[datetime] = Field(None, alias="dropoffTime")
    additional_services: Optional[List[ServiceItem]] = Field(None, alias="additionalServices")
    special_requests: Optional[str] = Field(None, alias="specialRequests", max_length=1000)
    admin_notes: Optional[str] = Field(None, alias="adminNotes", max_length=1000)
    taxes: Optional[float] = Field(None, ge=0)

    @field_validator("drivers")
    @classmethod
    def drivers_within_limit(cls, value):
        return check_driver_count(value)


def generate_booking_reference(db: Session) -> str:
    """``BK-`` + last six digits of the ms clock + three random digits."""
    while True:
        reference = f"BK-{str(int(time.time() * 1000))[-6:]}{random.randint(0, 999):03d}"
        exists = db.query(Booking.id).filter(Booking.booking_reference == reference).first()
        if exists is None:
            return reference


def _drivers_payload(drivers: List[DriverInfo]) -> List[dict]:
    return [
        {
            "name": sanitize_input(d.name, 100),
            "surname": sanitize_input(d.surname, 100),
            "phoneNumber": d.phone_number,
            **({"email": str(d.email)} if d.email else {}),
        }
        for d in drivers
    ]


def _services_payload(services: Optional[List[ServiceItem]]) -> List[dict]:
    return [{"name": sanitize_input(s.name, 100), "price": round(s.price, 2)} for s in services or []]


def _validate_period(
    booking_type: str,
    pickup: datetime,
    dropoff: Optional[datetime],
    require_future: bool,
) -> Tuple[datetime, Optional[datetime]]:
    pickup = to_naive_utc(pickup)
    dropoff = to_naive_utc(dropoff) if dropoff else None

    if require_future and pickup <= datetime.utcnow():
        raise BookingError("Pickup time must be in the future")

    if booking_type == "car":
        if dropoff is None:
            raise BookingError("Dropoff time is required for car rentals")
        if dropoff <= pickup:
            raise BookingError("Dropoff time must be after pickup time")
        max_days = get_settings().booking.max_duration_days
        if dropoff - pickup > timedelta(days=max_days):
            raise BookingError(f"Rentals cannot be longer than {max_days} days")
    elif dropoff is not None and dropoff <= pickup:
        raise BookingError("Dropoff time must be after pickup time")

    return pickup, dropoff


def resolve_target(
    db: Session,
    booking_type: str,
    listing_id: Optional[int],
    transfer_zone_id: Optional[int],
) -> Union[Listing, TransferZone]:
    if booking_type == "car":
        if not listing_id:
            raise BookingError("listingId is required for car rentals")
        listing = db.query(Listing).filter(Listing.id == listing_id).first()
        if not listing or listing.status != "active":
            raise BookingNotFoundError("Listing not found or not available")
        return listing

    if not transfer_zone_id:
        raise BookingError("transferZoneId is required for transfers")
    zone = db.query(TransferZone).filter(TransferZone.id == transfer_zone_id).first()
    if not zone or zone.status != "active":
        raise BookingNotFoundError("Transfer zone not found or not available")
    return zone


def price_target(
    target: Union[Listing, TransferZone],
    pickup: datetime,
    dropoff: Optional[datetime],
    passengers: Optional[int],
    services: List[dict],
    taxes: Optional[float] = None,
) -> dict:
    tax_rate = get_settings().booking.tax_rate
    try:
        if isinstance(target, Listing):
            return quote_listing(
                target.pricing,
                target.seasonal_pricing or [],
                pickup,
                dropoff,
                services=services,
                tax_rate=tax_rate,
                taxes=taxes,
            )
        quote = quote_transfer(target.pricing, passengers or 1, services=services, tax_rate=tax_rate)
        if taxes is not None:
            quote["taxes"] = round(taxes, 2)
            quote["totalAmount"] = round(
                quote["subtotal"] + quote["taxes"] + quote["additionalServicesTotal"], 2
            )
        return quote
    except PricingError as e:
        raise BookingError(str(e))


def quote_request(db: Session, request: BookingRequest) -> Tuple[Union[Listing, TransferZone], dict]:
    """Validate a request and price it without storing anything."""
    pickup, dropoff = _validate_period(
        request.booking_type, request.pickup_time, request.dropoff_time, require_future=True
    )
    target = resolve_target(db, request.booking_type, request.listing_id, request.transfer_zone_id)
    quote = price_target(
        target, pickup, dropoff, request.passengers, _services_payload(request.additional_services)
    )
    return target, quote


def create_booking(
    db: Session,
    request: BookingRequest,
    created_by: Optional[Admin] = None,
    ip_address: Optional[str] = None,
) -> Booking:
    """Validate, check availability, price and store a booking."""
    pickup, dropoff = _validate_period(
        request.booking_type, request.pickup_time, request.dropoff_time, require_future=True
    )
    target = resolve_target(db, request.booking_type, request.listing_id, request.transfer_zone_id)

    if isinstance(target, Listing):
        availability = check_availability(db, target, pickup, dropoff)
        if not availability["available"]:
            raise BookingConflictError(availability)

    services = _services_payload(request.additional_services)
    taxes = getattr(request, "taxes", None)
    pricing = price_target(target, pickup, dropoff, request.passengers, services, taxes)

    booking = Booking(
        booking_reference=generate_booking_reference(db),
        booking_type=request.booking_type,
        listing_id=target.id if isinstance(target, Listing) else None,
        transfer_zone_id=target.id if isinstance(target, TransferZone) else None,
        drivers=_drivers_payload(request.drivers),
        passengers=request.passengers,
        pickup_location=sanitize_input(request.pickup_location, 200),
        dropoff_location=sanitize_input(request.dropoff_location, 200),
        pickup_time=pickup,
        dropoff_time=dropoff,
        status=getattr(request, "status", "pending"),
        pricing=pricing,
        additional_services=services,
        special_requests=sanitize_input(request.special_requests, 1000) or None,
        admin_notes=sanitize_input(getattr(request, "admin_notes", None), 1000) or None,
        created_by=created_by.id if created_by else None,
        last_modified_by=created_by.id if created_by else None,
        created_ip=ip_address,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)

    logger.info("Booking created: %s (%s)", booking.booking_reference, booking.booking_type)
    return booking


def update_booking(db: Session, booking: Booking, update: BookingUpdate, admin: Admin) -> Booking:
    """Apply changes to a modifiable booking and re-price it."""
    if not booking.can_be_modified():
        raise BookingError("Booking can only be modified while pending or confirmed and before pickup")

    data = update.model_dump(exclude_unset=True)

    pickup, dropoff = _validate_period(
        booking.booking_type,
        data.get("pickup_time") or booking.pickup_time,
        data.get("dropoff_time") or booking.dropoff_time,
        require_future=True,
    )

    target = booking.listing if booking.booking_type == "car" else booking.transfer_zone
    if target is None:
        raise BookingError("The booked listing or zone no longer exists")

    if isinstance(target, Listing) and (pickup != booking.pickup_time or dropoff != booking.dropoff_time):
        availability = check_availability(db, target, pickup, dropoff, exclude_booking_id=booking.id)
        if not availability["available"]:
            raise BookingConflictError(availability)

    if update.drivers is not None:
        booking.drivers = _drivers_payload(update.drivers)
    if update.additional_services is not None:
        booking.additional_services = _services_payload(update.additional_services)
    if "passengers" in data:
        booking.passengers = update.passengers
    if update.pickup_location:
        booking.pickup_location = sanitize_input(update.pickup_location, 200)
    if update.dropoff_location:
        booking.dropoff_location = sanitize_input(update.dropoff_location, 200)
    if "special_requests" in data:
        booking.special_requests = sanitize_input(update.special_requests, 1000) or None
    if "admin_notes" in data:
        booking.admin_notes = sanitize_input(update.admin_notes, 1000) or None

    booking.pickup_time = pickup
    booking.dropoff_time = dropoff

    taxes = update.taxes if "taxes" in data else (booking.pricing or {}).get("taxes")
    booking.pricing = price_target(
        target, pickup, dropoff, booking.passengers, booking.additional_services or [], taxes
    )
    booking.last_modified_by = admin.id

    db.commit()
    db.refresh(booking)
    return booking


def change_status(
    db: Session,
    booking: Booking,
    new_status: str,
    admin: Optional[Admin],
    reason: Optional[str] = None,
) -> Booking:
    if new_status not in BOOKING_STATUSES:
        raise BookingError(f"Invalid status. Must be one of: {', '.join(BOOKING_STATUSES)}")
    if not booking.can_transition_to(new_status):
        raise BookingError(f"Cannot change status from {booking.status} to {new_status}")

    booking.status = new_status
    if new_status == "cancelled":
        booking.cancelled_at = datetime.utcnow()
        booking.cancellation_reason = sanitize_input(reason, 1000) or None
    if admin is not None:
        booking.last_modified_by = admin.id

    db.commit()
    db.refresh(booking)
    return booking


def cancel_booking(db: Session, booking: Booking, admin: Optional[Admin], reason: Optional[str] = None) -> Booking:
    if not booking.can_be_cancelled():
        raise BookingError("Only pending or confirmed bookings can be cancelled")
    return change_status(db, booking, "cancelled", admin, reason)


def find_by_reference_and_phone(db: Session, reference: str, phone: str) -> Optional[Booking]:
    """Customer lookup: the primary driver's phone must match, digits only."""
    booking = db.query(Booking).filter(Booking.booking_reference == reference.strip().upper()).first()
    if not booking or not booking.primary_driver:
        return None
    wanted = digits_only(phone)
    stored = digits_only(booking.primary_driver.get("phoneNumber"))
    if not wanted or wanted != stored:
        return None
    return booking


def count_recent_by_ip(db: Session, ip_address: Optional[str], hours: int = 24) -> int:
    if not ip_address:
        return 0
    since = datetime.utcnow() - timedelta(hours=hours)
    return (
        db.query(Booking)
        .filter(
            Booking.created_ip == ip_address,
            Booking.created_at >= since,
            Booking.created_by.is_(None),
        )
        .count()
    )


def search_bookings(
    db: Session,
    status: Optional[str] = None,
    listing_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = None,
) -> Query:
    query = db.query(Booking)

    if status:
        query = query.filter(Booking.status == status)
    if listing_id:
        query = query.filter(Booking.listing_id == listing_id)
    if date_from:
        query = query.filter(Booking.pickup_time >= to_naive_utc(date_from))
    if date_to:
        query = query.filter(Booking.pickup_time <= to_naive_utc(date_to))
    if search:
        term = f"%{search.strip()}%"
        # Driver names and phones live in the drivers JSON array
        query = query.filter(
            or_(
                Booking.booking_reference.ilike(term),
                cast(Booking.drivers, String).ilike(term),
            )
        )

    return query.order_by(Booking.created_at.desc(), Booking.id.desc())


def _revenue(bookings: List[Booking]) -> float:
    return round(sum(b.total_amount for b in bookings), 2)


def dashboard_stats(db: Session) -> dict:
    now = datetime.utcnow()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    next_month = (month_start + timedelta(days=32)).replace(day=1)

    status_counts = dict(
        db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
    )
    revenue_bookings = db.query(Booking).filter(Booking.status.in_(REVENUE_STATUSES)).all()
    recent = db.query(Booking).order_by(Booking.created_at.desc(), Booking.id.desc()).limit(5).all()

    return {
        "totalCars": db.query(Listing).count(),
        "activeCars": db.query(Listing).filter(Listing.status == "active").count(),
        "totalBookings": sum(status_counts.values()),
        "pendingBookings": status_counts.get("pending", 0),
        "confirmedBookings": status_counts.get("confirmed", 0),
        "activeBookings": status_counts.get("active", 0),
        "completedBookings": status_counts.get("completed", 0),
        "cancelledBookings": status_counts.get("cancelled", 0),
        "totalRevenue": _revenue(revenue_bookings),
        "monthlyRevenue": _revenue([b for b in revenue_bookings if month_start <= b.pickup_time < next_month]),
        "recentBookings": [b.to_dict() for b in recent],
    }


def complete_finished_bookings(db: Session, now: Optional[datetime] = None) -> int:
    """Mark active rentals whose dropoff time has passed as completed."""
    now = now or datetime.utcnow()
    finished = (
        db.query(Booking)
        .filter(
            Booking.status == "active",
            Booking.dropoff_time.isnot(None),
            Booking.dropoff_time <= now,
        )
        .all()
    )
    for booking in finished:
        booking.status = "completed"
    db.commit()
    return len(finished)
