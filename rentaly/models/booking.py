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

"""Booking model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from rentaly.database import Base, JSONType

BOOKING_STATUSES = ("pending", "confirmed", "active", "completed", "cancelled")

# Statuses that hold a car for their time range
BLOCKING_STATUSES = ("pending", "confirmed", "active")

STATUS_TRANSITIONS = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("active", "cancelled"),
    "active": ("completed",),
    "completed": (),
    "cancelled": (),
}


class Booking(Base):
    """Reservation of a listing or a transfer zone."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)
    booking_type = Column(String(20), nullable=False, default="car")
    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="SET NULL"), nullable=True, index=True)
    transfer_zone_id = Column(
        Integer, ForeignKey("transfer_zones.id", ondelete="SET NULL"), nullable=True, index=True
    )
    drivers = Column(JSONType, nullable=False)
    passengers = Column(Integer, nullable=True)
    pickup_location = Column(String(200), nullable=False)
    dropoff_location = Column(String(200), nullable=False)
    pickup_time = Column(DateTime, nullable=False, index=True)
    dropoff_time = Column(DateTime, nullable=True, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    pricing = Column(JSONType, nullable=False)
    additional_services = Column(JSONType, nullable=False, default=list)
    special_requests = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    last_modified_by = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    created_ip = Column(String(45), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'active', 'completed', 'cancelled')",
            name="ck_booking_status",
        ),
        CheckConstraint("booking_type IN ('car', 'transfer')", name="ck_booking_type"),
    )

    listing = relationship("Listing", back_populates="bookings")
    transfer_zone = relationship("TransferZone", back_populates="bookings")
    creator = relationship("Admin", foreign_keys=[created_by])

    @property
    def primary_driver(self) -> Optional[dict]:
        return self.drivers[0] if self.drivers else None

    @property
    def total_amount(self) -> float:
        return float((self.pricing or {}).get("totalAmount") or 0)

    def can_be_modified(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.utcnow()
        return self.status in ("pending", "confirmed") and self.pickup_time > now

    def can_be_cancelled(self) -> bool:
        return self.status in ("pending", "confirmed")

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in STATUS_TRANSITIONS.get(self.status, ())

    def overlaps_with(self, pickup: datetime, dropoff: datetime) -> bool:
        """Half-open interval test; back-to-back rentals do not overlap."""
        if self.dropoff_time is None:
            return False
        return self.pickup_time < dropoff and pickup < self.dropoff_time

    def to_dict(self, include_listing: bool = True) -> dict:
        result = {
            "id": self.id,
            "bookingReference": self.booking_reference,
            "bookingType": self.booking_type,
            "listingId": self.listing_id,
            "transferZoneId": self.transfer_zone_id,
            "drivers": self.drivers or [],
            "primaryDriver": self.primary_driver,
            "passengers": self.passengers,
            "pickupLocation": self.pickup_location,
            "dropoffLocation": self.dropoff_location,
            "pickupTime": self.pickup_time.isoformat() if self.pickup_time else None,
            "dropoffTime": self.dropoff_time.isoformat() if self.dropoff_time else None,
            "status": self.status,
            "pricing": self.pricing,
            "additionalServices": self.additional_services or [],
            "specialRequests": self.special_requests,
            "adminNotes": self.admin_notes,
            "createdBy": self.created_by,
            "lastModifiedBy": self.last_modified_by,
            "cancelledAt": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancellationReason": self.cancellation_reason,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

        if include_listing and self.listing:
            result["listing"] = {
                "id": self.listing.id,
                "title": self.listing.title,
                "fullName": self.listing.full_name,
                "slug": self.listing.slug,
            }
        if include_listing and self.transfer_zone:
            result["transferZone"] = {
                "id": self.transfer_zone.id,
                "zoneName": self.transfer_zone.zone_name,
            }

        return result

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, reference='{self.booking_reference}', "
            f"listing_id={self.listing_id}, status='{self.status}')>"
        )
