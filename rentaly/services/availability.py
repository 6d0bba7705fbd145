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

"""Booking availability checks for listings."""

from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from rentaly.models.booking import BLOCKING_STATUSES, Booking
from rentaly.models.listing import Listing


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open interval intersection test."""
    return start_a < end_b and start_b < end_a


def max_concurrent(intervals: Iterable[Tuple[datetime, datetime]], window_start: datetime,
                   window_end: datetime) -> int:
    """Peak number of intervals active at the same moment inside the window.

    Intervals are clipped to the window. An interval ending exactly when
    another starts does not count as concurrent.
    """
    events = []
    for start, end in intervals:
        start = max(start, window_start)
        end = min(end, window_end)
        if start < end:
            events.append((start, 1))
            events.append((end, -1))

    # Ends sort before starts at the same instant
    events.sort(key=lambda event: (event[0], event[1]))

    current = peak = 0
    for _, delta in events:
        current += delta
        peak = max(peak, current)
    return peak


def find_conflicts(
    db: Session,
    listing_id: int,
    pickup: datetime,
    dropoff: datetime,
    exclude_booking_id: Optional[int] = None,
) -> List[Booking]:
    """Blocking bookings of a listing that intersect ``[pickup, dropoff)``."""
    query = db.query(Booking).filter(
        Booking.listing_id == listing_id,
        Booking.status.in_(BLOCKING_STATUSES),
        Booking.pickup_time < dropoff,
        Booking.dropoff_time > pickup,
    )

    if exclude_booking_id:
        query = query.filter(Booking.id != exclude_booking_id)

    return [b for b in query.order_by(Booking.pickup_time).all() if b.overlaps_with(pickup, dropoff)]


def check_availability(
    db: Session,
    listing: Listing,
    pickup: datetime,
    dropoff: datetime,
    exclude_booking_id: Optional[int] = None,
) -> dict:
    """Whether one more unit of ``listing`` can be rented for the period."""
    if dropoff <= pickup:
        raise ValueError("Return date must be after pickup date")

    conflicts = find_conflicts(db, listing.id, pickup, dropoff, exclude_booking_id)
    units = listing.rentable_units
    in_use = max_concurrent(
        ((b.pickup_time, b.dropoff_time) for b in conflicts), pickup, dropoff
    )

    available = listing.status == "active" and in_use < units

    reason = None
    if listing.status != "active":
        reason = f"Listing is {listing.status}"
    elif not available:
        reason = "No units available for the selected dates"

    return {
        "available": available,
        "reason": reason,
        "totalUnits": units,
        "unitsAvailable": max(units - in_use, 0) if listing.status == "active" else 0,
        "conflicts": [
            {
                "bookingReference": b.booking_reference,
                "pickupTime": b.pickup_time.isoformat(),
                "dropoffTime": b.dropoff_time.isoformat(),
                "status": b.status,
            }
            for b in conflicts
        ],
    }
