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

"""Admin notifications for new bookings."""

import logging

from rentaly.database import get_session_local
from rentaly.models.admin import Admin
from rentaly.models.booking import Booking
from rentaly.services.email import get_email_service

logger = logging.getLogger(__name__)


async def notify_new_booking(booking_id: int) -> int:
    """Email every active admin who opted into new-booking alerts.

    Runs as a background task with its own session. Send failures are logged
    per recipient. Returns the number of alerts sent.
    """
    email_service = get_email_service()
    if not email_service.enabled:
        return 0

    SessionLocal = get_session_local()
    db = SessionLocal()
    sent = 0
    try:
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            return 0

        booking_data = booking.to_dict()
        admins = (
            db.query(Admin)
            .filter(Admin.is_active == True)  # noqa: E712
            .all()
        )

        for admin in admins:
            if not admin.wants_booking_alerts() or not admin.has_permission("bookings", "read"):
                continue
            try:
                await email_service.send_new_booking_alert(admin.email, admin.full_name, booking_data)
                sent += 1
            except Exception as e:
                logger.error("Failed to send booking alert to %s: %s", admin.email, e)
    finally:
        db.close()

    return sent
