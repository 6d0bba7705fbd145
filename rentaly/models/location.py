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

"""Pickup and dropoff location model."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, Integer, String, Text

from rentaly.database import Base

LOCATION_TYPES = ("airport", "city_center", "hotel", "office", "other")


class Location(Base):
    """A place where cars are handed over or returned."""

    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    country = Column(String(100), nullable=False, default="Türkiye")
    address = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, default="other")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    delivery_fee = Column(Float, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active", index=True)
    is_popular = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name="ck_location_status"),
        CheckConstraint(
            "type IN ('airport', 'city_center', 'hotel', 'office', 'other')",
            name="ck_location_type",
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "city": self.city,
            "country": self.country,
            "address": self.address,
            "type": self.type,
            "coordinates": (
                {"latitude": self.latitude, "longitude": self.longitude}
                if self.latitude is not None and self.longitude is not None
                else None
            ),
            "deliveryFee": self.delivery_fee,
            "status": self.status,
            "isPopular": self.is_popular,
            "displayOrder": self.display_order,
        }

    def __repr__(self):
        return f"<Location(id={self.id}, name='{self.name}', city='{self.city}')>"
