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

"""Car listing model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
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

CATEGORIES = ("Ekonomik", "Orta Sınıf", "Üst Sınıf", "SUV", "Geniş", "Lüks")
TRANSMISSIONS = ("Manuel", "Yarı Otomatik", "Otomatik")
FUEL_TYPES = ("Benzin", "Dizel", "Benzin+LPG", "Elektrikli", "Hibrit")
LISTING_STATUSES = ("active", "inactive", "maintenance")

CURRENCY_SYMBOLS = {"TRY": "₺", "USD": "$", "EUR": "€"}
PERIOD_LABELS = {"daily": "gün", "weekly": "hafta", "monthly": "ay"}


class Listing(Base):
    """A rentable car with JSON pricing and image metadata."""

    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(250), unique=True, nullable=False, index=True)
    brand = Column(String(50), nullable=False, index=True)
    model = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    category = Column(String(30), nullable=False, default="Ekonomik", index=True)
    body_type = Column(String(30), nullable=False, default="Sedan")
    seats = Column(Integer, nullable=False, default=5)
    doors = Column(Integer, nullable=False, default=4)
    engine_capacity = Column(Integer, nullable=True)
    transmission = Column(String(20), nullable=False)
    fuel_type = Column(String(20), nullable=False)
    main_image = Column(JSONType, nullable=False)
    gallery = Column(JSONType, nullable=False, default=list)
    description = Column(Text, nullable=True)
    features = Column(JSONType, nullable=False, default=list)
    pricing = Column(JSONType, nullable=False)
    seasonal_pricing = Column(JSONType, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="active", index=True)
    featured = Column(Boolean, nullable=False, default=False, index=True)
    total_units = Column(Integer, nullable=False, default=1)
    maintenance_units = Column(Integer, nullable=False, default=0)
    view_count = Column(Integer, nullable=False, default=0)
    owner_id = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive', 'maintenance')", name="ck_listing_status"),
        CheckConstraint("total_units >= 1", name="ck_listing_total_units"),
        CheckConstraint(
            "maintenance_units >= 0 AND maintenance_units <= total_units",
            name="ck_listing_maintenance_units",
        ),
    )

    owner = relationship("Admin")
    bookings = relationship("Booking", back_populates="listing")

    @property
    def full_name(self) -> str:
        return f"{self.brand} {self.model} ({self.year})"

    @property
    def currency(self) -> str:
        return (self.pricing or {}).get("currency") or "EUR"

    @property
    def daily_price(self) -> float:
        return float((self.pricing or {}).get("daily") or 0)

    @property
    def rentable_units(self) -> int:
        return max((self.total_units or 0) - (self.maintenance_units or 0), 0)

    def formatted_price(self, period: str = "daily") -> Optional[str]:
        """Format a base price for display, e.g. ``€45/gün``."""
        amount = (self.pricing or {}).get(period)
        if not amount:
            return None
        symbol = CURRENCY_SYMBOLS.get(self.currency, self.currency)
        return f"{symbol}{amount}/{PERIOD_LABELS.get(period, period)}"

    def to_dict(self, include_owner: bool = False) -> dict:
        result = {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "brand": self.brand,
            "model": self.model,
            "year": self.year,
            "fullName": self.full_name,
            "category": self.category,
            "bodyType": self.body_type,
            "seats": self.seats,
            "doors": self.doors,
            "engineCapacity": self.engine_capacity,
            "transmission": self.transmission,
            "fuelType": self.fuel_type,
            "mainImage": self.main_image,
            "gallery": self.gallery or [],
            "description": self.description,
            "features": self.features or [],
            "pricing": self.pricing,
            "seasonalPricing": self.seasonal_pricing or [],
            "formattedPrice": self.formatted_price("daily"),
            "status": self.status,
            "featured": self.featured,
            "inventory": {
                "totalUnits": self.total_units,
                "maintenanceUnits": self.maintenance_units,
                "rentableUnits": self.rentable_units,
            },
            "viewCount": self.view_count,
            "ownerId": self.owner_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

        if include_owner and self.owner:
            result["owner"] = {"id": self.owner.id, "username": self.owner.username}

        return result

    def __repr__(self):
        return f"<Listing(id={self.id}, slug='{self.slug}', status='{self.status}')>"
