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

"""Transfer zone model."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from rentaly.database import Base, JSONType

# Capacity tiers in ascending order: (pricing key, max passengers)
CAPACITY_TIERS = (
    ("capacity_1_4", 4),
    ("capacity_1_6", 6),
    ("capacity_1_16", 16),
)


class TransferZone(Base):
    """Fixed-route transfer priced by vehicle capacity tier."""

    __tablename__ = "transfer_zones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    zone_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    pricing = Column(JSONType, nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active", index=True)
    owner_id = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name="ck_transfer_status"),
    )

    bookings = relationship("Booking", back_populates="transfer_zone")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "zoneName": self.zone_name,
            "description": self.description,
            "pricing": self.pricing,
            "displayOrder": self.display_order,
            "status": self.status,
            "ownerId": self.owner_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<TransferZone(id={self.id}, zone_name='{self.zone_name}')>"
