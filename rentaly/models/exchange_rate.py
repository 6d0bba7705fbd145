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

"""Exchange rate snapshot model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from rentaly.database import Base, JSONType


class ExchangeRate(Base):
    """EUR-based rate snapshot, e.g. ``{"EUR": 1, "TRY": 37.2, "USD": 1.08}``."""

    __tablename__ = "exchange_rates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    base_currency = Column(String(3), nullable=False, default="EUR")
    rates = Column(JSONType, nullable=False)
    source = Column(String(20), nullable=False, default="tcmb")  # tcmb, manual, default
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    fetched_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "baseCurrency": self.base_currency,
            "rates": self.rates,
            "source": self.source,
            "isActive": self.is_active,
            "fetchedAt": self.fetched_at.isoformat() if self.fetched_at else None,
        }

    def __repr__(self):
        return f"<ExchangeRate(id={self.id}, source='{self.source}', active={self.is_active})>"
