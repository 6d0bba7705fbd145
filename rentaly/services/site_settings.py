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

"""Site-wide settings stored in the site_settings table."""

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from rentaly.models.auth import SiteSetting

DEFAULT_SITE_SETTINGS: Dict[str, Any] = {
    "siteName": "Rentaly",
    "currency": "EUR",
    "language": "tr",
    "contactEmail": "",
    "contactPhone": "",
    "maintenanceMode": False,
    "maintenanceMessage": "System is under maintenance. Please try again later.",
}

PUBLIC_KEYS = ("siteName", "currency", "language", "contactEmail", "contactPhone", "maintenanceMode")


def get_site_settings(db: Session) -> Dict[str, Any]:
    values = dict(DEFAULT_SITE_SETTINGS)
    for row in db.query(SiteSetting).all():
        if row.key in values:
            values[row.key] = row.value
    return values


def update_site_settings(db: Session, updates: Dict[str, Any], admin_id: Optional[int] = None) -> Dict[str, Any]:
    """Persist known keys. Unknown keys raise ValueError."""
    unknown = sorted(set(updates) - set(DEFAULT_SITE_SETTINGS))
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(unknown)}")

    if "currency" in updates and updates["currency"] not in ("EUR", "TRY", "USD"):
        raise ValueError("currency must be one of EUR, TRY, USD")
    if "maintenanceMode" in updates and not isinstance(updates["maintenanceMode"], bool):
        raise ValueError("maintenanceMode must be a boolean")

    for key, value in updates.items():
        row = db.query(SiteSetting).filter(SiteSetting.key == key).first()
        if row is None:
            row = SiteSetting(key=key)
            db.add(row)
        row.value = value
        row.updated_by = admin_id

    db.commit()
    return get_site_settings(db)


def maintenance_status(db: Session) -> dict:
    """Return ``{"enabled": bool, "message": str}`` for maintenance mode."""
    values = get_site_settings(db)
    return {
        "enabled": bool(values.get("maintenanceMode")),
        "message": values.get("maintenanceMessage") or DEFAULT_SITE_SETTINGS["maintenanceMessage"],
    }
