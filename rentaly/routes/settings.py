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

"""Public site settings."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rentaly.database import get_db
from rentaly.services.site_settings import PUBLIC_KEYS, get_site_settings

router = APIRouter(prefix="/api/settings")


@router.get("/public")
async def get_public_settings(db: Session = Depends(get_db)):
    """Settings the storefront needs; private keys are left out."""
    values = get_site_settings(db)
    return {
        "success": True,
        "settings": {key: values.get(key) for key in PUBLIC_KEYS},
    }
