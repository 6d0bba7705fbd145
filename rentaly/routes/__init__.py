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

"""API routes package."""

from fastapi import APIRouter

from rentaly.routes import (
    admin,
    admin_cars,
    auth,
    blog,
    bookings,
    compat,
    exchange_rates,
    images,
    listings,
    locations,
    news,
    settings,
    transfers,
)

# Create main API router
api_router = APIRouter()

# Public and admin API routes
api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(listings.router, tags=["Listings"])
api_router.include_router(admin_cars.router, tags=["Admin Listings"])
api_router.include_router(bookings.router, tags=["Bookings"])
api_router.include_router(bookings.admin_router, tags=["Admin Bookings"])
api_router.include_router(transfers.router, tags=["Transfers"])
api_router.include_router(transfers.admin_router, tags=["Admin Transfers"])
api_router.include_router(blog.router, tags=["Blog"])
api_router.include_router(blog.admin_router, tags=["Admin Blog"])
api_router.include_router(news.router, tags=["News"])
api_router.include_router(news.admin_router, tags=["Admin News"])
api_router.include_router(exchange_rates.router, tags=["Exchange Rates"])
api_router.include_router(images.router, tags=["Images"])
api_router.include_router(locations.router, tags=["Locations"])
api_router.include_router(locations.admin_router, tags=["Admin Locations"])
api_router.include_router(settings.router, tags=["Settings"])
api_router.include_router(admin.router, tags=["Admin"])

# Old /api/cars paths
api_router.include_router(compat.router)

__all__ = ["api_router"]
