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

"""Redirects from the old ``/api/cars`` paths to ``/api/listings``."""

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse

router = APIRouter(prefix="/api/cars", include_in_schema=False)


def _redirect(path: str, request: Request) -> RedirectResponse:
    query = request.url.query
    if query:
        path = f"{path}&{query}" if "?" in path else f"{path}?{query}"
    return RedirectResponse(url=path, status_code=307)


@router.api_route("", methods=["GET", "POST"])
async def cars_root(request: Request):
    return _redirect("/api/listings", request)


@router.get("/featured")
async def cars_featured(request: Request):
    return _redirect("/api/listings?featured=true", request)


@router.get("/filter-options")
async def cars_filter_options(request: Request):
    return _redirect("/api/listings/filters", request)


@router.api_route("/{car_ref}", methods=["GET", "PUT", "DELETE"])
async def cars_item(car_ref: str, request: Request):
    return _redirect(f"/api/listings/{car_ref}", request)
