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

"""Listing validation, persistence and search."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from rentaly.config import get_settings
from rentaly.models.admin import Admin
from rentaly.models.booking import BLOCKING_STATUSES, Booking
from rentaly.models.listing import Listing
from rentaly.services.pricing import PricingError, fill_period_prices, normalize_seasons
from rentaly.utils.helpers import listing_slug, sanitize_input

logger = logging.getLogger(__name__)

MIN_YEAR = 1980

def gallery_limit() -> int:
    return get_settings().uploads.max_gallery_images


Category = Literal["Ekonomik", "Orta Sınıf", "Üst Sınıf", "SUV", "Geniş", "Lüks"]
Transmission = Literal["Manuel", "Yarı Otomatik", "Otomatik"]
FuelType = Literal["Benzin", "Dizel", "Benzin+LPG", "Elektrikli", "Hibrit"]
ListingStatus = Literal["active", "inactive", "maintenance"]

SORT_COLUMNS = {
    "createdAt": Listing.created_at,
    "year": Listing.year,
    "title": Listing.title,
    "price": Listing.pricing["daily"].as_float(),
    "views": Listing.view_count,
}


class ListingError(ValueError):
    """Raised when listing data is invalid."""


class ListingInUseError(Exception):
    """Raised when a listing still has open bookings."""


class ImageInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., min_length=1)
    public_id: Optional[str] = Field(None, alias="publicId")
    alt: Optional[str] = None


class ListingUpdate(BaseModel):
    """Listing fields; every field optional for partial updates."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=5, max_length=200)
    brand: Optional[str] = Field(None, min_length=1, max_length=50)
    model: Optional[str] = Field(None, min_length=1, max_length=50)
    year: Optional[int] = None
    category: Optional[Category] = None
    body_type: Optional[str] = Field(None, alias="bodyType", max_length=30)
    seats: Optional[int] = Field(None, ge=2, le=50)
    doors: Optional[int] = Field(None, ge=2, le=6)
    engine_capacity: Optional[int] = Field(None, alias="engineCapacity", ge=500, le=10000)
    transmission: Optional[Transmission] = None
    fuel_type: Optional[FuelType] = Field(None, alias="fuelType")
    main_image: Optional[ImageInfo] = Field(None, alias="mainImage")
    gallery: Optional[List[ImageInfo]] = None
    description: Optional[str] = Field(None, max_length=2000)
    features: Optional[List[Union[str, Dict[str, Any]]]] = None
    pricing: Optional[Dict[str, Any]] = None
    seasonal_pricing: Optional[List[Dict[str, Any]]] = Field(None, alias="seasonalPricing")
    status: Optional[ListingStatus] = None
    featured: Optional[bool] = None
    total_units: Optional[int] = Field(None, alias="totalUnits", ge=1)

    @field_validator("year")
    @classmethod
    def year_in_range(cls, value):
        if value is not None and not (MIN_YEAR <= value <= datetime.utcnow().year + 1):
            raise ValueError(f"Year must be between {MIN_YEAR} and {datetime.utcnow().year + 1}")
        return value

    @field_validator("gallery")
    @classmethod
    def gallery_within_limit(cls, value):
        limit = gallery_limit()
        if value is not None and len(value) > limit:
            raise ValueError(f"Gallery can hold at most {limit} images")
        return value

    @field_validator("features")
    @classmethod
    def feature_names(cls, value):
        if value is None:
            return value
        names = []
        for feature in value:
            name = feature.get("name") if isinstance(feature, dict) else feature
            if not isinstance(name, str) or not name.strip():
                raise ValueError("Each feature must be a string or an object with a name")
            names.append(name.strip())
        return names


class ListingCreate(ListingUpdate):
    """Listing creation payload."""

    title: str = Field(..., min_length=5, max_length=200)
    brand: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    year: int
    transmission: Transmission
    fuel_type: FuelType = Field(..., alias="fuelType")
    pricing: Dict[str, Any]


NULLABLE_FIELDS = {"engine_capacity", "description", "main_image"}

CREATE_DEFAULTS = {
    "category": "Ekonomik",
    "body_type": "Sedan",
    "seats": 5,
    "doors": 4,
    "gallery": [],
    "features": [],
    "seasonal_pricing": [],
    "status": "active",
    "featured": False,
    "total_units": 1,
}


def unique_slug(db: Session, title: str, exclude_id: Optional[int] = None) -> str:
    slug = listing_slug(title)
    candidate, suffix = slug, 1
    while True:
        query = db.query(Listing.id).filter(Listing.slug == candidate)
        if exclude_id:
            query = query.filter(Listing.id != exclude_id)
        if query.first() is None:
            return candidate
        suffix += 1
        candidate = f"{slug}-{suffix}"


def _apply(db: Session, listing: Listing, payload: ListingUpdate, creating: bool) -> None:
    data = payload.model_dump(exclude_unset=True, by_alias=False)
    data = {key: value for key, value in data.items() if value is not None or key in NULLABLE_FIELDS}

    # Image dicts keep their camelCase keys
    if "main_image" in data:
        image = payload.main_image
        data["main_image"] = image.model_dump(by_alias=True, exclude_none=True) if image else None
    if "gallery" in data:
        data["gallery"] = [
            image.model_dump(by_alias=True, exclude_none=True) for image in payload.gallery or []
        ]

    if creating:
        for key, value in CREATE_DEFAULTS.items():
            data.setdefault(key, value)

    try:
        if "pricing" in data:
            data["pricing"] = fill_period_prices(data["pricing"], get_settings().booking.default_currency)
        if "seasonal_pricing" in data:
            data["seasonal_pricing"] = normalize_seasons(data["seasonal_pricing"] or [])
    except PricingError as e:
        raise ListingError(str(e))

    if "description" in data and data["description"] is not None:
        data["description"] = sanitize_input(data["description"], 2000) or None

    title_changed = "title" in data and data["title"] != listing.title
    for key, value in data.items():
        setattr(listing, key, value)

    if creating or title_changed:
        listing.slug = unique_slug(db, listing.title, exclude_id=listing.id)

    if listing.main_image is None:
        raise ListingError("Main image is required")

    if (listing.maintenance_units or 0) > (listing.total_units or 1):
        raise ListingError("Maintenance units cannot exceed total units")


def create_listing(db: Session, payload: ListingCreate, owner: Optional[Admin]) -> Listing:
    listing = Listing(owner_id=owner.id if owner else None)
    try:
        _apply(db, listing, payload, creating=True)
    except ListingError:
        db.rollback()
        raise
    db.add(listing)
    db.commit()
    db.refresh(listing)
    logger.info("Listing created: %s", listing.slug)
    return listing


def update_listing(db: Session, listing: Listing, payload: ListingUpdate) -> Listing:
    try:
        _apply(db, listing, payload, creating=False)
    except ListingError:
        db.rollback()
        raise
    db.commit()
    db.refresh(listing)
    return listing


def can_manage(listing: Listing, admin: Admin) -> bool:
    """Owners and super admins may change a listing."""
    return admin.is_super_admin or listing.owner_id == admin.id


def open_booking_count(db: Session, listing_id: int) -> int:
    return (
        db.query(Booking)
        .filter(Booking.listing_id == listing_id, Booking.status.in_(BLOCKING_STATUSES))
        .count()
    )


def delete_listing(db: Session, listing: Listing) -> List[dict]:
    """Delete a listing; returns its image dicts so the caller can remove them."""
    if open_booking_count(db, listing.id):
        raise ListingInUseError("Listing has open bookings and cannot be deleted")

    images = [listing.main_image] + list(listing.gallery or [])
    db.delete(listing)
    db.commit()
    return [image for image in images if image]


def find_listing(db: Session, id_or_slug: str) -> Optional[Listing]:
    """Look up by numeric id, otherwise by slug."""
    if str(id_or_slug).isdigit():
        return db.query(Listing).filter(Listing.id == int(id_or_slug)).first()
    return db.query(Listing).filter(Listing.slug == id_or_slug).first()


def build_listing_query(
    db: Session,
    category: Optional[str] = None,
    brand: Optional[str] = None,
    model: Optional[str] = None,
    transmission: Optional[str] = None,
    fuel_type: Optional[str] = None,
    body_type: Optional[str] = None,
    year: Optional[int] = None,
    featured: Optional[bool] = None,
    status: Optional[str] = "active",
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    search: Optional[str] = None,
) -> Query:
    query = db.query(Listing)

    if status and status != "all":
        query = query.filter(Listing.status == status)
    if category:
        query = query.filter(Listing.category == category)
    if brand:
        query = query.filter(func.lower(Listing.brand) == brand.lower())
    if model:
        query = query.filter(Listing.model.ilike(f"%{model}%"))
    if transmission:
        query = query.filter(Listing.transmission == transmission)
    if fuel_type:
        query = query.filter(Listing.fuel_type == fuel_type)
    if body_type:
        query = query.filter(Listing.body_type == body_type)
    if year:
        query = query.filter(Listing.year == year)
    if featured is not None:
        query = query.filter(Listing.featured == featured)

    daily = Listing.pricing["daily"].as_float()
    if min_price is not None:
        query = query.filter(daily >= min_price)
    if max_price is not None:
        query = query.filter(daily <= max_price)

    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Listing.title.ilike(term),
                Listing.description.ilike(term),
                Listing.brand.ilike(term),
                Listing.model.ilike(term),
            )
        )

    return query


def apply_sort(query: Query, sort_by: str = "createdAt", sort_order: str = "DESC") -> Query:
    column = SORT_COLUMNS.get(sort_by, Listing.created_at)
    ordered = column.asc() if sort_order.upper() == "ASC" else column.desc()
    return query.order_by(ordered, Listing.id.desc())


def filter_options(db: Session) -> dict:
    """Distinct facet values and daily price range over active listings."""
    active = db.query(Listing).filter(Listing.status == "active")

    def distinct(column):
        rows = active.with_entities(column).distinct().all()
        return sorted(value for (value,) in rows if value)

    daily = Listing.pricing["daily"].as_float()
    min_price, max_price = active.with_entities(func.min(daily), func.max(daily)).one()

    return {
        "categories": distinct(Listing.category),
        "brands": distinct(Listing.brand),
        "transmissions": distinct(Listing.transmission),
        "fuelTypes": distinct(Listing.fuel_type),
        "bodyTypes": distinct(Listing.body_type),
        "priceRange": {
            "min": min_price if min_price is not None else 0,
            "max": max_price if max_price is not None else 1000,
        },
    }
