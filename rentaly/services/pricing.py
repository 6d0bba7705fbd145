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

"""Rental price calculation.

Listings carry base ``daily``/``weekly``/``monthly`` rates plus optional
seasonal overrides. A booking is priced with the rates in force on its pickup
date:

* shorter than a week: ``days * daily``
* a week or more: whole weeks at the weekly rate, leftover days at the daily rate
* thirty days or more: whole months at the monthly rate, the remainder priced
  with the weekly/daily rule

Missing weekly and monthly rates fall back to ``daily * 6`` and ``daily * 25``.
"""

import math
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional

from rentaly.models.transfer import CAPACITY_TIERS
from rentaly.utils.helpers import parse_date_string

WEEKLY_FACTOR = 6
MONTHLY_FACTOR = 25
SECONDS_PER_DAY = 24 * 60 * 60
SUPPORTED_CURRENCIES = ("EUR", "TRY", "USD")


class PricingError(ValueError):
    """Raised when a price cannot be computed from the given input."""


@dataclass
class Rates:
    daily: float
    weekly: float
    monthly: float
    currency: str = "EUR"
    season: Optional[str] = None


def _positive(value) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def fill_period_prices(pricing: dict, default_currency: str = "EUR") -> dict:
    """Validate base pricing and fill missing weekly/monthly rates."""
    if not isinstance(pricing, dict):
        raise PricingError("Pricing must be an object")

    daily = _positive(pricing.get("daily"))
    if daily is None:
        raise PricingError("Daily price must be greater than 0")

    currency = (pricing.get("currency") or default_currency).upper()
    if currency not in SUPPORTED_CURRENCIES:
        raise PricingError(f"Unsupported currency: {currency}")

    for key in ("weekly", "monthly"):
        value = pricing.get(key)
        if value not in (None, "", 0) and _positive(value) is None:
            raise PricingError(f"{key.capitalize()} price must be greater than 0")

    return {
        "daily": daily,
        "weekly": _positive(pricing.get("weekly")) or round(daily * WEEKLY_FACTOR, 2),
        "monthly": _positive(pricing.get("monthly")) or round(daily * MONTHLY_FACTOR, 2),
        "currency": currency,
    }


def normalize_season(season: dict) -> dict:
    """Validate a seasonal price entry and store its dates as ISO strings."""
    if not isinstance(season, dict):
        raise PricingError("Seasonal pricing entries must be objects")

    if not season.get("startDate") or not season.get("endDate"):
        raise PricingError("Seasonal pricing must have startDate and endDate")

    start = parse_date_string(season.get("startDate"))
    end = parse_date_string(season.get("endDate"))
    if start is None or end is None:
        raise PricingError("Invalid date format in seasonal pricing. Use DD/MM/YYYY or YYYY-MM-DD.")
    if start >= end:
        raise PricingError("End date must be after start date in seasonal pricing")

    prices = {}
    for key in ("daily", "weekly", "monthly"):
        value = season.get(key)
        if value in (None, "", 0):
            continue
        number = _positive(value)
        if number is None:
            raise PricingError(f"Seasonal {key} price must be greater than 0")
        prices[key] = number

    if not prices:
        raise PricingError("Seasonal pricing must have at least one price")

    return {
        "id": season.get("id") or uuid.uuid4().hex[:12],
        "name": (season.get("name") or "").strip() or None,
        "startDate": start.isoformat(),
        "endDate": end.isoformat(),
        **prices,
    }


def normalize_seasons(seasons: Optional[Iterable[dict]]) -> List[dict]:
    if seasons is None:
        return []
    if not isinstance(seasons, list):
        raise PricingError("Seasonal pricing must be a list")
    return [normalize_season(season) for season in seasons]


def find_season(seasons: Iterable[dict], on_date: date) -> Optional[dict]:
    """Pick the season covering ``on_date``.

    Date ranges are inclusive. When seasons overlap, the narrowest range wins
    and ties go to the one starting later.
    """
    best = None
    best_key = None
    for season in seasons or []:
        start = parse_date_string(season.get("startDate"))
        end = parse_date_string(season.get("endDate"))
        if start is None or end is None or not (start <= on_date <= end):
            continue
        key = ((end - start).days, -start.toordinal())
        if best_key is None or key < best_key:
            best, best_key = season, key
    return best


def resolve_rates(pricing: dict, seasons: Iterable[dict], on_date: date) -> Rates:
    """Rates in force on ``on_date``, seasonal overrides applied field by field."""
    base = fill_period_prices(pricing)
    season = find_season(seasons, on_date)

    if season is None:
        return Rates(base["daily"], base["weekly"], base["monthly"], base["currency"])

    daily = _positive(season.get("daily")) or base["daily"]
    weekly = _positive(season.get("weekly"))
    monthly = _positive(season.get("monthly"))
    if weekly is None:
        # Long-stay rates follow a seasonal daily override
        weekly = round(daily * WEEKLY_FACTOR, 2) if "daily" in season else base["weekly"]
    if monthly is None:
        monthly = round(daily * MONTHLY_FACTOR, 2) if "daily" in season else base["monthly"]

    return Rates(daily, weekly, monthly, base["currency"], season.get("name") or season.get("id"))


def rental_days(pickup: datetime, dropoff: datetime) -> int:
    """Billable days: started 24h periods, minimum one."""
    if dropoff <= pickup:
        raise PricingError("Return date must be after pickup date")
    seconds = (dropoff - pickup).total_seconds()
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


def calculate_base_amount(rates: Rates, days: int) -> float:
    if days < 1:
        raise PricingError("Rental must be at least one day")

    months, remainder = divmod(days, 30) if days >= 30 else (0, days)
    weeks, single_days = divmod(remainder, 7) if remainder >= 7 else (0, remainder)

    total = months * rates.monthly + weeks * rates.weekly + single_days * rates.daily
    return round(total, 2)


def services_total(services: Optional[List[dict]]) -> float:
    total = 0.0
    for service in services or []:
        price = service.get("price", 0)
        try:
            price = float(price)
        except (TypeError, ValueError):
            raise PricingError(f"Invalid price for service '{service.get('name')}'")
        if price < 0:
            raise PricingError("Additional service prices cannot be negative")
        total += price
    return round(total, 2)


def quote_listing(
    pricing: dict,
    seasons: Iterable[dict],
    pickup: datetime,
    dropoff: datetime,
    services: Optional[List[dict]] = None,
    tax_rate: float = 0.0,
    taxes: Optional[float] = None,
) -> dict:
    """Full price breakdown for renting a listing.

    ``taxes`` overrides the amount derived from ``tax_rate`` when given.
    """
    days = rental_days(pickup, dropoff)
    rates = resolve_rates(pricing, seasons, pickup.date())
    subtotal = calculate_base_amount(rates, days)
    extras = services_total(services)
    tax_amount = round(subtotal * tax_rate, 2) if taxes is None else round(float(taxes), 2)

    return {
        "dailyRate": rates.daily,
        "weeklyRate": rates.weekly,
        "monthlyRate": rates.monthly,
        "totalDays": days,
        "subtotal": subtotal,
        "taxes": tax_amount,
        "additionalServicesTotal": extras,
        "totalAmount": round(subtotal + tax_amount + extras, 2),
        "currency": rates.currency,
        "season": rates.season,
    }


def transfer_tier(passengers: int) -> str:
    """Smallest capacity tier that seats ``passengers``."""
    if passengers < 1:
        raise PricingError("Passenger count must be at least 1")
    for key, capacity in CAPACITY_TIERS:
        if passengers <= capacity:
            return key
    raise PricingError(f"No vehicle available for {passengers} passengers (maximum 16)")


def quote_transfer(
    pricing: dict,
    passengers: int,
    services: Optional[List[dict]] = None,
    tax_rate: float = 0.0,
) -> dict:
    tier = transfer_tier(passengers)
    price = pricing.get(tier)
    if price is None:
        raise PricingError(f"Transfer zone has no price for tier {tier}")

    subtotal = round(float(price), 2)
    extras = services_total(services)
    tax_amount = round(subtotal * tax_rate, 2)

    return {
        "capacityTier": tier,
        "passengers": passengers,
        "subtotal": subtotal,
        "taxes": tax_amount,
        "additionalServicesTotal": extras,
        "totalAmount": round(subtotal + tax_amount + extras, 2),
        "currency": pricing.get("currency") or "EUR",
    }
