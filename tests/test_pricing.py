# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

from datetime import date, datetime, timedelta

import pytest

from rentaly.services.pricing import (
    PricingError,
    Rates,
    calculate_base_amount,
    fill_period_prices,
    find_season,
    normalize_season,
    quote_listing,
    quote_transfer,
    rental_days,
    resolve_rates,
    transfer_tier,
)

BASE = {"daily": 50, "currency": "EUR"}

SEASONS = [
    {"id": "summer", "name": "Summer", "startDate": "2026-06-01", "endDate": "2026-08-31", "daily": 80},
    {"id": "peak", "name": "Peak", "startDate": "2026-07-10", "endDate": "2026-07-20", "daily": 120},
]


class TestFillPeriodPrices:
    def test_missing_long_stay_rates_are_derived_from_daily(self):
        assert fill_period_prices({"daily": 50}) == {
            "daily": 50.0,
            "weekly": 300.0,
            "monthly": 1250.0,
            "currency": "EUR",
        }

    def test_explicit_rates_are_kept(self):
        pricing = fill_period_prices({"daily": 50, "weekly": 280, "currency": "try"})
        assert pricing["weekly"] == 280.0
        assert pricing["monthly"] == 1250.0
        assert pricing["currency"] == "TRY"

    def test_default_currency_applies_when_missing(self):
        assert fill_period_prices({"daily": 50}, default_currency="usd")["currency"] == "USD"
        assert fill_period_prices({"daily": 50, "currency": "EUR"}, default_currency="USD")["currency"] == "EUR"

    @pytest.mark.parametrize(
        "pricing",
        [
            {"daily": 0},
            {"daily": -10},
            {"weekly": 300},
            {"daily": 50, "currency": "GBP"},
            {"daily": 50, "weekly": -1},
        ],
    )
    def test_invalid_pricing(self, pricing):
        with pytest.raises(PricingError):
            fill_period_prices(pricing)


class TestSeasons:
    def test_normalize_accepts_day_first_dates(self):
        season = normalize_season({"startDate": "01/06/2026", "endDate": "31/08/2026", "daily": "80"})
        assert season["startDate"] == "2026-06-01"
        assert season["endDate"] == "2026-08-31"
        assert season["daily"] == 80.0
        assert season["id"]

    def test_normalize_rejects_reversed_range(self):
        with pytest.raises(PricingError):
            normalize_season({"startDate": "2026-08-31", "endDate": "2026-06-01", "daily": 80})

    def test_normalize_requires_a_price(self):
        with pytest.raises(PricingError):
            normalize_season({"startDate": "2026-06-01", "endDate": "2026-08-31"})

    def test_narrowest_season_wins(self):
        assert find_season(SEASONS, date(2026, 7, 15))["id"] == "peak"
        assert find_season(SEASONS, date(2026, 6, 15))["id"] == "summer"

    def test_equal_length_seasons_prefer_later_start(self):
        early = {"id": "early", "startDate": "2026-07-01", "endDate": "2026-07-10", "daily": 90}
        late = {"id": "late", "startDate": "2026-07-05", "endDate": "2026-07-14", "daily": 95}
        assert find_season([early, late], date(2026, 7, 7))["id"] == "late"
        assert find_season([late, early], date(2026, 7, 7))["id"] == "late"
        assert find_season([early, late], date(2026, 7, 3))["id"] == "early"

    def test_end_date_is_inclusive(self):
        assert find_season(SEASONS, date(2026, 8, 31))["id"] == "summer"
        assert find_season(SEASONS, date(2026, 9, 1)) is None

    def test_seasonal_daily_rate_drives_long_stay_rates(self):
        rates = resolve_rates(BASE, SEASONS, date(2026, 7, 15))
        assert (rates.daily, rates.weekly, rates.monthly) == (120.0, 720.0, 3000.0)
        assert rates.season == "Peak"

    def test_base_rates_outside_seasons(self):
        rates = resolve_rates(BASE, SEASONS, date(2026, 3, 1))
        assert (rates.daily, rates.weekly, rates.monthly) == (50.0, 300.0, 1250.0)
        assert rates.season is None


class TestAmounts:
    @pytest.mark.parametrize(
        "hours, days",
        [(1, 1), (24, 1), (25, 2), (72, 3), (73, 4)],
    )
    def test_rental_days_rounds_up_started_days(self, hours, days):
        pickup = datetime(2026, 5, 1, 10, 0)
        dropoff = pickup + timedelta(hours=hours)
        assert rental_days(pickup, dropoff) == days

    def test_rental_days_rejects_reversed_period(self):
        with pytest.raises(PricingError):
            rental_days(datetime(2026, 5, 2), datetime(2026, 5, 1))

    @pytest.mark.parametrize(
        "days, expected",
        [
            (3, 150.0),
            (7, 300.0),
            (10, 450.0),
            (30, 1250.0),
            (35, 1500.0),
            (44, 1850.0),
        ],
    )
    def test_months_then_weeks_then_days(self, days, expected):
        assert calculate_base_amount(Rates(50, 300, 1250), days) == expected

    def test_quote_includes_services_and_tax(self):
        quote = quote_listing(
            BASE,
            [],
            datetime(2026, 5, 1, 10, 0),
            datetime(2026, 5, 4, 10, 0),
            services=[{"name": "Child seat", "price": 15}],
            tax_rate=0.1,
        )
        assert quote["totalDays"] == 3
        assert quote["subtotal"] == 150.0
        assert quote["taxes"] == 15.0
        assert quote["additionalServicesTotal"] == 15.0
        assert quote["totalAmount"] == 180.0
        assert quote["currency"] == "EUR"

    def test_explicit_taxes_override_rate(self):
        quote = quote_listing(
            BASE, [], datetime(2026, 5, 1), datetime(2026, 5, 2), tax_rate=0.2, taxes=3
        )
        assert quote["taxes"] == 3.0
        assert quote["totalAmount"] == 53.0

    def test_negative_service_price_rejected(self):
        with pytest.raises(PricingError):
            quote_listing(BASE, [], datetime(2026, 5, 1), datetime(2026, 5, 2),
                          services=[{"name": "Refund", "price": -5}])


class TestTransfers:
    @pytest.mark.parametrize(
        "passengers, tier",
        [(1, "capacity_1_4"), (4, "capacity_1_4"), (5, "capacity_1_6"), (6, "capacity_1_6"),
         (7, "capacity_1_16"), (16, "capacity_1_16")],
    )
    def test_smallest_fitting_tier(self, passengers, tier):
        assert transfer_tier(passengers) == tier

    @pytest.mark.parametrize("passengers", [0, 17])
    def test_out_of_range_passengers(self, passengers):
        with pytest.raises(PricingError):
            transfer_tier(passengers)

    def test_quote_transfer(self):
        pricing = {"capacity_1_4": 40, "capacity_1_6": 55, "capacity_1_16": 90, "currency": "EUR"}
        quote = quote_transfer(pricing, 5)
        assert quote["capacityTier"] == "capacity_1_6"
        assert quote["totalAmount"] == 55.0
