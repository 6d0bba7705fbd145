# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Payload builders shared by the API tests."""

from datetime import datetime, timedelta

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "secret123"

TEST_RATES = {"EUR": 1.0, "TRY": 37.95, "USD": 1.1}

# Smallest valid PNG header is enough for the upload checks
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def listing_payload(**overrides):
    payload = {
        "title": "Renault Clio Automatic",
        "brand": "Renault",
        "model": "Clio",
        "year": 2022,
        "category": "Ekonomik",
        "transmission": "Otomatik",
        "fuelType": "Benzin",
        "seats": 5,
        "doors": 4,
        "mainImage": {"url": "https://cdn.example.com/clio.jpg"},
        "features": ["Air Conditioning", "Bluetooth"],
        "pricing": {"daily": 50, "currency": "EUR"},
    }
    payload.update(overrides)
    return payload


def future(days, hour=10):
    """Naive UTC datetime ``days`` from today at ``hour``:00."""
    base = datetime.utcnow().replace(hour=hour, minute=0, second=0, microsecond=0)
    return base + timedelta(days=days)


def booking_payload(listing_id, pickup, dropoff, phone="+90 555 123 4567", **overrides):
    payload = {
        "bookingType": "car",
        "listingId": listing_id,
        "drivers": [{"name": "Ayşe", "surname": "Yılmaz", "phoneNumber": phone}],
        "pickupLocation": "Antalya Airport",
        "dropoffLocation": "Antalya Airport",
        "pickupTime": pickup.isoformat(),
        "dropoffTime": dropoff.isoformat(),
    }
    payload.update(overrides)
    return payload
