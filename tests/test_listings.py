# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

import json
from pathlib import Path

from factories import PNG_BYTES, booking_payload, future, listing_payload
from rentaly.config import get_settings
from rentaly.models.admin import Admin
from rentaly.models.listing import Listing
from rentaly.services.listings import can_manage


def test_create_fills_defaults_and_long_stay_prices(listing):
    assert listing["slug"].startswith("renault-clio-automatic-")
    assert listing["pricing"] == {"daily": 50.0, "weekly": 300.0, "monthly": 1250.0, "currency": "EUR"}
    assert listing["status"] == "active"
    assert listing["inventory"] == {"totalUnits": 1, "maintenanceUnits": 0, "rentableUnits": 1}
    assert listing["features"] == ["Air Conditioning", "Bluetooth"]


def test_create_validation(client, auth_headers):
    response = client.post(
        "/api/admin/cars",
        json=listing_payload(pricing={"daily": 0}),
        headers=auth_headers,
    )
    assert response.status_code == 400

    response = client.post(
        "/api/admin/cars",
        json=listing_payload(fuelType="Steam"),
        headers=auth_headers,
    )
    assert response.status_code == 422

    payload = listing_payload()
    del payload["mainImage"]
    response = client.post("/api/admin/cars", json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Main image is required"


def test_create_requires_permission(client):
    assert client.post("/api/admin/cars", json=listing_payload()).status_code == 401


def test_get_by_slug_or_id_counts_views(client, listing):
    by_slug = client.get(f"/api/listings/{listing['slug']}")
    assert by_slug.status_code == 200
    assert by_slug.json()["data"]["id"] == listing["id"]

    by_id = client.get(f"/api/listings/{listing['id']}")
    assert by_id.json()["data"]["viewCount"] == 2

    assert client.get("/api/listings/no-such-car").status_code == 404


def test_public_search_filters(client, create_listing, auth_headers):
    create_listing()
    create_listing(title="Fiat Egea Diesel", brand="Fiat", model="Egea", fuelType="Dizel",
                   transmission="Manuel", pricing={"daily": 35})
    hidden = create_listing(title="BMW 5 Series Sedan", brand="BMW", model="520i", category="Lüks",
                            pricing={"daily": 140})
    client.patch(f"/api/admin/cars/{hidden['id']}/status", json={"status": "inactive"}, headers=auth_headers)

    everything = client.get("/api/listings").json()
    assert everything["pagination"]["totalItems"] == 2

    fiat = client.get("/api/listings", params={"brand": "fiat"}).json()["data"]
    assert [item["brand"] for item in fiat] == ["Fiat"]

    cheap = client.get("/api/listings", params={"maxPrice": 40}).json()["data"]
    assert [item["pricing"]["daily"] for item in cheap] == [35.0]

    by_price = client.get("/api/listings", params={"sortBy": "price", "sortOrder": "ASC"}).json()["data"]
    assert [item["pricing"]["daily"] for item in by_price] == [35.0, 50.0]

    searched = client.get("/api/listings", params={"search": "egea"}).json()["data"]
    assert len(searched) == 1

    filters = client.get("/api/listings/filters").json()["data"]
    assert sorted(filters["brands"]) == ["Fiat", "Renault"]
    assert filters["priceRange"] == {"min": 35.0, "max": 50.0}


def test_availability_window(client, listing, auth_headers):
    pickup, dropoff = future(10), future(13)
    booked = client.post("/api/bookings", json=booking_payload(listing["id"], pickup, dropoff))
    assert booked.status_code == 201

    url = f"/api/listings/{listing['id']}/availability"
    overlapping = client.get(url, params={"pickup": future(12).isoformat(), "dropoff": future(14).isoformat()})
    data = overlapping.json()["data"]
    assert data["available"] is False
    assert data["unitsAvailable"] == 0
    assert "bookingReference" not in data["conflicts"][0]

    after = client.get(url, params={"pickup": dropoff.isoformat(), "dropoff": future(15).isoformat()})
    assert after.json()["data"]["available"] is True

    reversed_period = client.get(url, params={"pickup": dropoff.isoformat(), "dropoff": pickup.isoformat()})
    assert reversed_period.status_code == 400


def test_fleet_units_allow_parallel_bookings(client, create_listing):
    fleet = create_listing(totalUnits=2)
    pickup, dropoff = future(20), future(22)

    for _ in range(2):
        response = client.post("/api/bookings", json=booking_payload(fleet["id"], pickup, dropoff))
        assert response.status_code == 201

    third = client.post("/api/bookings", json=booking_payload(fleet["id"], pickup, dropoff))
    assert third.status_code == 409
    assert third.json()["detail"]["unitsAvailable"] == 0


def test_inventory_update(client, listing, auth_headers):
    url = f"/api/admin/cars/{listing['id']}/inventory"
    response = client.patch(url, json={"totalUnits": 3, "maintenanceUnits": 1}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["rentableUnits"] == 2

    invalid = client.patch(url, json={"totalUnits": 1, "maintenanceUnits": 2}, headers=auth_headers)
    assert invalid.status_code == 400


def test_scheduled_pricing(client, listing, auth_headers):
    url = f"/api/admin/cars/{listing['id']}/scheduled-pricing"
    response = client.post(
        url,
        json={"name": "Summer", "startDate": "01/06/2030", "endDate": "31/08/2030", "daily": 80},
        headers=auth_headers,
    )
    assert response.status_code == 201
    entry = response.json()["data"]
    assert entry["startDate"] == "2030-06-01"

    current = client.get(url, headers=auth_headers).json()["data"]
    assert current["basePricing"]["daily"] == 50.0
    assert [season["id"] for season in current["seasonalPricing"]] == [entry["id"]]

    bad = client.post(url, json={"startDate": "2030-08-31", "endDate": "2030-06-01", "daily": 80},
                      headers=auth_headers)
    assert bad.status_code == 400

    assert client.delete(f"{url}/{entry['id']}", headers=auth_headers).status_code == 200
    assert client.delete(f"{url}/{entry['id']}", headers=auth_headers).status_code == 404


def test_delete_blocked_by_open_bookings(client, listing, auth_headers):
    booking = client.post("/api/bookings", json=booking_payload(listing["id"], future(5), future(7))).json()["data"]

    response = client.delete(f"/api/admin/cars/{listing['id']}", headers=auth_headers)
    assert response.status_code == 409

    client.post(f"/api/admin/bookings/{booking['id']}/cancel", json={"reason": "test"}, headers=auth_headers)
    response = client.delete(f"/api/admin/cars/{listing['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert client.get(f"/api/listings/{listing['id']}").status_code == 404

    # The booking survives without its listing
    kept = client.get(f"/api/admin/bookings/{booking['id']}", headers=auth_headers)
    assert kept.status_code == 200


def test_multipart_create_stores_images(client, auth_headers, config_file):
    data = {
        "title": "Toyota Corolla Hybrid",
        "brand": "Toyota",
        "model": "Corolla",
        "year": "2023",
        "transmission": "Otomatik",
        "fuelType": "Hibrit",
        "pricing": json.dumps({"daily": 60}),
        "features": json.dumps(["Navigation"]),
    }
    files = [
        ("mainImage", ("front.png", PNG_BYTES, "image/png")),
        ("galleryImages", ("side.png", PNG_BYTES, "image/png")),
        ("galleryImages", ("back.png", PNG_BYTES, "image/png")),
    ]
    response = client.post("/api/listings", data=data, files=files, headers=auth_headers)
    assert response.status_code == 201, response.text
    created = response.json()["data"]

    assert created["mainImage"]["url"].startswith("http://testserver/uploads/cars/front-")
    assert len(created["gallery"]) == 2
    assert created["pricing"]["monthly"] == 1500.0

    cars_dir = Path(config_file).parent / "uploads" / "cars"
    assert len(list(cars_dir.iterdir())) == 3

    deleted = client.delete(f"/api/listings/{created['id']}", headers=auth_headers)
    assert deleted.status_code == 200
    assert list(cars_dir.iterdir()) == []


def test_multipart_create_accepts_image_url(client, auth_headers):
    data = {
        "title": "Dacia Duster 4x4",
        "brand": "Dacia",
        "model": "Duster",
        "year": "2021",
        "transmission": "Manuel",
        "fuelType": "Dizel",
        "pricing": json.dumps({"daily": 45}),
        "mainImage": "https://cdn.example.com/duster.jpg",
    }
    response = client.post("/api/listings", data=data, headers=auth_headers)
    assert response.status_code == 201, response.text
    assert response.json()["data"]["mainImage"]["url"] == "https://cdn.example.com/duster.jpg"


def test_multipart_rejects_non_images(client, auth_headers):
    files = {"mainImage": ("notes.txt", b"hello", "text/plain")}
    data = {"title": "Renault Megane Sedan", "pricing": json.dumps({"daily": 40})}
    response = client.post("/api/listings", data=data, files=files, headers=auth_headers)
    assert response.status_code == 400


def test_maintenance_units_are_not_rentable(client, listing, auth_headers):
    url = f"/api/admin/cars/{listing['id']}/inventory"
    client.patch(url, json={"totalUnits": 2, "maintenanceUnits": 1}, headers=auth_headers)
    pickup, dropoff = future(20), future(22)

    assert client.post("/api/bookings", json=booking_payload(listing["id"], pickup, dropoff)).status_code == 201
    second = client.post("/api/bookings", json=booking_payload(listing["id"], pickup, dropoff))
    assert second.status_code == 409
    assert second.json()["detail"]["unitsAvailable"] == 0


def test_gallery_limit_comes_from_config(client, auth_headers, monkeypatch):
    monkeypatch.setattr(get_settings().uploads, "max_gallery_images", 1)
    gallery = [{"url": "https://cdn.example.com/a.jpg"}, {"url": "https://cdn.example.com/b.jpg"}]

    response = client.post("/api/admin/cars", json=listing_payload(gallery=gallery), headers=auth_headers)
    assert response.status_code == 422

    response = client.post("/api/admin/cars", json=listing_payload(gallery=gallery[:1]), headers=auth_headers)
    assert response.status_code == 201


def test_default_currency_comes_from_config(client, auth_headers, monkeypatch):
    monkeypatch.setattr(get_settings().booking, "default_currency", "TRY")
    response = client.post("/api/admin/cars", json=listing_payload(pricing={"daily": 1500}), headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["data"]["pricing"]["currency"] == "TRY"


def test_only_owner_or_super_admin_can_manage():
    manager = Admin(id=7, role="manager")
    assert not can_manage(Listing(owner_id=None), manager)
    assert not can_manage(Listing(owner_id=3), manager)
    assert can_manage(Listing(owner_id=7), manager)
    assert can_manage(Listing(owner_id=None), Admin(id=1, role="super_admin"))
