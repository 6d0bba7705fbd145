# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from factories import future

ZONE = {
    "zoneName": "Kemer",
    "description": "Airport to Kemer hotels",
    "pricing": {"capacity_1_4": 40, "capacity_1_6": 55, "capacity_1_16": 90},
    "displayOrder": 1,
}


@pytest.fixture
def zone(client, auth_headers):
    response = client.post("/api/admin/transfers", json=ZONE, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def transfer_payload(zone_id, passengers):
    return {
        "bookingType": "transfer",
        "transferZoneId": zone_id,
        "passengers": passengers,
        "drivers": [{"name": "John", "surname": "Smith", "phoneNumber": "+44 7700 900123"}],
        "pickupLocation": "Antalya Airport T2",
        "dropoffLocation": "Kemer Resort Hotel",
        "pickupTime": future(7).isoformat(),
    }


def test_zone_prices_are_in_euro(zone):
    assert zone["pricing"]["currency"] == "EUR"
    assert zone["status"] == "active"


def test_public_listing_hides_inactive_zones(client, zone, auth_headers):
    assert [z["id"] for z in client.get("/api/transfers").json()["data"]] == [zone["id"]]

    client.put(f"/api/admin/transfers/{zone['id']}", json={"status": "inactive"}, headers=auth_headers)
    assert client.get("/api/transfers").json()["data"] == []
    assert client.get(f"/api/transfers/{zone['id']}").status_code == 404


@pytest.mark.parametrize("passengers, tier, price", [(3, "capacity_1_4", 40.0), (6, "capacity_1_6", 55.0),
                                                     (12, "capacity_1_16", 90.0)])
def test_quote_picks_smallest_vehicle(client, zone, passengers, tier, price):
    response = client.get(f"/api/transfers/{zone['id']}/quote", params={"passengers": passengers})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["capacityTier"] == tier
    assert data["totalAmount"] == price
    assert data["zone"]["zoneName"] == "Kemer"


def test_quote_rejects_too_many_passengers(client, zone):
    response = client.get(f"/api/transfers/{zone['id']}/quote", params={"passengers": 17})
    assert response.status_code == 400


def test_update_merges_pricing(client, zone, auth_headers):
    response = client.put(
        f"/api/admin/transfers/{zone['id']}",
        json={"pricing": {"capacity_1_6": 60}},
        headers=auth_headers,
    )
    assert response.status_code == 200
    pricing = response.json()["data"]["pricing"]
    assert pricing["capacity_1_4"] == 40
    assert pricing["capacity_1_6"] == 60


def test_transfer_booking(client, zone):
    response = client.post("/api/bookings", json=transfer_payload(zone["id"], 5))
    assert response.status_code == 201, response.text
    booking = response.json()["data"]
    assert booking["bookingType"] == "transfer"
    assert booking["dropoffTime"] is None
    assert booking["pricing"]["capacityTier"] == "capacity_1_6"
    assert booking["pricing"]["totalAmount"] == 55.0
    assert booking["transferZone"]["zoneName"] == "Kemer"


def test_zone_with_open_bookings_cannot_be_deleted(client, zone, auth_headers):
    client.post("/api/bookings", json=transfer_payload(zone["id"], 2))
    response = client.delete(f"/api/admin/transfers/{zone['id']}", headers=auth_headers)
    assert response.status_code == 409


def test_delete_zone(client, zone, auth_headers):
    assert client.delete(f"/api/admin/transfers/{zone['id']}", headers=auth_headers).status_code == 200
    assert client.get("/api/admin/transfers", headers=auth_headers).json()["data"] == []
