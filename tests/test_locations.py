# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later


def create_location(client, auth_headers, **fields):
    payload = {"name": "Antalya Airport", "city": "Antalya", "type": "airport"}
    payload.update(fields)
    response = client.post("/api/admin/locations", json=payload, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_public_locations_filters(client, auth_headers):
    airport = create_location(client, auth_headers, latitude=36.9, longitude=30.8, isPopular=True)
    create_location(client, auth_headers, name="Kaleiçi Office", type="office", deliveryFee=10)
    create_location(client, auth_headers, name="Dalaman Airport", city="Muğla")
    hidden = create_location(client, auth_headers, name="Closed Desk", status="inactive")

    names = [loc["name"] for loc in client.get("/api/locations").json()["data"]]
    assert "Closed Desk" not in names
    assert len(names) == 3

    antalya = client.get("/api/locations", params={"city": "antalya"}).json()["data"]
    assert {loc["name"] for loc in antalya} == {"Antalya Airport", "Kaleiçi Office"}

    airports = client.get("/api/locations", params={"type": "airport", "city": "Antalya"}).json()["data"]
    assert [loc["id"] for loc in airports] == [airport["id"]]
    assert airports[0]["coordinates"] == {"latitude": 36.9, "longitude": 30.8}

    admin_view = client.get("/api/admin/locations", headers=auth_headers).json()["data"]
    assert hidden["id"] in [loc["id"] for loc in admin_view]


def test_update_and_delete(client, auth_headers):
    location = create_location(client, auth_headers)
    url = f"/api/admin/locations/{location['id']}"

    response = client.put(url, json={"deliveryFee": 25, "name": None}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["deliveryFee"] == 25
    assert response.json()["data"]["name"] == "Antalya Airport"

    assert client.delete(url, headers=auth_headers).status_code == 200
    assert client.get(url, headers=auth_headers).status_code == 404


def test_create_requires_city(client, auth_headers):
    response = client.post("/api/admin/locations", json={"name": "Nowhere"}, headers=auth_headers)
    assert response.status_code == 422
