# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

from datetime import datetime, timedelta

from factories import booking_payload, future
from rentaly.config import get_settings


def book(client, listing_id, pickup, dropoff, **overrides):
    return client.post("/api/bookings", json=booking_payload(listing_id, pickup, dropoff, **overrides))


def test_public_booking_is_pending_and_priced(client, listing):
    response = book(client, listing["id"], future(10), future(13))
    assert response.status_code == 201, response.text
    booking = response.json()["data"]

    assert booking["status"] == "pending"
    assert booking["bookingReference"].startswith("BK-")
    assert len(booking["bookingReference"]) == 12
    assert booking["pricing"]["totalDays"] == 3
    assert booking["pricing"]["totalAmount"] == 150.0
    assert booking["listing"]["slug"] == listing["slug"]
    assert booking["primaryDriver"]["surname"] == "Yılmaz"


def test_weekly_rate_applies_to_long_rentals(client, listing):
    booking = book(client, listing["id"], future(10), future(20)).json()["data"]
    assert booking["pricing"]["totalAmount"] == 450.0


def test_overlapping_booking_conflicts(client, listing):
    assert book(client, listing["id"], future(10), future(13)).status_code == 201

    response = book(client, listing["id"], future(12), future(14))
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["unitsAvailable"] == 0
    assert "bookingReference" not in detail["conflicts"][0]


def test_back_to_back_bookings_are_allowed(client, listing):
    assert book(client, listing["id"], future(10), future(13)).status_code == 201
    assert book(client, listing["id"], future(13), future(15)).status_code == 201
    assert book(client, listing["id"], future(8), future(10)).status_code == 201


def test_cancelled_booking_frees_the_car(client, listing, auth_headers):
    first = book(client, listing["id"], future(10), future(13)).json()["data"]
    response = client.post(
        f"/api/admin/bookings/{first['id']}/cancel",
        json={"reason": "Customer changed plans"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["cancellationReason"] == "Customer changed plans"

    assert book(client, listing["id"], future(11), future(12)).status_code == 201


def test_request_validation(client, listing):
    past = datetime.utcnow() - timedelta(days=1)
    assert book(client, listing["id"], past, future(2)).status_code == 400
    assert book(client, listing["id"], future(5), future(4)).status_code == 400
    assert book(client, listing["id"], future(1), future(100)).status_code == 400
    assert book(client, 9999, future(1), future(3)).status_code == 404

    bad_phone = booking_payload(listing["id"], future(1), future(3), phone="12")
    assert client.post("/api/bookings", json=bad_phone).status_code == 422

    no_drivers = booking_payload(listing["id"], future(1), future(3), drivers=[])
    assert client.post("/api/bookings", json=no_drivers).status_code == 422


def test_inactive_listing_cannot_be_booked(client, listing, auth_headers):
    client.patch(f"/api/admin/cars/{listing['id']}/status", json={"status": "maintenance"}, headers=auth_headers)
    assert book(client, listing["id"], future(3), future(5)).status_code == 404


def test_quote_with_currency_conversion(client, listing):
    payload = booking_payload(listing["id"], future(10), future(13), currency="TRY")
    response = client.post("/api/bookings/quote", json=payload)
    assert response.status_code == 200
    quote = response.json()["data"]
    assert quote["totalAmount"] == 150.0
    assert quote["converted"]["convertedAmount"] == 5692.5
    assert quote["converted"]["toCurrency"] == "TRY"


def test_lookup_by_reference_and_phone(client, listing):
    booking = book(client, listing["id"], future(10), future(13)).json()["data"]
    reference = booking["bookingReference"]

    found = client.get("/api/bookings/lookup", params={"reference": reference.lower(), "phone": "905551234567"})
    assert found.status_code == 200
    assert found.json()["data"]["id"] == booking["id"]
    assert "adminNotes" not in found.json()["data"]

    wrong_phone = client.get("/api/bookings/lookup", params={"reference": reference, "phone": "905550000000"})
    assert wrong_phone.status_code == 404


def test_status_lifecycle(client, listing, auth_headers):
    booking = book(client, listing["id"], future(10), future(13)).json()["data"]
    url = f"/api/admin/bookings/{booking['id']}/status"

    assert client.patch(url, json={"status": "active"}, headers=auth_headers).status_code == 400
    assert client.patch(url, json={"status": "confirmed"}, headers=auth_headers).status_code == 200
    assert client.patch(url, json={"status": "active"}, headers=auth_headers).status_code == 200
    assert client.patch(url, json={"status": "completed"}, headers=auth_headers).status_code == 200
    assert client.patch(url, json={"status": "cancelled"}, headers=auth_headers).status_code == 400

    cancel = client.post(f"/api/admin/bookings/{booking['id']}/cancel", headers=auth_headers)
    assert cancel.status_code == 400


def test_admin_booking_defaults_to_confirmed(client, listing, auth_headers):
    payload = booking_payload(listing["id"], future(10), future(12), adminNotes="Phone booking", taxes=12)
    response = client.post("/api/admin/bookings", json=payload, headers=auth_headers)
    assert response.status_code == 201, response.text
    booking = response.json()["data"]
    assert booking["status"] == "confirmed"
    assert booking["pricing"]["taxes"] == 12.0
    assert booking["pricing"]["totalAmount"] == 112.0
    assert booking["adminNotes"] == "Phone booking"


def test_admin_update_reprices(client, listing, auth_headers):
    booking = book(client, listing["id"], future(10), future(12)).json()["data"]
    response = client.put(
        f"/api/admin/bookings/{booking['id']}",
        json={"dropoffTime": future(17).isoformat()},
        headers=auth_headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["data"]["pricing"]["totalAmount"] == 300.0


def test_admin_list_and_filters(client, listing, auth_headers):
    book(client, listing["id"], future(10), future(12))
    second = book(client, listing["id"], future(20), future(22)).json()["data"]
    client.patch(f"/api/admin/bookings/{second['id']}/status", json={"status": "confirmed"}, headers=auth_headers)

    everything = client.get("/api/admin/bookings", headers=auth_headers).json()
    assert everything["pagination"]["total"] == 2

    confirmed = client.get("/api/admin/bookings", params={"status": "confirmed"}, headers=auth_headers).json()
    assert [b["id"] for b in confirmed["data"]] == [second["id"]]

    stats = client.get("/api/admin/dashboard/stats", headers=auth_headers).json()["data"]
    assert stats


def test_delete_requires_super_admin(client, listing, auth_headers):
    booking = book(client, listing["id"], future(10), future(12)).json()["data"]
    response = client.delete(f"/api/admin/bookings/{booking['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert client.get(f"/api/admin/bookings/{booking['id']}", headers=auth_headers).status_code == 404


def test_maintenance_mode_blocks_public_bookings(client, listing, auth_headers):
    response = client.put("/api/admin/settings", json={"maintenanceMode": True}, headers=auth_headers)
    assert response.status_code == 200

    blocked = book(client, listing["id"], future(10), future(12))
    assert blocked.status_code == 503

    public = client.get("/api/settings/public").json()["settings"]
    assert public["maintenanceMode"] is True


def test_daily_limit_per_ip(client, listing, monkeypatch):
    monkeypatch.setattr(get_settings().rate_limit, "max_public_bookings_per_ip_per_day", 2)
    headers = {"X-Forwarded-For": "203.0.113.7"}

    for offset in (10, 20):
        payload = booking_payload(listing["id"], future(offset), future(offset + 1))
        assert client.post("/api/bookings", json=payload, headers=headers).status_code == 201

    payload = booking_payload(listing["id"], future(30), future(31))
    assert client.post("/api/bookings", json=payload, headers=headers).status_code == 429

    other = {"X-Forwarded-For": "198.51.100.1"}
    assert client.post("/api/bookings", json=payload, headers=other).status_code == 201


def test_admin_update_rechecks_overlap(client, listing, auth_headers):
    first = book(client, listing["id"], future(10), future(12)).json()["data"]
    book(client, listing["id"], future(14), future(16))
    url = f"/api/admin/bookings/{first['id']}"

    clash = client.put(url, json={"dropoffTime": future(15).isoformat()}, headers=auth_headers)
    assert clash.status_code == 409

    # Moving within its own slot only overlaps itself
    shifted = client.put(
        url,
        json={"pickupTime": future(11).isoformat(), "dropoffTime": future(13).isoformat()},
        headers=auth_headers,
    )
    assert shifted.status_code == 200, shifted.text


def test_driver_limit_comes_from_config(client, listing, monkeypatch):
    monkeypatch.setattr(get_settings().booking, "max_drivers", 1)
    drivers = [
        {"name": "Ayşe", "surname": "Yılmaz", "phoneNumber": "+90 555 123 4567"},
        {"name": "Mehmet", "surname": "Kaya", "phoneNumber": "+90 555 765 4321"},
    ]
    response = book(client, listing["id"], future(10), future(12), drivers=drivers)
    assert response.status_code == 422

    monkeypatch.setattr(get_settings().booking, "max_drivers", 2)
    assert book(client, listing["id"], future(10), future(12), drivers=drivers).status_code == 201


def test_staff_bookings_do_not_count_toward_ip_limit(client, listing, auth_headers, monkeypatch):
    monkeypatch.setattr(get_settings().rate_limit, "max_public_bookings_per_ip_per_day", 1)
    office = {"X-Forwarded-For": "203.0.113.20"}

    for offset in (10, 20):
        payload = booking_payload(listing["id"], future(offset), future(offset + 1))
        response = client.post("/api/admin/bookings", json=payload, headers={**auth_headers, **office})
        assert response.status_code == 201

    payload = booking_payload(listing["id"], future(30), future(31))
    assert client.post("/api/bookings", json=payload, headers=office).status_code == 201
    payload = booking_payload(listing["id"], future(40), future(41))
    assert client.post("/api/bookings", json=payload, headers=office).status_code == 429
