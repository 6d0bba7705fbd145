# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio

import aiosmtplib
import pytest

from factories import booking_payload, future
from rentaly.config import get_settings
from rentaly.services.email import EmailService


@pytest.fixture
def sent(client, monkeypatch):
    messages = []

    async def fake_send(self, to, subject, html, text=None):
        messages.append({"to": to, "subject": subject, "html": html, "text": text})
        return {"success": True}

    monkeypatch.setattr(EmailService, "send_email", fake_send)
    return messages


def test_new_booking_alerts_admins(client, listing, sent):
    get_settings().email.enabled = True
    response = client.post("/api/bookings", json=booking_payload(listing["id"], future(2), future(4)))
    assert response.status_code == 201

    reference = response.json()["data"]["bookingReference"]
    assert [m["to"] for m in sent] == ["admin@example.com"]
    assert reference in sent[0]["subject"]
    assert "Renault Clio" in sent[0]["text"]


def test_no_alerts_when_email_disabled(client, listing, sent):
    get_settings().email.enabled = False
    client.post("/api/bookings", json=booking_payload(listing["id"], future(2), future(4)))
    assert sent == []


def test_disabled_service_skips(client):
    service = EmailService()
    service.settings.email.enabled = False
    assert asyncio.run(service.send_email("a@b.com", "Hi", "<p>Hi</p>")) == {"success": False, "skipped": True}


def test_smtp_delivery_escapes_booking_fields(client, monkeypatch):
    calls = []

    async def fake_send(message, **kwargs):
        calls.append((message, kwargs))

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    service = EmailService()
    service.settings.email.enabled = True
    service.settings.email.provider = "smtp"
    service.settings.email.smtp_host = "mail.example.com"

    booking = {
        "id": 7,
        "bookingReference": "BK-000000007",
        "primaryDriver": {"name": "<script>", "surname": "Doe"},
        "pricing": {"totalAmount": 150, "currency": "EUR"},
    }
    result = asyncio.run(service.send_new_booking_alert("admin@example.com", "Admin", booking))

    assert result["provider"] == "smtp"
    message, kwargs = calls[0]
    assert kwargs["hostname"] == "mail.example.com"
    assert message["To"] == "admin@example.com"
    html_part = message.get_payload()[-1].get_payload(decode=True).decode()
    assert "&lt;script&gt;" in html_part
    assert "<script>" not in html_part
