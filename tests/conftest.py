# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Shared fixtures: an app bound to a throwaway SQLite database."""

import pytest
import yaml
from fastapi.testclient import TestClient

from factories import ADMIN_PASSWORD, ADMIN_USERNAME, TEST_RATES, listing_payload
from rentaly.services import exchange_rates
from rentaly.services.exchange_rates import ExchangeRateError


@pytest.fixture
def config_file(tmp_path):
    config = {
        "app": {"environment": "development", "base_url": "http://testserver"},
        "admin": {
            "username": ADMIN_USERNAME,
            "email": "admin@example.com",
            "password": ADMIN_PASSWORD,
        },
        "database": {"path": str(tmp_path / "rentaly.db")},
        "uploads": {"directory": str(tmp_path / "uploads")},
        "email": {"enabled": False},
        "scheduler": {"enabled": False},
        "logging": {"level": "WARNING"},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config))
    return path


class FakeTcmb:
    """Stand-in for the TCMB download; set ``error`` to make it fail."""

    def __init__(self):
        self.rates = dict(TEST_RATES)
        self.error = None
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self.error:
            raise ExchangeRateError(self.error)
        return dict(self.rates)


@pytest.fixture
def tcmb(monkeypatch):
    fake = FakeTcmb()
    monkeypatch.setattr(exchange_rates, "fetch_tcmb_rates", fake.fetch)
    return fake


@pytest.fixture
def client(config_file, tcmb, monkeypatch):
    monkeypatch.setenv("RENTALY_CONFIG", str(config_file))
    exchange_rates.clear_cache()

    from rentaly.main import app

    with TestClient(app) as test_client:
        yield test_client

    exchange_rates.clear_cache()


@pytest.fixture
def admin_token(client):
    response = client.post(
        "/api/auth/admin/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return response.json()["token"]


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def create_listing(client, auth_headers):
    def _create(**overrides):
        response = client.post("/api/admin/cars", json=listing_payload(**overrides), headers=auth_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def listing(create_listing):
    return create_listing()
