# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest
import yaml

from rentaly import config as config_module
from rentaly.config import Settings, get_settings, init_settings, load_config, save_config, update_settings


@pytest.fixture(autouse=True)
def restore_settings():
    previous = config_module._settings
    yield
    config_module._settings = previous


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.delenv("RENTALY_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    settings = load_config()
    assert settings.security.max_login_attempts == 5
    assert settings.exchange_rates.fallback_rates["EUR"] == 1.0
    assert settings.booking.max_duration_days == 90


def test_missing_explicit_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_partial_file_keeps_other_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"booking": {"tax_rate": 0.18}, "app": {"environment": "development"}}))

    settings = init_settings(str(path))
    assert settings.booking.tax_rate == 0.18
    assert settings.booking.max_duration_days == 90
    assert settings.expose_errors is True
    assert get_settings() is settings


def test_environment_variable_selects_file(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text(yaml.safe_dump({"app": {"name": "Rentaly Test"}}))
    monkeypatch.setenv("RENTALY_CONFIG", str(path))
    assert load_config().app.name == "Rentaly Test"


def test_save_and_reload(tmp_path):
    settings = Settings()
    settings.rate_limit.max_public_bookings_per_ip_per_day = 3
    path = tmp_path / "nested" / "config.yaml"

    save_config(settings, str(path))
    assert load_config(str(path)).rate_limit.max_public_bookings_per_ip_per_day == 3


def test_update_settings_replaces_global():
    replacement = Settings()
    replacement.app.name = "Replaced"
    update_settings(replacement)
    assert get_settings().app.name == "Replaced"
    assert Settings().expose_errors is False
