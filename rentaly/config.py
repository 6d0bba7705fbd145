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

"""Configuration management for Rentaly API."""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AppConfig(BaseModel):
    """Application configuration."""

    name: str = "Rentaly"
    debug: bool = False
    environment: str = "production"  # "development" exposes error details
    host: str = "0.0.0.0"
    port: int = 5000
    base_url: str = "http://localhost:5000"
    frontend_url: str = "http://localhost:3000"


class AdminConfig(BaseModel):
    """Initial super admin created on first start."""

    username: str = "admin"
    email: str = "admin@rentaly.com"
    password: str = "change-me-now"
    first_name: str = "Super"
    last_name: str = "Admin"


class DatabaseConfig(BaseModel):
    """Database configuration.

    ``url`` takes precedence; otherwise a SQLite file at ``path`` is used.
    """

    url: Optional[str] = None
    path: str = "/data/rentaly.db"


class EmailConfig(BaseModel):
    """Email configuration."""

    enabled: bool = False
    provider: str = "smtp"  # "smtp" or "resend"
    api_key: str = ""  # For Resend
    from_address: str = "noreply@rentaly.com"
    from_name: str = "Rentaly"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False


class SecurityConfig(BaseModel):
    """Security configuration."""

    auth_token_days: int = 7
    max_tokens_per_admin: int = 10
    max_login_attempts: int = 5
    lock_hours: int = 2
    password_min_length: int = 6


class RateLimitConfig(BaseModel):
    """Rate limiting configuration."""

    max_public_bookings_per_ip_per_day: int = 10


class BookingConfig(BaseModel):
    """Booking constraints configuration."""

    max_duration_days: int = 90
    tax_rate: float = 0.0
    default_currency: str = "EUR"
    max_drivers: int = 5


class UploadConfig(BaseModel):
    """Local image storage configuration."""

    directory: str = "uploads"
    max_file_size_mb: int = 5
    max_files: int = 10
    max_gallery_images: int = 9
    allowed_extensions: List[str] = ["jpeg", "jpg", "png", "webp"]


class CloudinaryConfig(BaseModel):
    """Cloudinary credentials. Local storage is used while unconfigured."""

    cloud_name: str = ""
    api_key: str = ""
    api_secret: str = ""
    folder: str = "rentaly/cars"

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name) and self.cloud_name != "your_cloud_name_here"


class ExchangeRateConfig(BaseModel):
    """Exchange rate source configuration."""

    source_url: str = "https://www.tcmb.gov.tr/kurlar/today.xml"
    timeout_seconds: float = 10.0
    cache_ttl_minutes: int = 60
    fallback_rates: Dict[str, float] = {"EUR": 1.0, "TRY": 37.0, "USD": 1.09}
    default_rates: Dict[str, float] = {"EUR": 1.0, "TRY": 35.4, "USD": 1.09}


class CleanupConfig(BaseModel):
    """Cleanup settings configuration."""

    auth_token_retention_days: int = 7
    audit_log_retention_days: int = 180


class SchedulerConfig(BaseModel):
    """Background job configuration."""

    enabled: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseModel):
    """Main settings container."""

    app: AppConfig = Field(default_factory=AppConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    booking: BookingConfig = Field(default_factory=BookingConfig)
    uploads: UploadConfig = Field(default_factory=UploadConfig)
    cloudinary: CloudinaryConfig = Field(default_factory=CloudinaryConfig)
    exchange_rates: ExchangeRateConfig = Field(default_factory=ExchangeRateConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def expose_errors(self) -> bool:
        """Whether error details may be returned to clients."""
        return self.app.debug or self.app.environment == "development"


def load_config(config_path: Optional[str] = None) -> Settings:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, tries default locations.

    Returns:
        Settings object with loaded configuration.
    """
    default_paths = [
        Path("config/config.yaml"),
        Path("config.yaml"),
        Path("/app/config/config.yaml"),
        Path("/etc/rentaly/config.yaml"),
    ]

    if config_path is None:
        config_path = os.environ.get("RENTALY_CONFIG")

    config_file = None

    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for path in default_paths:
            if path.exists():
                config_file = path
                break

    if config_file is None:
        logger.info("No config file found, using defaults")
        return Settings()

    logger.info("Loading config from: %s", config_file)

    with open(config_file, "r") as f:
        config_data = yaml.safe_load(f) or {}

    return Settings(**config_data)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def init_settings(config_path: Optional[str] = None) -> Settings:
    """Initialize settings from config file."""
    global _settings
    _settings = load_config(config_path)
    return _settings


def save_config(settings: Settings, config_path: Optional[str] = None) -> None:
    """Save configuration to YAML file."""
    if config_path is None:
        config_path = os.environ.get("RENTALY_CONFIG", "config/config.yaml")

    config_data = settings.model_dump(exclude_none=True)

    Path(config_path).parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.dump(config_data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    logger.info("Configuration saved to: %s", config_path)


def update_settings(new_settings: Settings) -> None:
    """Update the global settings instance."""
    global _settings
    _settings = new_settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings."""
    settings = settings or get_settings()
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=settings.logging.format)
    logging.getLogger("rentaly").setLevel(level)
