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

"""Database setup and connection management."""

import json
import logging
from pathlib import Path
from typing import Generator

from sqlalchemy import JSON, create_engine, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from rentaly.config import get_settings

logger = logging.getLogger(__name__)

# Base class for all models
Base = declarative_base()

# JSON column type, stored as JSONB on PostgreSQL
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> str:
    """Get the database URL from settings."""
    settings = get_settings()
    if settings.database.url:
        return settings.database.url

    db_path = settings.database.path
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    return f"sqlite:///{db_path}"


def init_engine():
    """Initialize the database engine."""
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()

    database_url = get_database_url()
    is_sqlite = database_url.startswith("sqlite")

    _engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False} if is_sqlite else {},
        echo=get_settings().app.debug,
        pool_pre_ping=not is_sqlite,
        json_serializer=lambda obj: json.dumps(obj, ensure_ascii=False),
    )

    if is_sqlite:
        @event.listens_for(_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


def get_engine():
    """Get the database engine, initializing if needed."""
    if _engine is None:
        init_engine()
    return _engine


def get_session_local():
    """Get the session factory."""
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Dependency to get database session."""
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all database tables."""
    # Import all models to ensure they're registered
    from rentaly.models import (  # noqa: F401
        admin,
        auth,
        booking,
        content,
        exchange_rate,
        listing,
        location,
        transfer,
    )

    engine = get_engine()
    Base.metadata.create_all(bind=engine)


DEFAULT_CRON_JOBS = [
    (
        "refresh_exchange_rates",
        "Refresh Exchange Rates",
        "Fetch EUR/TRY/USD rates from TCMB and store a new snapshot",
        "0 16 * * mon-fri",
    ),
    (
        "daily_cleanup",
        "Daily Cleanup",
        "Delete expired auth tokens and old audit entries",
        "0 3 * * *",
    ),
    (
        "booking_status_sweep",
        "Booking Status Sweep",
        "Mark active bookings whose dropoff has passed as completed",
        "*/30 * * * *",
    ),
]


def init_database():
    """Initialize database with tables and seed data."""
    from rentaly.models.admin import Admin, default_permissions
    from rentaly.models.auth import CronJob, SiteSetting
    from rentaly.services.site_settings import DEFAULT_SITE_SETTINGS

    init_engine()
    create_tables()

    settings = get_settings()
    SessionLocal = get_session_local()
    db = SessionLocal()

    try:
        # Create the super admin if no admin exists yet
        if db.query(Admin).count() == 0:
            super_admin = Admin(
                username=settings.admin.username.lower(),
                email=settings.admin.email.lower(),
                first_name=settings.admin.first_name,
                last_name=settings.admin.last_name,
                role="super_admin",
                permissions=default_permissions("super_admin"),
                is_active=True,
            )
            super_admin.set_password(settings.admin.password)
            db.add(super_admin)
            db.commit()
            logger.info("Created super admin: %s", super_admin.username)

        for job_key, job_name, description, cron_schedule in DEFAULT_CRON_JOBS:
            existing = db.query(CronJob).filter(CronJob.job_key == job_key).first()
            if not existing:
                db.add(
                    CronJob(
                        job_key=job_key,
                        job_name=job_name,
                        description=description,
                        cron_schedule=cron_schedule,
                        is_enabled=True,
                    )
                )

        for key, value in DEFAULT_SITE_SETTINGS.items():
            existing = db.query(SiteSetting).filter(SiteSetting.key == key).first()
            if not existing:
                db.add(SiteSetting(key=key, value=value))

        db.commit()
        logger.info("Database initialized successfully")

    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
