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

"""Admin sessions, scheduled jobs, site settings and the audit trail."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from rentaly.database import Base, JSONType


class AuthToken(Base):
    """Opaque bearer token issued to an admin at login."""

    __tablename__ = "auth_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    admin_id = Column(Integer, ForeignKey("admins.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(255), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_used_at = Column(DateTime, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    is_revoked = Column(Boolean, nullable=False, default=False)

    admin = relationship("Admin", back_populates="auth_tokens")

    def is_valid(self, now=None) -> bool:
        now = now or datetime.utcnow()
        return not self.is_revoked and now <= self.expires_at

    def predates(self, moment) -> bool:
        """True when the token was issued before ``moment`` (e.g. a password change)."""
        return moment is not None and self.created_at < moment

    def __repr__(self):
        return f"<AuthToken(id={self.id}, admin_id={self.admin_id}, revoked={self.is_revoked})>"


class CronJob(Base):
    """A maintenance job run by the scheduler, with its run statistics."""

    __tablename__ = "cron_jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_key = Column(String(100), unique=True, nullable=False)
    job_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    cron_schedule = Column(String(50), nullable=False)
    is_enabled = Column(Boolean, nullable=False, default=True)
    last_run_at = Column(DateTime, nullable=True)
    last_run_status = Column(String(20), nullable=True)  # success | error
    last_run_duration_ms = Column(Integer, nullable=True)
    last_error = Column(Text, nullable=True)
    total_runs = Column(Integer, nullable=False, default=0)
    total_errors = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def record_run(self, started_at: datetime, error: str = None):
        finished = datetime.utcnow()
        self.last_run_at = started_at
        self.last_run_duration_ms = int((finished - started_at).total_seconds() * 1000)
        self.total_runs = (self.total_runs or 0) + 1
        if error is None:
            self.last_run_status = "success"
            self.last_error = None
        else:
            self.last_run_status = "error"
            self.last_error = error[:1000]
            self.total_errors = (self.total_errors or 0) + 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_key": self.job_key,
            "job_name": self.job_name,
            "description": self.description,
            "cron_schedule": self.cron_schedule,
            "is_enabled": self.is_enabled,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_run_status": self.last_run_status,
            "last_run_duration_ms": self.last_run_duration_ms,
            "last_error": self.last_error,
            "total_runs": self.total_runs,
            "total_errors": self.total_errors,
        }

    def __repr__(self):
        return f"<CronJob(key='{self.job_key}', enabled={self.is_enabled})>"


class SiteSetting(Base):
    """One site-wide setting; ``value`` holds any JSON value."""

    __tablename__ = "site_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(JSONType, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    updated_by = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)

    def __repr__(self):
        return f"<SiteSetting(key='{self.key}')>"


class AuditLog(Base):
    """Audit log for admin actions and UI navigation."""

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    admin_id = Column(Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True)
    admin_username = Column(String(50), nullable=True)  # Kept in case the admin is deleted
    action = Column(String(100), nullable=False, index=True)  # create, update, delete, login, navigate
    resource_type = Column(String(100), nullable=False, index=True)  # listing, booking, blog, ...
    resource_id = Column(Integer, nullable=True)
    resource_name = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)  # JSON string
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)

    admin = relationship("Admin")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "admin_id": self.admin_id,
            "admin_username": self.admin_username,
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "details": self.details,
            "ip_address": self.ip_address,
        }

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', resource='{self.resource_type}')>"
