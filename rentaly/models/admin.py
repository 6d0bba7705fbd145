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

"""Admin account model."""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from werkzeug.security import check_password_hash, generate_password_hash

from rentaly.database import Base, JSONType

ROLES = ("super_admin", "admin", "manager", "editor")

PERMISSION_MODULES = ("cars", "locations", "bookings", "content", "settings", "admins")

FULL_ACCESS = ["create", "read", "update", "delete"]

ROLE_PERMISSIONS: Dict[str, Dict[str, List[str]]] = {
    "super_admin": {module: list(FULL_ACCESS) for module in PERMISSION_MODULES},
    "admin": {
        "cars": list(FULL_ACCESS),
        "locations": list(FULL_ACCESS),
        "bookings": ["read", "update"],
        "content": list(FULL_ACCESS),
    },
    "manager": {
        "cars": ["read", "update"],
        "locations": ["read"],
        "bookings": ["read", "update"],
        "content": ["read", "update"],
    },
    "editor": {
        "content": ["create", "read", "update"],
    },
}


def default_permissions(role: str) -> Dict[str, List[str]]:
    """Return a fresh copy of the default permission map for a role."""
    return {module: list(actions) for module, actions in ROLE_PERMISSIONS.get(role, {}).items()}


def default_preferences() -> dict:
    return {
        "language": "tr",
        "theme": "light",
        "notifications": {"email": True, "newBookings": True, "systemAlerts": True},
    }


class Admin(Base):
    """Back-office user."""

    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(20), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    phone = Column(String(30), nullable=True)
    role = Column(String(20), nullable=False, default="admin")
    permissions = Column(JSONType, nullable=False, default=dict)
    preferences = Column(JSONType, nullable=False, default=default_preferences)
    is_active = Column(Boolean, nullable=False, default=True)
    login_attempts = Column(Integer, nullable=False, default=0)
    lock_until = Column(DateTime, nullable=True)
    last_login = Column(DateTime, nullable=True)
    last_login_ip = Column(String(45), nullable=True)
    total_logins = Column(Integer, nullable=False, default=0)
    password_changed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "role IN ('super_admin', 'admin', 'manager', 'editor')",
            name="ck_admin_role",
        ),
    )

    auth_tokens = relationship("AuthToken", back_populates="admin", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.username

    @property
    def is_super_admin(self) -> bool:
        return self.role == "super_admin"

    @property
    def is_locked(self) -> bool:
        return self.lock_until is not None and self.lock_until > datetime.utcnow()

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)
        self.password_changed_at = datetime.utcnow()

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def has_permission(self, module: str, action: str) -> bool:
        """Check whether the admin may perform ``action`` on ``module``."""
        if self.is_super_admin:
            return True
        actions = (self.permissions or {}).get(module) or []
        return action in actions

    def register_failed_login(self, max_attempts: int, lock_hours: int) -> None:
        """Count a failed login and lock the account once the limit is hit.

        An expired lock starts the counter over.
        """
        if self.lock_until is not None and self.lock_until <= datetime.utcnow():
            self.login_attempts = 0
            self.lock_until = None

        self.login_attempts = (self.login_attempts or 0) + 1
        if self.login_attempts >= max_attempts and not self.is_locked:
            self.lock_until = datetime.utcnow() + timedelta(hours=lock_hours)

    def register_successful_login(self, ip_address: Optional[str]) -> None:
        self.login_attempts = 0
        self.lock_until = None
        self.last_login = datetime.utcnow()
        self.last_login_ip = ip_address
        self.total_logins = (self.total_logins or 0) + 1

    def wants_booking_alerts(self) -> bool:
        notifications = (self.preferences or {}).get("notifications") or {}
        return bool(notifications.get("newBookings", False))

    def to_dict(self) -> dict:
        """Convert to dictionary without credentials."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "phone": self.phone,
            "role": self.role,
            "permissions": self.permissions or {},
            "preferences": self.preferences or {},
            "isActive": self.is_active,
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
            "totalLogins": self.total_logins,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Admin(id={self.id}, username='{self.username}', role='{self.role}')>"
