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

"""Audit trail for admin actions."""

import json
import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from rentaly.models.admin import Admin
from rentaly.models.auth import AuditLog
from rentaly.utils.helpers import get_client_ip

logger = logging.getLogger(__name__)


def log_audit_event(
    db: Session,
    admin: Optional[Admin],
    action: str,
    resource_type: str,
    resource_id: Optional[int] = None,
    resource_name: Optional[str] = None,
    details: Optional[dict] = None,
    request: Optional[Request] = None,
) -> AuditLog:
    """Log an audit event.

    Args:
        db: Database session
        admin: Admin performing the action (or None for system actions)
        action: Action type (create, update, delete, login, navigate, ...)
        resource_type: Type of resource (listing, booking, blog, ...)
        resource_id: ID of the resource
        resource_name: Human-readable name of the resource
        details: Additional details, stored as JSON
        request: Incoming request, used for client IP and user agent
    """
    entry = AuditLog(
        admin_id=admin.id if admin else None,
        admin_username=admin.username if admin else None,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        resource_name=resource_name,
        details=json.dumps(details, default=str, ensure_ascii=False) if details else None,
        ip_address=get_client_ip(request) if request else None,
        user_agent=(request.headers.get("User-Agent") or "")[:500] if request else None,
    )
    db.add(entry)
    db.commit()

    logger.info(
        "audit action=%s resource=%s id=%s admin=%s",
        action,
        resource_type,
        resource_id,
        admin.username if admin else "system",
    )
    return entry
