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

"""Admin authentication routes."""

from datetime import datetime, timedelta
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from rentaly.config import get_settings
from rentaly.database import get_db
from rentaly.middleware.auth import get_current_admin, require_super_admin
from rentaly.models.admin import Admin, default_permissions, default_preferences
from rentaly.models.auth import AuthToken
from rentaly.services.audit import log_audit_event
from rentaly.utils.helpers import generate_token, get_client_ip, sanitize_input

router = APIRouter(prefix="/api/auth")


class LoginRequest(BaseModel):
    """Admin login request. Either username or email identifies the admin."""

    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=3, max_length=20)
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: Optional[str] = Field(None, alias="firstName", max_length=50)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=50)
    phone: Optional[str] = Field(None, max_length=30)
    role: Literal["super_admin", "admin", "manager", "editor"] = "admin"


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstName", max_length=50)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=50)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    preferences: Optional[dict] = None


class PasswordChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")


def issue_token(db: Session, admin: Admin, request: Request) -> AuthToken:
    """Create a bearer token, revoking the oldest ones beyond the per-admin limit."""
    settings = get_settings()

    active_tokens = (
        db.query(AuthToken)
        .filter(AuthToken.admin_id == admin.id, AuthToken.is_revoked == False)  # noqa: E712
        .order_by(AuthToken.created_at.desc())
        .all()
    )
    if len(active_tokens) >= settings.security.max_tokens_per_admin:
        for old_token in active_tokens[settings.security.max_tokens_per_admin - 1:]:
            old_token.is_revoked = True

    auth_token = AuthToken(
        admin_id=admin.id,
        token=generate_token(32),
        expires_at=datetime.utcnow() + timedelta(days=settings.security.auth_token_days),
        ip_address=get_client_ip(request),
        user_agent=(request.headers.get("User-Agent") or "")[:500] or None,
    )
    db.add(auth_token)
    db.commit()
    db.refresh(auth_token)
    return auth_token


@router.post("/admin/login")
async def admin_login(
    request: Request,
    data: LoginRequest,
    db: Session = Depends(get_db),
):
    """Log in with username or email and password."""
    settings = get_settings()
    identifier = (data.username or data.email or "").strip().lower()

    if not identifier or not data.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please provide username/email and password",
        )

    admin = (
        db.query(Admin)
        .filter(or_(Admin.username == identifier, Admin.email == identifier))
        .first()
    )

    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if admin.is_locked:
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail="Account temporarily locked due to too many failed login attempts. Try again later.",
        )

    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated. Please contact administrator.",
        )

    if not admin.check_password(data.password):
        admin.register_failed_login(settings.security.max_login_attempts, settings.security.lock_hours)
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    admin.register_successful_login(get_client_ip(request))
    db.commit()

    auth_token = issue_token(db, admin, request)
    log_audit_event(db, admin, "login", "admin", admin.id, admin.username, request=request)

    return {
        "success": True,
        "message": "Login successful",
        "token": auth_token.token,
        "expiresAt": auth_token.expires_at.isoformat(),
        "admin": admin.to_dict(),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_admin(
    request: Request,
    data: RegisterRequest,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_super_admin),
):
    """Create a new admin account (super admin only)."""
    username = data.username.strip().lower()
    email = str(data.email).lower()

    existing = (
        db.query(Admin)
        .filter(or_(Admin.username == username, Admin.email == email))
        .first()
    )
    if existing:
        field = "Username" if existing.username == username else "Email"
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{field} already exists",
        )

    admin = Admin(
        username=username,
        email=email,
        first_name=sanitize_input(data.first_name, 50) or None,
        last_name=sanitize_input(data.last_name, 50) or None,
        phone=data.phone,
        role=data.role,
        permissions=default_permissions(data.role),
        preferences=default_preferences(),
        is_active=True,
    )
    admin.set_password(data.password)
    db.add(admin)
    db.commit()
    db.refresh(admin)

    log_audit_event(db, current_admin, "create", "admin", admin.id, admin.username,
                    details={"role": admin.role}, request=request)

    return {
        "success": True,
        "message": "Admin created successfully",
        "admin": admin.to_dict(),
    }


@router.get("/admin/me")
async def get_me(
    current_admin: Admin = Depends(get_current_admin),
):
    """Get the authenticated admin."""
    return {"success": True, "admin": current_admin.to_dict()}


@router.put("/admin/profile")
async def update_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    """Update own profile fields."""
    if data.email is not None:
        email = str(data.email).lower()
        taken = db.query(Admin).filter(Admin.email == email, Admin.id != current_admin.id).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already in use",
            )
        current_admin.email = email

    if data.first_name is not None:
        current_admin.first_name = sanitize_input(data.first_name, 50) or None
    if data.last_name is not None:
        current_admin.last_name = sanitize_input(data.last_name, 50) or None
    if data.phone is not None:
        current_admin.phone = data.phone.strip() or None
    if data.preferences is not None:
        merged = dict(current_admin.preferences or default_preferences())
        merged.update(data.preferences)
        current_admin.preferences = merged

    db.commit()
    db.refresh(current_admin)

    return {"success": True, "message": "Profile updated", "admin": current_admin.to_dict()}


@router.put("/admin/change-password")
async def change_password(
    request: Request,
    data: PasswordChange,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    """Change own password; other sessions are revoked."""
    settings = get_settings()

    if not current_admin.check_password(data.current_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    if len(data.new_password) < settings.security.password_min_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"New password must be at least {settings.security.password_min_length} characters",
        )

    current_admin.set_password(data.new_password)
    db.query(AuthToken).filter(AuthToken.admin_id == current_admin.id).update(
        {"is_revoked": True}, synchronize_session=False
    )
    db.commit()

    auth_token = issue_token(db, current_admin, request)
    log_audit_event(db, current_admin, "change_password", "admin", current_admin.id,
                    current_admin.username, request=request)

    return {
        "success": True,
        "message": "Password changed successfully",
        "token": auth_token.token,
        "expiresAt": auth_token.expires_at.isoformat(),
    }


@router.post("/admin/logout")
async def logout(
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    """Revoke the current token."""
    token_id = getattr(request.state, "auth_token_id", None)
    if token_id:
        db.query(AuthToken).filter(AuthToken.id == token_id).update(
            {"is_revoked": True}, synchronize_session=False
        )
        db.commit()

    return {"success": True, "message": "Logged out successfully"}
