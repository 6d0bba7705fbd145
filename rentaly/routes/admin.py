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

"""Admin routes for admin accounts, audit trail, cron jobs, dashboard and settings."""

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from rentaly.database import get_db
from rentaly.middleware.auth import get_current_admin, require_permission, require_super_admin
from rentaly.models.admin import PERMISSION_MODULES, Admin, default_permissions
from rentaly.models.auth import AuditLog, AuthToken, CronJob
from rentaly.services.audit import log_audit_event
from rentaly.services.bookings import dashboard_stats
from rentaly.services.site_settings import get_site_settings, update_site_settings

router = APIRouter(prefix="/api/admin")


class AdminUpdate(BaseModel):
    """Admin account update request (super admin only)."""

    model_config = ConfigDict(populate_by_name=True)

    role: Optional[Literal["super_admin", "admin", "manager", "editor"]] = None
    is_active: Optional[bool] = Field(None, alias="isActive")
    permissions: Optional[Dict[str, List[str]]] = None


class NavigationEvent(BaseModel):
    page: str = Field(..., max_length=200)
    action: str = Field("view", max_length=50)
    details: Optional[Dict[str, Any]] = None


class CronJobUpdate(BaseModel):
    """Cron job update request."""

    is_enabled: Optional[bool] = None


# Admin Management Routes
@router.get("/admins")
async def list_admins(
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_super_admin),
):
    """List all admin accounts."""
    admins = db.query(Admin).order_by(Admin.username).all()
    return {
        "success": True,
        "admins": [a.to_dict() for a in admins],
    }


@router.patch("/admins/{admin_id}")
async def update_admin(
    admin_id: int,
    data: AdminUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_super_admin),
):
    """Change role, activation or permissions of an admin."""
    admin = db.query(Admin).filter(Admin.id == admin_id).first()
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Admin not found",
        )

    if admin.id == current_admin.id and data.is_active is False:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate your own account",
        )

    if data.permissions is not None:
        unknown = sorted(set(data.permissions) - set(PERMISSION_MODULES))
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown permission modules: {', '.join(unknown)}",
            )

    changes = data.model_dump(exclude_none=True)

    if data.role is not None and data.role != admin.role:
        admin.role = data.role
        if data.permissions is None:
            admin.permissions = default_permissions(data.role)

    if data.permissions is not None:
        admin.permissions = data.permissions

    if data.is_active is not None:
        admin.is_active = data.is_active
        # Revoke all tokens if deactivating
        if not data.is_active:
            db.query(AuthToken).filter(AuthToken.admin_id == admin.id).update(
                {"is_revoked": True}, synchronize_session=False
            )

    db.commit()
    db.refresh(admin)

    log_audit_event(db, current_admin, "update", "admin", admin.id, admin.username,
                    details=changes, request=request)

    return {
        "success": True,
        "admin": admin.to_dict(),
        "message": "Admin updated",
    }


# Audit Trail Routes
@router.get("/audit-log")
async def get_audit_log(
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("settings", "read")),
):
    """Get audit log entries, newest first."""
    query = db.query(AuditLog)

    if action:
        query = query.filter(AuditLog.action == action)

    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type)

    total = query.count()
    limit = max(1, min(limit, 500))
    offset = max(0, offset)

    entries = (
        query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    return {
        "success": True,
        "total": total,
        "entries": [e.to_dict() for e in entries],
        "limit": limit,
        "offset": offset,
    }


@router.post("/log-navigation")
async def log_navigation(
    data: NavigationEvent,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(get_current_admin),
):
    """Record an admin panel navigation event."""
    log_audit_event(
        db,
        current_admin,
        "navigate",
        "admin_panel",
        resource_name=data.page,
        details={"action": data.action, **(data.details or {})},
        request=request,
    )
    return {"success": True}


# Cron Job Management Routes
@router.get("/cron-jobs")
async def list_cron_jobs(
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_super_admin),
):
    """List all cron jobs."""
    jobs = db.query(CronJob).order_by(CronJob.job_key).all()
    return {
        "success": True,
        "jobs": [j.to_dict() for j in jobs],
    }


@router.put("/cron-jobs/{job_id}")
async def update_cron_job(
    job_id: int,
    data: CronJobUpdate,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_super_admin),
):
    """Enable or disable a cron job."""
    job = db.query(CronJob).filter(CronJob.id == job_id).first()
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Cron job not found",
        )

    if data.is_enabled is not None:
        job.is_enabled = data.is_enabled

    db.commit()
    db.refresh(job)

    return {
        "success": True,
        "job": job.to_dict(),
        "message": f"Cron job '{job.job_name}' {'enabled' if job.is_enabled else 'disabled'}",
    }


@router.post("/cron-jobs/{job_id}/trigger")
async def trigger_cron_job(
    job_id: int,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_super_admin),
):
    """Manually trigger a cron job."""
    job = db.query(CronJob).filter(CronJob.id == job_id).first()
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Cron job not found",
        )

    if not job.is_enabled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot trigger disabled cron job",
        )

    from rentaly.services.scheduler import run_cron_job

    result = await run_cron_job(job.job_key, db)
    if result["status"] != "success":
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to run cron job: {result.get('error')}",
        )

    return {
        "success": True,
        "message": f"Cron job '{job.job_name}' triggered successfully",
        "result": result,
    }


# Dashboard
@router.get("/dashboard/stats")
async def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("bookings", "read")),
):
    """Fleet, booking and revenue counters for the dashboard."""
    return {"success": True, "data": dashboard_stats(db)}


# Site Settings
@router.get("/settings")
async def get_settings_values(
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("settings", "read")),
):
    return {"success": True, "settings": get_site_settings(db)}


@router.put("/settings")
async def update_settings_values(
    data: Dict[str, Any],
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("settings", "update")),
):
    """Update site settings. Unknown keys are rejected."""
    try:
        values = update_site_settings(db, data, admin_id=current_admin.id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    log_audit_event(db, current_admin, "update", "settings", details=data, request=request)

    return {
        "success": True,
        "settings": values,
        "message": "Settings updated",
    }
