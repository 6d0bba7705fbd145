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

"""Scheduler service using APScheduler."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from rentaly.config import get_settings
from rentaly.database import get_session_local
from rentaly.models.auth import AuditLog, AuthToken, CronJob

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> AsyncIOScheduler:
    """Get the global scheduler instance."""
    global scheduler
    if scheduler is None:
        scheduler = AsyncIOScheduler(timezone="UTC")
    return scheduler


async def run_cron_job(job_key: str, db: Session) -> Dict[str, Any]:
    """Run a cron job by key and record its outcome on the CronJob row.

    Args:
        job_key: The job identifier
        db: Database session

    Returns:
        Result of the job execution.
    """
    started_at = datetime.utcnow()
    error: Optional[str] = None
    result: Dict[str, Any] = {}

    try:
        if job_key == "refresh_exchange_rates":
            result = await _run_refresh_exchange_rates(db)
        elif job_key == "daily_cleanup":
            result = await _run_daily_cleanup(db)
        elif job_key == "booking_status_sweep":
            result = await _run_booking_status_sweep(db)
        else:
            raise ValueError(f"Unknown job: {job_key}")
    except Exception as e:
        db.rollback()
        logger.error("Cron job %s failed: %s", job_key, e)
        error = str(e)
        result = {"error": error}

    job = db.query(CronJob).filter(CronJob.job_key == job_key).first()
    if job:
        job.record_run(started_at, error)
        db.commit()
        duration_ms = job.last_run_duration_ms
    else:
        duration_ms = int((datetime.utcnow() - started_at).total_seconds() * 1000)

    status = "error" if error else "success"
    logger.info("Cron job %s finished: %s in %dms", job_key, status, duration_ms)
    return {"status": status, "duration_ms": duration_ms, **result}


async def _run_refresh_exchange_rates(db: Session) -> Dict[str, Any]:
    from rentaly.services.exchange_rates import refresh_rates

    snapshot = await refresh_rates(db)
    return {"rates": snapshot.rates}


async def _run_daily_cleanup(db: Session) -> Dict[str, Any]:
    """Delete expired or revoked tokens and audit entries past retention."""
    settings = get_settings()
    results = {}

    token_cutoff = datetime.utcnow() - timedelta(days=settings.cleanup.auth_token_retention_days)
    audit_cutoff = datetime.utcnow() - timedelta(days=settings.cleanup.audit_log_retention_days)

    results["expired_tokens_deleted"] = (
        db.query(AuthToken)
        .filter(AuthToken.expires_at < token_cutoff)
        .delete(synchronize_session=False)
    )

    results["revoked_tokens_deleted"] = (
        db.query(AuthToken)
        .filter(
            AuthToken.is_revoked == True,  # noqa: E712
            AuthToken.created_at < token_cutoff,
        )
        .delete(synchronize_session=False)
    )

    results["audit_entries_deleted"] = (
        db.query(AuditLog)
        .filter(AuditLog.timestamp < audit_cutoff)
        .delete(synchronize_session=False)
    )

    db.commit()
    return results


async def _run_booking_status_sweep(db: Session) -> Dict[str, Any]:
    from rentaly.services.bookings import complete_finished_bookings

    return {"bookings_completed": complete_finished_bookings(db)}


async def run_job(job_key: str) -> None:
    """Scheduler entry point: runs a job with its own session if enabled."""
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        job = db.query(CronJob).filter(CronJob.job_key == job_key).first()
        if job and job.is_enabled:
            await run_cron_job(job_key, db)
    finally:
        db.close()


def setup_scheduler() -> AsyncIOScheduler:
    """Register one scheduler job per CronJob row, using its crontab schedule."""
    sched = get_scheduler()

    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        jobs = db.query(CronJob).all()
        for job in jobs:
            sched.add_job(
                run_job,
                CronTrigger.from_crontab(job.cron_schedule, timezone="UTC"),
                args=[job.job_key],
                id=job.job_key,
                replace_existing=True,
            )
    finally:
        db.close()

    return sched


def start_scheduler() -> AsyncIOScheduler:
    """Start the scheduler."""
    sched = setup_scheduler()
    if not sched.running:
        sched.start()
    return sched


def stop_scheduler() -> None:
    """Stop the scheduler."""
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
    scheduler = None
