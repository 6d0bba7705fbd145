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

"""Exchange rate routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from rentaly.config import get_settings
from rentaly.database import get_db
from rentaly.middleware.auth import require_permission
from rentaly.models.admin import Admin
from rentaly.models.exchange_rate import ExchangeRate
from rentaly.services.audit import log_audit_event
from rentaly.services.exchange_rates import (
    SUPPORTED_CURRENCIES,
    ConversionError,
    ExchangeRateError,
    convert,
    format_amount,
    get_current_rates,
    latest_snapshot,
    refresh_rates,
    save_rates,
)
from rentaly.utils.helpers import page_meta

router = APIRouter(prefix="/api/exchange-rates")


class ConvertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: float
    from_currency: str = Field(..., alias="fromCurrency")
    to_currency: str = Field(..., alias="toCurrency")


class ManualRates(BaseModel):
    TRY: float = Field(..., gt=0)
    USD: float = Field(..., gt=0)


def currency_list() -> list:
    return [{"code": code, **info} for code, info in SUPPORTED_CURRENCIES.items()]


@router.get("/current")
async def current_rates(db: Session = Depends(get_db)):
    """Current EUR-based rates."""
    current = await get_current_rates(db)
    rates = current["rates"]
    return {
        "success": True,
        "data": {
            "rates": rates,
            "formattedRates": {code: format_amount(value, code) for code, value in rates.items()},
            "lastUpdated": current["lastUpdated"].isoformat(),
            "source": current["source"],
            "supportedCurrencies": list(SUPPORTED_CURRENCIES),
        },
    }


@router.get("/currencies")
async def supported_currencies():
    return {"success": True, "data": currency_list()}


@router.post("/convert")
async def convert_amount(
    data: ConvertRequest,
    db: Session = Depends(get_db),
):
    """Convert an amount between supported currencies."""
    current = await get_current_rates(db)
    try:
        result = convert(data.amount, data.from_currency, data.to_currency, current["rates"])
    except ConversionError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return {"success": True, "data": result}


@router.get("/history")
async def rate_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("settings", "read")),
):
    query = db.query(ExchangeRate)
    total = query.count()
    snapshots = (
        query.order_by(ExchangeRate.fetched_at.desc(), ExchangeRate.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "success": True,
        "data": [s.to_dict() for s in snapshots],
        "pagination": page_meta(page, limit, total),
    }


@router.put("")
async def set_manual_rates(
    data: ManualRates,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("settings", "update")),
):
    """Store manually entered rates as the active snapshot."""
    snapshot = save_rates(db, {"EUR": 1.0, "TRY": data.TRY, "USD": data.USD}, "manual")

    log_audit_event(db, current_admin, "update", "exchange_rates", snapshot.id,
                    details=snapshot.rates, request=request)

    return {"success": True, "message": "Exchange rates updated", "data": snapshot.to_dict()}


@router.post("/initialize")
async def initialize_rates(
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("settings", "update")),
):
    """Store the default rates if none exist yet."""
    existing: Optional[ExchangeRate] = latest_snapshot(db) or db.query(ExchangeRate).first()
    if existing is not None:
        return {
            "success": True,
            "message": "Exchange rates already initialized",
            "data": existing.to_dict(),
        }

    snapshot = save_rates(db, dict(get_settings().exchange_rates.default_rates), "default")
    log_audit_event(db, current_admin, "create", "exchange_rates", snapshot.id,
                    details=snapshot.rates, request=request)

    return {"success": True, "message": "Exchange rates initialized", "data": snapshot.to_dict()}


@router.post("/refresh")
async def force_refresh(
    request: Request,
    db: Session = Depends(get_db),
    current_admin: Admin = Depends(require_permission("settings", "update")),
):
    """Fetch fresh rates from TCMB now."""
    try:
        snapshot = await refresh_rates(db)
    except ExchangeRateError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch exchange rates: {e}",
        )

    log_audit_event(db, current_admin, "refresh", "exchange_rates", snapshot.id,
                    details=snapshot.rates, request=request)

    return {"success": True, "message": "Exchange rates refreshed", "data": snapshot.to_dict()}
