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

"""Currency rates from the Central Bank of the Republic of Turkey (TCMB).

All rates are EUR-based: ``{"EUR": 1, "TRY": <TRY per EUR>, "USD": <USD per EUR>}``.
"""

import logging
import time
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Dict, Optional, Tuple

import httpx
from sqlalchemy.orm import Session

from rentaly.config import get_settings
from rentaly.models.exchange_rate import ExchangeRate

logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES = {
    "EUR": {"symbol": "€", "name": "Euro"},
    "TRY": {"symbol": "₺", "name": "Turkish Lira"},
    "USD": {"symbol": "$", "name": "US Dollar"},
}


class ExchangeRateError(RuntimeError):
    """Raised when rates cannot be fetched or parsed."""


class ConversionError(ValueError):
    """Raised for invalid conversion input."""


# (rates, source, fetched_at, cached_at monotonic)
_cache: Optional[Tuple[Dict[str, float], str, datetime, float]] = None


def clear_cache() -> None:
    global _cache
    _cache = None


def _store_cache(rates: Dict[str, float], source: str, fetched_at: datetime) -> None:
    global _cache
    _cache = (rates, source, fetched_at, time.monotonic())


def parse_tcmb_xml(payload: str) -> Dict[str, float]:
    """Extract EUR-based rates from the TCMB ``today.xml`` document."""
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as e:
        raise ExchangeRateError(f"Invalid TCMB response: {e}")

    selling = {}
    for node in root.iter("Currency"):
        code = node.get("CurrencyCode") or node.get("Kod")
        if code not in ("USD", "EUR"):
            continue
        text = (node.findtext("ForexSelling") or "").strip()
        try:
            selling[code] = float(text.replace(",", "."))
        except ValueError:
            continue

    usd_try = selling.get("USD")
    eur_try = selling.get("EUR")
    if not usd_try or not eur_try or usd_try <= 0 or eur_try <= 0:
        raise ExchangeRateError("TCMB response is missing USD or EUR selling rates")

    return {
        "EUR": 1.0,
        "TRY": round(eur_try, 4),
        "USD": round(eur_try / usd_try, 4),
    }


async def fetch_tcmb_rates() -> Dict[str, float]:
    """Download and parse today's TCMB rates."""
    config = get_settings().exchange_rates

    try:
        async with httpx.AsyncClient(timeout=config.timeout_seconds) as client:
            response = await client.get(config.source_url)
            response.raise_for_status()
    except httpx.HTTPError as e:
        raise ExchangeRateError(f"Failed to fetch TCMB rates: {e}")

    return parse_tcmb_xml(response.text)


def save_rates(db: Session, rates: Dict[str, float], source: str) -> ExchangeRate:
    """Store a new active snapshot and deactivate the previous ones."""
    db.query(ExchangeRate).filter(ExchangeRate.is_active == True).update(  # noqa: E712
        {"is_active": False}, synchronize_session=False
    )
    snapshot = ExchangeRate(rates=rates, source=source, is_active=True, fetched_at=datetime.utcnow())
    db.add(snapshot)
    db.commit()
    db.refresh(snapshot)

    _store_cache(snapshot.rates, snapshot.source, snapshot.fetched_at)
    return snapshot


def latest_snapshot(db: Session) -> Optional[ExchangeRate]:
    return (
        db.query(ExchangeRate)
        .filter(ExchangeRate.is_active == True)  # noqa: E712
        .order_by(ExchangeRate.fetched_at.desc(), ExchangeRate.id.desc())
        .first()
    )


async def refresh_rates(db: Session) -> ExchangeRate:
    """Fetch from TCMB and persist. Raises ExchangeRateError on failure."""
    rates = await fetch_tcmb_rates()
    snapshot = save_rates(db, rates, "tcmb")
    logger.info("Exchange rates refreshed: %s", rates)
    return snapshot


async def get_current_rates(db: Session) -> dict:
    """Current rates: memory cache, then database, then TCMB, then fallback."""
    config = get_settings().exchange_rates

    if _cache is not None:
        rates, source, fetched_at, cached_at = _cache
        if time.monotonic() - cached_at < config.cache_ttl_minutes * 60:
            return {"rates": rates, "source": source, "lastUpdated": fetched_at}

    snapshot = latest_snapshot(db)
    if snapshot is not None:
        _store_cache(snapshot.rates, snapshot.source, snapshot.fetched_at)
        return {"rates": snapshot.rates, "source": snapshot.source, "lastUpdated": snapshot.fetched_at}

    try:
        snapshot = await refresh_rates(db)
        return {"rates": snapshot.rates, "source": snapshot.source, "lastUpdated": snapshot.fetched_at}
    except ExchangeRateError as e:
        logger.warning("Using fallback exchange rates: %s", e)
        return {
            "rates": dict(config.fallback_rates),
            "source": "fallback",
            "lastUpdated": datetime.utcnow(),
        }


def format_amount(amount: float, currency: str) -> str:
    symbol = SUPPORTED_CURRENCIES.get(currency, {}).get("symbol", currency)
    return f"{symbol}{amount:,.2f}"


def convert(amount, from_currency: str, to_currency: str, rates: Dict[str, float]) -> dict:
    """Convert ``amount`` between supported currencies through EUR."""
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ConversionError("Amount must be a positive number")
    if amount <= 0:
        raise ConversionError("Amount must be a positive number")

    from_currency = (from_currency or "").upper()
    to_currency = (to_currency or "").upper()
    for code in (from_currency, to_currency):
        if code not in SUPPORTED_CURRENCIES:
            raise ConversionError(
                f"Unsupported currency: {code}. Supported: {', '.join(SUPPORTED_CURRENCIES)}"
            )
        if not rates.get(code):
            raise ConversionError(f"No rate available for {code}")

    rate = rates[to_currency] / rates[from_currency]
    converted = round(amount * rate, 2)

    return {
        "originalAmount": amount,
        "fromCurrency": from_currency,
        "toCurrency": to_currency,
        "convertedAmount": converted,
        "exchangeRate": round(rate, 4),
        "formattedAmount": format_amount(converted, to_currency),
    }
