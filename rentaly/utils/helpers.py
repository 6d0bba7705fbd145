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

"""Utility helper functions."""

import math
import re
import secrets
import time
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import Request

BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def generate_token(length: int = 32) -> str:
    """Generate a secure random token.

    Args:
        length: Length of the token in bytes (will be URL-safe encoded).

    Returns:
        URL-safe random token string.
    """
    return secrets.token_urlsafe(length)


def sanitize_input(text: Optional[str], max_length: Optional[int] = None) -> str:
    """Sanitize user input by stripping HTML tags and limiting length.

    Args:
        text: Input text to sanitize.
        max_length: Maximum allowed length (truncates if exceeded).

    Returns:
        Sanitized string.
    """
    if text is None:
        return ""

    clean = re.sub(r"<[^>]+>", "", str(text))
    clean = " ".join(clean.split())

    if max_length and len(clean) > max_length:
        clean = clean[:max_length]

    return clean


def parse_date_string(date_str: Optional[str]) -> Optional[date]:
    """Parse a DD/MM/YYYY or YYYY-MM-DD date.

    Returns:
        date object or None if invalid.
    """
    if not date_str:
        return None

    for fmt in ("%d/%m/%Y", "%Y-%m-%d"):
        try:
            return datetime.strptime(str(date_str).strip(), fmt).date()
        except ValueError:
            continue

    return None


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC, the form stored in the database."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def listing_slug(title: str, timestamp_ms: Optional[int] = None) -> str:
    """Build a listing slug: dashed lowercase title plus a base36 timestamp."""
    base = re.sub(r"[^a-z0-9]", "-", title.lower())
    base = re.sub(r"-+", "-", base).strip("-")
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{base}-{to_base36(timestamp_ms)}"


def content_slug(title: str, max_length: int = 100) -> str:
    """Build a blog/news slug from a title."""
    slug = re.sub(r"[^a-z0-9\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return slug[:max_length].strip("-") or "post"


def reading_time(text: Optional[str], words_per_minute: int = 200) -> int:
    """Estimated reading time in minutes, at least 1."""
    words = len(re.sub(r"<[^>]+>", " ", text or "").split())
    return max(1, math.ceil(words / words_per_minute))


def normalize_tags(tags) -> list:
    """Lowercase, strip and de-duplicate tags while keeping their order."""
    if isinstance(tags, str):
        tags = tags.split(",")
    result = []
    for tag in tags or []:
        clean = str(tag).strip().lower()
        if clean and clean not in result:
            result.append(clean)
    return result


def digits_only(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def get_client_ip(request: Request) -> Optional[str]:
    """Client address, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def page_meta(page: int, limit: int, total: int) -> dict:
    """Pagination block used by admin list endpoints."""
    pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }


def listing_page_meta(page: int, limit: int, total: int) -> dict:
    """Pagination block used by the public listing endpoints."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }
