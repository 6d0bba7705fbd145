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

"""Database models for Rentaly API."""

from rentaly.models.admin import Admin
from rentaly.models.auth import AuditLog, AuthToken, CronJob, SiteSetting
from rentaly.models.booking import Booking
from rentaly.models.content import BlogPost, NewsItem
from rentaly.models.exchange_rate import ExchangeRate
from rentaly.models.listing import Listing
from rentaly.models.location import Location
from rentaly.models.transfer import TransferZone

__all__ = [
    "Admin",
    "AuditLog",
    "AuthToken",
    "CronJob",
    "SiteSetting",
    "Booking",
    "BlogPost",
    "NewsItem",
    "ExchangeRate",
    "Listing",
    "Location",
    "TransferZone",
]
