# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

from datetime import date, datetime, timedelta, timezone

import pytest

from rentaly.utils.helpers import (
    content_slug,
    digits_only,
    listing_slug,
    normalize_tags,
    page_meta,
    parse_date_string,
    reading_time,
    sanitize_input,
    to_base36,
    to_naive_utc,
)


@pytest.mark.parametrize("number, expected", [(0, "0"), (35, "z"), (36, "10"), (1295, "zz")])
def test_to_base36(number, expected):
    assert to_base36(number) == expected


def test_listing_slug_appends_base36_timestamp():
    assert listing_slug("BMW 3 Series (2023)", timestamp_ms=36) == "bmw-3-series-2023-10"


def test_content_slug():
    assert content_slug("  Top 10 Roads in Antalya!  ") == "top-10-roads-in-antalya"
    assert content_slug("!!!") == "post"
    assert len(content_slug("word " * 60)) <= 100


@pytest.mark.parametrize(
    "value, expected",
    [
        ("15/07/2026", date(2026, 7, 15)),
        ("2026-07-15", date(2026, 7, 15)),
        ("2026/07/15", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_date_string(value, expected):
    assert parse_date_string(value) == expected


def test_to_naive_utc_converts_aware_values():
    aware = datetime(2026, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=3)))
    assert to_naive_utc(aware) == datetime(2026, 5, 1, 9, 0)
    assert to_naive_utc(datetime(2026, 5, 1, 9, 0)) == datetime(2026, 5, 1, 9, 0)


def test_sanitize_input_strips_tags_and_truncates():
    assert sanitize_input("<b>Hello</b>   world") == "Hello world"
    assert sanitize_input("abcdef", max_length=3) == "abc"
    assert sanitize_input(None) == ""


def test_reading_time():
    assert reading_time("") == 1
    assert reading_time("word " * 450) == 3
    assert reading_time("<p>" + "word " * 200 + "</p>") == 1


def test_normalize_tags():
    assert normalize_tags(" Travel, antalya ,travel,") == ["travel", "antalya"]
    assert normalize_tags(["SUV", "suv", " Family "]) == ["suv", "family"]
    assert normalize_tags(None) == []


def test_digits_only():
    assert digits_only("+90 (555) 123-45-67") == "905551234567"


def test_page_meta():
    assert page_meta(2, 10, 25) == {
        "page": 2,
        "limit": 10,
        "total": 25,
        "pages": 3,
        "hasNext": True,
        "hasPrev": True,
    }
