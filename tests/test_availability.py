# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

from datetime import datetime

from rentaly.services.availability import intervals_overlap, max_concurrent


def at(day, hour=10):
    return datetime(2026, 5, day, hour)


def test_back_to_back_intervals_do_not_overlap():
    assert not intervals_overlap(at(1), at(3), at(3), at(5))
    assert not intervals_overlap(at(3), at(5), at(1), at(3))


def test_partial_and_nested_overlap():
    assert intervals_overlap(at(1), at(4), at(3), at(6))
    assert intervals_overlap(at(1), at(10), at(3), at(4))


def test_max_concurrent_counts_peak():
    intervals = [(at(1), at(5)), (at(2), at(4)), (at(3), at(6))]
    assert max_concurrent(intervals, at(1), at(10)) == 3


def test_max_concurrent_ignores_touching_ends():
    intervals = [(at(1), at(3)), (at(3), at(5)), (at(5), at(7))]
    assert max_concurrent(intervals, at(1), at(7)) == 1


def test_max_concurrent_clips_to_window():
    intervals = [(at(1), at(3)), (at(4), at(6))]
    assert max_concurrent(intervals, at(3), at(4)) == 0
    assert max_concurrent(intervals, at(2), at(5)) == 1


def test_max_concurrent_empty():
    assert max_concurrent([], at(1), at(2)) == 0
