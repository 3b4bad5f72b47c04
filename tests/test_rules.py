"""
Pure rule tests: score validation, overall rounding, availability rules and
time windows.
"""
from datetime import datetime

import pytest

from tortilla_watch import time_windows
from tortilla_watch.config import settings
from tortilla_watch.services.availability_service import AvailabilityService
from tortilla_watch.services.rating_service import RatingService
from tortilla_watch.services.storage_service import StorageService


def scores(**overrides):
    values = {"sabor": 8, "jugosidad": 7, "cuajada": 6, "temperatura": 9}
    values.update(overrides)
    return values


@pytest.mark.parametrize("values,expected", [
    ((8, 7, 6, 9), 8),
    ((1, 1, 5, 1), 2),
    ((1, 2, 5, 2), 3),
    ((10, 10, 10, 10), 10),
    ((1, 1, 5, 2), 2),
])
def test_overall_rounds_half_up(values, expected):
    fields = dict(zip(("sabor", "jugosidad", "cuajada", "temperatura"), values))
    assert RatingService.compute_overall(fields) == expected


def test_validate_accepts_numeric_strings():
    parsed, error = RatingService.validate_scores(scores(sabor="10", cuajada="5"))
    assert error is None
    assert parsed == {"sabor": 10, "jugosidad": 7, "cuajada": 5, "temperatura": 9}


def test_validate_reports_missing_before_anything_else():
    _, error = RatingService.validate_scores({"sabor": "abc", "jugosidad": 7, "cuajada": 6})
    assert error == "missing_required_fields"


def test_validate_blank_string_is_missing():
    _, error = RatingService.validate_scores(scores(temperatura="  "))
    assert error == "missing_required_fields"


@pytest.mark.parametrize("override,expected", [
    ({"sabor": "abc"}, "invalid_rating_values"),
    ({"sabor": True}, "invalid_rating_values"),
    ({"sabor": 7.5}, "invalid_rating_values"),
    ({"sabor": 11}, "rating_out_of_range"),
    ({"jugosidad": 0}, "rating_out_of_range"),
    ({"cuajada": 4}, "rating_out_of_range"),
    ({"temperatura": 10.5}, "rating_out_of_range"),
])
def test_validate_rejects(override, expected):
    parsed, error = RatingService.validate_scores(scores(**override))
    assert parsed is None
    assert error == expected


def test_cuajada_lower_bound_is_inclusive():
    _, error = RatingService.validate_scores(scores(cuajada=5))
    assert error is None


@pytest.mark.parametrize("working,outage,expected", [
    (0, 0, False),
    (1, 0, False),
    (2, 0, True),
    (2, 1, True),
    (2, 2, False),
    (3, 5, False),
])
def test_availability_from_tallies(working, outage, expected):
    assert AvailabilityService.is_available_from_tallies(working, outage) is expected


@pytest.mark.parametrize("available,unavailable,expected", [
    (2, 0, True),
    (2, 1, True),
    (2, 2, False),
    (1, 0, False),
])
def test_availability_from_counts(available, unavailable, expected):
    assert AvailabilityService.is_available_from_counts(available, unavailable) is expected


def test_clamp_votes():
    assert AvailabilityService.clamp_votes(25) == 10
    assert AvailabilityService.clamp_votes(3) == 3


def test_local_day_bounds_follow_configured_zone(monkeypatch):
    monkeypatch.setattr(settings, "LOCAL_TIMEZONE", "Europe/Madrid")
    # 23:30 UTC is already 00:30 on the 13th in Madrid (CET, UTC+1)
    start, end = time_windows.local_day_bounds(datetime(2025, 3, 12, 23, 30))
    assert start == datetime(2025, 3, 12, 23, 0)
    assert end == datetime(2025, 3, 13, 23, 0)


def test_local_day_bounds_across_dst_change(monkeypatch):
    monkeypatch.setattr(settings, "LOCAL_TIMEZONE", "Europe/Madrid")
    start, end = time_windows.local_day_bounds(datetime(2025, 3, 30, 12, 0))
    assert start == datetime(2025, 3, 29, 23, 0)
    assert end == datetime(2025, 3, 30, 22, 0)


def test_isoformat_marks_utc():
    assert time_windows.isoformat(datetime(2025, 3, 12, 10, 0)) == "2025-03-12T10:00:00+00:00"


def test_object_path_sanitizes_fingerprint():
    path = StorageService.object_path("a/b c", "image/png", datetime(1970, 1, 1, 0, 0, 1))
    assert path == "a_b_c/1000.png"
