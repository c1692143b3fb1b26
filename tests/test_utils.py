from datetime import date, datetime

import pytest

from src.utils.formatters import ResponseFormatter
from src.utils.validators import TripInputValidator, looks_like_bare_url


@pytest.mark.parametrize("value,expected", [
    ("2024-03-15", date(2024, 3, 15)),
    ("2024-03-15T09:30:00Z", date(2024, 3, 15)),
    (datetime(2024, 3, 15, 22, 0), date(2024, 3, 15)),
    (date(2024, 3, 15), date(2024, 3, 15)),
    ("next Saturday", None),
    ("", None),
    (None, None),
])
def test_parse_iso_date(value, expected):
    assert ResponseFormatter.parse_iso_date(value) == expected


def test_compute_duration_days():
    assert ResponseFormatter.compute_duration_days(date(2024, 3, 15), date(2024, 3, 20)) == 5
    assert ResponseFormatter.compute_duration_days(date(2024, 3, 15), date(2024, 3, 15)) == 0
    assert ResponseFormatter.compute_duration_days(datetime(2024, 3, 15, 8), datetime(2024, 3, 16, 9)) == 2
    assert ResponseFormatter.compute_duration_days(None, date(2024, 3, 20)) is None


def test_readable_fallback():
    assert ResponseFormatter.readable_fallback("Angels Landing") == "Trip information from Angels Landing"
    assert ResponseFormatter.readable_fallback(url="https://www.alltrails.com/trail/x") == \
        "Trip information from www.alltrails.com"
    assert ResponseFormatter.readable_fallback() == "Trip information from webpage"


def test_ensure_readable():
    assert ResponseFormatter.ensure_readable("A nice loop") == "A nice loop"
    assert ResponseFormatter.ensure_readable(" https://example.com/x ") == "Trip information from example.com"
    assert ResponseFormatter.ensure_readable("https://example.com/x", title="Loop") == "Trip information from Loop"
    assert ResponseFormatter.ensure_readable(None) is None


@pytest.mark.parametrize("text,expected", [
    ("https://example.com", True),
    ("  HTTP://example.com/path", True),
    ("Hiking https://example.com", False),
    ("ftp://example.com", False),
    ("", False),
    (None, False),
])
def test_looks_like_bare_url(text, expected):
    assert looks_like_bare_url(text) is expected


def test_validate_trip_description():
    assert TripInputValidator.validate_trip_description("Camping in Zion") == {"valid": True, "errors": []}
    result = TripInputValidator.validate_trip_description("   ")
    assert result["valid"] is False
    assert result["errors"] == ["Trip description is required"]
    assert TripInputValidator.validate_trip_description(None)["valid"] is False


@pytest.mark.parametrize("sort_by,sort_order,expected", [
    ("view_count", "asc", ("view_count", "asc")),
    ("view_count", "ASC", ("view_count", "asc")),
    ("popularity", "asc", ("created_at", "asc")),
    ("created_at", "random", ("created_at", "desc")),
    (None, None, ("created_at", "desc")),
])
def test_normalize_sort(sort_by, sort_order, expected):
    assert TripInputValidator.normalize_sort(sort_by, sort_order) == expected


@pytest.mark.parametrize("url,expected", [
    ("https://www.alltrails.com/trail/us/utah/angels-landing", True),
    ("http://example.com:8080/x", True),
    ("http://example.com:abc/x", False),
    ("http://example.com:99999/x", False),
    ("ftp://example.com", False),
    ("https://", False),
])
def test_is_valid_url(url, expected):
    assert TripInputValidator.is_valid_url(url) is expected
