"""
test_normalize.py - Normalization Module Tests

Validation for:
- normalize_text
- normalize_amount
- normalize_quantity
- parse_date

Usage: pytest test_normalize.py
"""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest

from normalize import normalize_amount, normalize_quantity, normalize_text, parse_date


def test_normalize_text_lowercases_and_strips():
    assert normalize_text("  Organic BANANAS ") == "organic bananas"
    assert normalize_text(None) == ""
    assert normalize_text(42) == "42"


@pytest.mark.parametrize(
    "raw, expected",
    [
        (12.5, 12.5),
        (3, 3.0),
        ("$1,299.99", 1299.99),
        ("€20", 20.0),
        ("  7.25 ", 7.25),
        ("0", 0.0),
    ],
)
def test_normalize_amount_parses_prices(raw, expected):
    assert normalize_amount(raw) == pytest.approx(expected)


@pytest.mark.parametrize(
    "raw",
    [None, "", "N/A", "abc", "-5.00", "($12.00)", -3, float("nan"), float("inf"), True],
)
def test_normalize_amount_degrades_to_zero(raw):
    assert normalize_amount(raw) == 0.0


def test_normalize_amount_does_not_round():
    assert normalize_amount("19.999") == pytest.approx(19.999)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (2, 2),
        ("3", 3),
        (2.9, 2),
        (None, 1),
        ("", 1),
        ("two", 1),
        (0, 1),
        (-4, 1),
        (False, 1),
    ],
)
def test_normalize_quantity(raw, expected):
    assert normalize_quantity(raw) == expected


def test_parse_date_iso_date_is_utc_midnight():
    parsed = parse_date("2025-10-04")
    assert parsed == datetime(2025, 10, 4, tzinfo=timezone.utc)


def test_parse_date_converts_offsets_to_utc():
    parsed = parse_date("2025-10-04T10:00:00+02:00")
    assert parsed == datetime(2025, 10, 4, 8, 0, tzinfo=timezone.utc)


def test_parse_date_naive_datetime_treated_as_utc():
    parsed = parse_date(datetime(2025, 1, 2, 3, 4, 5))
    assert parsed.tzinfo is not None
    assert parsed.utcoffset() == timedelta(0)
    assert parsed.hour == 3


@pytest.mark.parametrize("raw", [None, "", "null", "not-a-date", "20251004", "Oct 4", "13/45/2025"])
def test_parse_date_rejects_unusable_values(raw):
    assert parse_date(raw) is None
