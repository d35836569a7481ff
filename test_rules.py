"""
test_rules.py - Rule Table Tests

Covers the built-in rate and keyword tables plus JSON overrides:
- every category has a rate and a keyword entry
- overrides extend keyword lists and replace rates/scalars
- ECOTRACK_RULES_FILE resolution and file errors

Usage: pytest test_rules.py
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest

from models import Category
from rules import (
    CARBON_RATES,
    CATEGORY_KEYWORDS,
    DEFAULT_RULES,
    RULES_FILE_ENV,
    load_rules,
    merge_rules,
)

DATA_DIR = Path(__file__).parent / "test_data"


def test_rate_table_covers_every_category():
    assert set(CARBON_RATES) == set(Category)
    assert CARBON_RATES[Category.ELECTRONICS] == 1.5
    assert CARBON_RATES[Category.CLOTHING] == 0.8
    assert CARBON_RATES[Category.FOOD] == 0.4
    assert CARBON_RATES[Category.GROCERIES] == 0.4
    assert CARBON_RATES[Category.OTHER] == 0.6


def test_keyword_table_covers_every_category_and_other_is_empty():
    assert set(CATEGORY_KEYWORDS) == set(Category)
    assert CATEGORY_KEYWORDS[Category.OTHER] == ()
    for category, keywords in CATEGORY_KEYWORDS.items():
        assert all(keyword == keyword.lower() for keyword in keywords), category


def test_default_rules_are_frozen():
    with pytest.raises(Exception):
        DEFAULT_RULES.default_carbon_rate = 1.0


def test_merge_extends_keywords_and_replaces_rates():
    merged = merge_rules(
        DEFAULT_RULES,
        {
            "carbon_rates": {"Clothing": 0.9},
            "category_keywords": {"electronics": ["Kindle", "phone"]},
            "sustainability_keywords": "refurbished",
            "sustainable_min_points": 7,
        },
    )

    assert merged.carbon_rates[Category.CLOTHING] == 0.9
    assert merged.carbon_rates[Category.FOOD] == 0.4
    electronics = merged.category_keywords[Category.ELECTRONICS]
    assert electronics[-1] == "kindle"
    assert electronics.count("phone") == 1
    assert "refurbished" in merged.sustainability_keywords
    assert "organic" in merged.sustainability_keywords
    assert merged.sustainable_min_points == 7
    # Base rule set untouched.
    assert "kindle" not in DEFAULT_RULES.category_keywords[Category.ELECTRONICS]


def test_merge_skips_unknown_categories_and_other_keywords():
    merged = merge_rules(
        DEFAULT_RULES,
        {
            "carbon_rates": {"furniture": 2.0},
            "category_keywords": {"other": ["misc"], "toys": ["lego"]},
        },
    )
    assert merged.carbon_rates == DEFAULT_RULES.carbon_rates
    assert merged.category_keywords[Category.OTHER] == ()


@pytest.mark.parametrize(
    "overrides",
    [
        ["not", "an", "object"],
        {"carbon_rates": {"food": "lots"}},
        {"carbon_rates": {"food": -1}},
        {"carbon_rates": ["food"]},
        {"category_keywords": {"food": 12}},
        {"carbon_points_step_kg": 0},
    ],
)
def test_merge_rejects_invalid_overrides(overrides):
    with pytest.raises(ValueError):
        merge_rules(DEFAULT_RULES, overrides)


def test_load_rules_without_path_or_env_returns_defaults(monkeypatch):
    monkeypatch.delenv(RULES_FILE_ENV, raising=False)
    assert load_rules() is DEFAULT_RULES


def test_load_rules_from_explicit_path():
    rules = load_rules(DATA_DIR / "rules_override.json")
    assert rules.carbon_rates[Category.ELECTRONICS] == 2.0
    assert "bananas" in rules.category_keywords[Category.GROCERIES]
    assert rules.sustainable_min_points == 10


def test_load_rules_from_environment(monkeypatch):
    monkeypatch.setenv(RULES_FILE_ENV, str(DATA_DIR / "rules_override.json"))
    assert load_rules().carbon_rates[Category.ELECTRONICS] == 2.0


def test_load_rules_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "missing.json")


def test_load_rules_malformed_json(tmp_path):
    bad = tmp_path / "rules.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        load_rules(bad)


def test_load_rules_round_trip_through_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"default_carbon_rate": 0.65}), encoding="utf-8")
    assert load_rules(path).default_carbon_rate == 0.65
